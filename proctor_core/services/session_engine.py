# proctor_core/services/session_engine.py
"""
Session Engine - lifecycle of one proctoring session

    idle --start()--> active --end()--> ended

While active, every signal tick is classified against the session's event
log and the resulting events are appended. Classification and append share
one lock, so overlapping ticks are queued and can never both decide that
no recent event exists.

The server clock is the session's time source. A caller-supplied tick time
is accepted only up to ``max_skew_ms`` ahead of it and never before the
previous tick.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..config import settings
from ..errors import InvalidInput, InvalidState, SessionNotFound
from ..models import (
    FocusState,
    ProctoringEvent,
    ProctoringSession,
    SessionState,
    SignalTick,
)
from ..utils.clock import Clock, as_utc, utc_now
from ..utils.logging import log_event_emitted, log_session_end, log_session_start
from ..utils.scoring import integrity_score
from .classifier import ClassifierRules, classify
from .event_log import EventLog
from .notifier import (
    EVENT_RECORDED,
    SESSION_ENDED,
    SESSION_STARTED,
    SessionSink,
    SinkNotifier,
)

logger = logging.getLogger(__name__)


class SessionEngine:
    def __init__(
        self,
        sink: Optional[SessionSink] = None,
        clock: Clock = utc_now,
        rules: Optional[ClassifierRules] = None,
        notifier: Optional[SinkNotifier] = None,
        max_skew_ms: Optional[int] = None,
    ):
        self.clock = clock
        self.rules = rules or ClassifierRules.from_settings()
        self.notifier = notifier or SinkNotifier(sink)
        self.max_skew = timedelta(
            milliseconds=settings.MAX_CLOCK_SKEW_MS if max_skew_ms is None else max_skew_ms
        )
        self._state = SessionState.IDLE
        self._session: Optional[ProctoringSession] = None
        self._log: Optional[EventLog] = None
        self._lock = threading.RLock()
        self._last_tick_at: Optional[datetime] = None
        self._focus_lost_since: Optional[datetime] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[ProctoringSession]:
        """A snapshot of the session record; changing it does not touch the engine."""
        with self._lock:
            return self._session.model_copy() if self._session else None

    @property
    def session_id(self) -> Optional[str]:
        return self._session.id if self._session else None

    @property
    def events(self) -> List[ProctoringEvent]:
        return list(self._log.all()) if self._log else []

    @property
    def score(self) -> int:
        """Live score while active, the frozen final score once ended."""
        if self._session is None:
            return 100
        if self._state == SessionState.ENDED:
            return self._session.integrity_score
        return integrity_score(self._log.all())

    def start(self, candidate_name: str) -> ProctoringSession:
        name = (candidate_name or "").strip()
        if not name:
            raise InvalidInput("candidate name must not be empty")

        with self._lock:
            if self._state != SessionState.IDLE:
                raise InvalidState(f"cannot start a session that is {self._state.value}")

            session = ProctoringSession(candidate_name=name, start_time=as_utc(self.clock()))
            self._log = EventLog(session.id)
            self._session = session
            self._last_tick_at = session.start_time
            self._state = SessionState.ACTIVE

            log_session_start(session.id, name)
            self.notifier.notify(SESSION_STARTED, session.start_record())
            return session.model_copy()

    def _tick_time(self, now: Optional[datetime]) -> datetime:
        server_now = as_utc(self.clock())
        if now is None:
            now = server_now
        else:
            now = as_utc(now)
            if now - server_now > self.max_skew:
                logger.debug(f"Tick time {now.isoformat()} is ahead of the clock, using {server_now.isoformat()}")
                now = server_now
        if now < self._last_tick_at:
            logger.debug(f"Clamping out-of-order tick {now.isoformat()} to {self._last_tick_at.isoformat()}")
            now = self._last_tick_at
        return now

    def process_tick(self, tick: SignalTick, now: Optional[datetime] = None) -> List[ProctoringEvent]:
        """
        Classify one snapshot and append whatever it produces.

        Ticks that arrive while idle, while ``end()`` runs or after the
        session ended are ignored and return an empty list. A naive ``now``
        is taken as UTC.
        """
        with self._lock:
            if self._state != SessionState.ACTIVE:
                logger.debug(f"Ignoring tick while session is {self._state.value}")
                return []

            now = self._tick_time(now)
            self._last_tick_at = now

            if tick.focus_state == FocusState.LOST:
                if self._focus_lost_since is None:
                    self._focus_lost_since = now
            else:
                self._focus_lost_since = None
            focus_lost_seconds = (
                (now - self._focus_lost_since).total_seconds()
                if self._focus_lost_since is not None else None
            )

            new_events = classify(
                tick,
                self._log.all(),
                now,
                self._session.id,
                rules=self.rules,
                focus_lost_seconds=focus_lost_seconds,
            )
            for event in new_events:
                self._log.append(event)
                log_event_emitted(self._session.id, event.kind.value, event.severity.value, event.description)
                self.notifier.notify(EVENT_RECORDED, event.to_record())

            if new_events:
                self._session.integrity_score = integrity_score(self._log.all())
            return new_events

    def end(self) -> ProctoringSession:
        with self._lock:
            if self._state != SessionState.ACTIVE:
                raise InvalidState(f"cannot end a session that is {self._state.value}")

            session = self._session
            # never before the session start or the last tick it closes
            end_time = max(as_utc(self.clock()), self._last_tick_at)

            self._log.seal()
            events = self._log.all()
            session.integrity_score = integrity_score(events)
            session.end_time = end_time
            self._state = SessionState.ENDED
            self._focus_lost_since = None

            log_session_end(session.id, session.integrity_score, len(events))
            self.notifier.notify(SESSION_ENDED, session.end_record())
            return session.model_copy()


class SessionRegistry:
    """
    Live engines keyed by session id, shared by the HTTP layer.

    Only the ``max_ended`` most recently ended sessions stay in memory;
    reports for older ones come from the database.
    """

    def __init__(
        self,
        sink: Optional[SessionSink] = None,
        clock: Clock = utc_now,
        rules: Optional[ClassifierRules] = None,
        max_ended: Optional[int] = None,
    ):
        self.notifier = SinkNotifier(sink)
        self.clock = clock
        self.rules = rules or ClassifierRules.from_settings()
        self.max_ended = settings.MAX_ENDED_SESSIONS if max_ended is None else max_ended
        self._engines: Dict[str, SessionEngine] = {}
        self._ended: List[str] = []
        self._lock = threading.Lock()

    def create(self, candidate_name: str) -> SessionEngine:
        engine = SessionEngine(clock=self.clock, rules=self.rules, notifier=self.notifier)
        engine.start(candidate_name)
        with self._lock:
            self._engines[engine.session_id] = engine
        return engine

    def end(self, session_id: str) -> ProctoringSession:
        session = self.get(session_id).end()
        with self._lock:
            self._ended.append(session_id)
            while len(self._ended) > self.max_ended:
                evicted = self._ended.pop(0)
                self._engines.pop(evicted, None)
                logger.debug(f"Evicted ended session {evicted} from memory")
        return session

    def get(self, session_id: str) -> SessionEngine:
        with self._lock:
            engine = self._engines.get(session_id)
        if engine is None:
            raise SessionNotFound(session_id)
        return engine

    def find(self, session_id: str) -> Optional[SessionEngine]:
        with self._lock:
            return self._engines.get(session_id)

    def list(self) -> List[SessionEngine]:
        with self._lock:
            return list(self._engines.values())
