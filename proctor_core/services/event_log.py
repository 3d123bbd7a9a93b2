# proctor_core/services/event_log.py
import threading
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from ..errors import InvalidState
from ..models import EventKind, ProctoringEvent


class EventLog:
    """
    Append-only, ordered store of the events of one session.

    Every operation takes the log's lock, so appends never interleave with
    a read and ``all()`` always returns a complete snapshot.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._events: List[ProctoringEvent] = []
        self._lock = threading.Lock()
        self._sealed = False

    def append(self, event: ProctoringEvent) -> ProctoringEvent:
        if event.session_id != self.session_id:
            raise ValueError(
                f"event belongs to session {event.session_id}, not {self.session_id}"
            )
        with self._lock:
            if self._sealed:
                raise InvalidState(f"event log of session {self.session_id} is sealed")
            if self._events and event.timestamp < self._events[-1].timestamp:
                raise ValueError("events must be appended in timestamp order")
            self._events.append(event)
        return event

    def query(self, kind: EventKind, since: Optional[datetime] = None) -> List[ProctoringEvent]:
        with self._lock:
            return [
                e for e in self._events
                if e.kind == kind and (since is None or e.timestamp >= since)
            ]

    def all(self) -> Tuple[ProctoringEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def seal(self):
        with self._lock:
            self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __iter__(self) -> Iterator[ProctoringEvent]:
        return iter(self.all())
