# proctor_core/services/notifier.py
import asyncio
import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Deque, Dict, List, Optional, Set

from ..errors import SinkFailure
from ..utils.logging import log_sink_failure

logger = logging.getLogger(__name__)

SESSION_STARTED = "session_started"
EVENT_RECORDED = "event_recorded"
SESSION_ENDED = "session_ended"


class SessionSink:
    """Receives one-way notifications about sessions and their events."""

    async def session_started(self, record: Dict[str, Any]):
        raise NotImplementedError

    async def event_recorded(self, record: Dict[str, Any]):
        raise NotImplementedError

    async def session_ended(self, record: Dict[str, Any]):
        raise NotImplementedError


class NullSink(SessionSink):
    async def session_started(self, record):
        pass

    async def event_recorded(self, record):
        pass

    async def session_ended(self, record):
        pass


class InMemorySink(SessionSink):
    """Keeps every notification; stands in for MongoDB when persistence is off."""

    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.events: List[Dict[str, Any]] = []

    async def session_started(self, record):
        self.sessions[record["session_id"]] = dict(record)

    async def event_recorded(self, record):
        self.events.append(dict(record))

    async def session_ended(self, record):
        self.sessions.setdefault(record["session_id"], {}).update(record)

    def events_for(self, session_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["session_id"] == session_id]


class SinkNotifier:
    """
    Fire-and-forget delivery of sink notifications.

    Inside a running event loop a task is scheduled on that loop. Without
    one, delivery happens on a single background thread, which keeps
    notifications of one notifier in order. A failed delivery is logged and
    appended to ``failures``; it never reaches the caller of ``notify``.
    """

    def __init__(self, sink: Optional[SessionSink] = None, max_failures: int = 100):
        self.sink = sink or NullSink()
        self.failures: Deque[SinkFailure] = deque(maxlen=max_failures)
        self._tasks: Set[asyncio.Task] = set()
        self._futures: Set[Future] = set()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def notify(self, action: str, record: Dict[str, Any]):
        coro = self._deliver(action, record)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(coro)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return

        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="proctor-sink")
            future = self._executor.submit(asyncio.run, coro)
            self._futures.add(future)
        future.add_done_callback(self._forget_future)

    def _forget_future(self, future: Future):
        with self._lock:
            self._futures.discard(future)

    async def _deliver(self, action: str, record: Dict[str, Any]):
        session_id = record.get("session_id")
        try:
            await getattr(self.sink, action)(record)
        except Exception as exc:
            failure = SinkFailure(action, session_id, exc)
            self.failures.append(failure)
            log_sink_failure(session_id, action, exc)
        else:
            logger.debug(f"Delivered {action} for session {session_id}")

    def flush(self, timeout: Optional[float] = None):
        """Block until notifications sent from outside an event loop are delivered."""
        with self._lock:
            pending = list(self._futures)
        if pending:
            wait(pending, timeout=timeout)

    async def drain(self):
        """Await notifications scheduled on the running loop."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self):
        self.flush()
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
