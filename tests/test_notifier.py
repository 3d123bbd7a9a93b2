"""
Tests for fire-and-forget sink delivery
"""
import asyncio
from unittest.mock import AsyncMock

from proctor_core.services.notifier import (
    EVENT_RECORDED,
    SESSION_ENDED,
    SESSION_STARTED,
    InMemorySink,
    NullSink,
    SinkNotifier,
)
from proctor_core.services.storage import MongoSessionSink


def test_delivery_outside_event_loop(sink):
    notifier = SinkNotifier(sink)
    notifier.notify(SESSION_STARTED, {"session_id": "s1", "candidate_name": "Alice"})
    notifier.notify(EVENT_RECORDED, {"session_id": "s1", "kind": "focus_lost"})
    notifier.notify(SESSION_ENDED, {"session_id": "s1", "integrity_score": 90})
    notifier.close()

    assert sink.sessions["s1"] == {"session_id": "s1", "candidate_name": "Alice", "integrity_score": 90}
    assert sink.events_for("s1") == [{"session_id": "s1", "kind": "focus_lost"}]
    assert not notifier.failures


def test_delivery_inside_event_loop():
    sink = InMemorySink()
    notifier = SinkNotifier(sink)

    async def scenario():
        notifier.notify(SESSION_STARTED, {"session_id": "s1"})
        # scheduled, not awaited by notify()
        assert "s1" not in sink.sessions
        await notifier.drain()

    asyncio.run(scenario())
    assert "s1" in sink.sessions


def test_failure_is_recorded_not_raised(failing_sink):
    notifier = SinkNotifier(failing_sink)
    notifier.notify(SESSION_STARTED, {"session_id": "s1"})
    notifier.close()

    (failure,) = notifier.failures
    assert failure.action == SESSION_STARTED
    assert failure.session_id == "s1"
    assert isinstance(failure.cause, ConnectionError)


def test_default_sink_discards():
    notifier = SinkNotifier()
    assert isinstance(notifier.sink, NullSink)
    notifier.notify(SESSION_STARTED, {"session_id": "s1"})
    notifier.close()
    assert not notifier.failures


def test_mongo_sink_writes():
    sessions, events = AsyncMock(), AsyncMock()
    mongo = MongoSessionSink(sessions=sessions, events=events)

    async def scenario():
        await mongo.session_started({"session_id": "s1", "integrity_score": 100})
        await mongo.event_recorded({"session_id": "s1", "event_id": "e1"})
        await mongo.session_ended({"session_id": "s1", "end_time": "t", "integrity_score": 85})

    asyncio.run(scenario())

    sessions.insert_one.assert_awaited_once_with({"session_id": "s1", "integrity_score": 100, "end_time": None})
    events.insert_one.assert_awaited_once_with({"session_id": "s1", "event_id": "e1"})
    sessions.update_one.assert_awaited_once_with(
        {"session_id": "s1"},
        {"$set": {"end_time": "t", "integrity_score": 85}},
    )
