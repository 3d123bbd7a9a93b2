# proctor_core/services/storage.py
from typing import Any, Dict, List, Optional

from ..db import events_col, sessions_col
from .notifier import SessionSink


def _clean(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


class MongoSessionSink(SessionSink):
    """Writes session and event notifications to MongoDB."""

    def __init__(self, sessions=None, events=None):
        self.sessions = sessions if sessions is not None else sessions_col
        self.events = events if events is not None else events_col

    async def session_started(self, record):
        await self.sessions.insert_one(dict(record, end_time=None))

    async def event_recorded(self, record):
        await self.events.insert_one(dict(record))

    async def session_ended(self, record):
        await self.sessions.update_one(
            {"session_id": record["session_id"]},
            {"$set": {"end_time": record["end_time"], "integrity_score": record["integrity_score"]}},
        )


async def fetch_session_record(session_id: str, sessions=None) -> Optional[Dict[str, Any]]:
    col = sessions if sessions is not None else sessions_col
    return _clean(await col.find_one({"session_id": session_id}))


async def fetch_event_records(session_id: str, events=None, limit: int = 0) -> List[Dict[str, Any]]:
    col = events if events is not None else events_col
    cursor = col.find({"session_id": session_id}).sort("timestamp", 1)
    if limit:
        cursor = cursor.limit(limit)
    out = []
    async for d in cursor:
        out.append(_clean(d))
    return out
