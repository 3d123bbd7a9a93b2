# proctor_core/db.py
from motor.motor_asyncio import AsyncIOMotorClient

from .config import settings

_client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True)
db = _client[settings.DATABASE_NAME]

sessions_col = db["proctoring_sessions"]
events_col = db["proctoring_events"]


async def create_indexes():
    # session lookups by id and per-session event scans in time order
    await sessions_col.create_index("session_id", unique=True)
    await sessions_col.create_index("start_time")
    await events_col.create_index([("session_id", 1), ("timestamp", 1)])
    await events_col.create_index("event_id", unique=True)
