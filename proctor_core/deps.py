# proctor_core/deps.py
from typing import Optional

from .config import settings
from .services.notifier import InMemorySink
from .services.session_engine import SessionRegistry

_registry: Optional[SessionRegistry] = None


def build_registry() -> SessionRegistry:
    if settings.PERSISTENCE_ENABLED:
        from .services.storage import MongoSessionSink
        sink = MongoSessionSink()
    else:
        sink = InMemorySink()
    return SessionRegistry(sink=sink)


def get_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        _registry = build_registry()
    return _registry
