# proctor_core/models.py
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    FOCUS_LOST = "focus_lost"
    CANDIDATE_ABSENT = "candidate_absent"
    MULTIPLE_FACES = "multiple_faces"
    UNAUTHORIZED_ITEM = "unauthorized_item"


class Severity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class FocusState(str, Enum):
    FOCUSED = "focused"
    LOST = "lost"
    UNKNOWN = "unknown"


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


SEVERITY_BY_KIND: Dict[EventKind, Severity] = {
    EventKind.CANDIDATE_ABSENT: Severity.CRITICAL,
    EventKind.MULTIPLE_FACES: Severity.CRITICAL,
    EventKind.FOCUS_LOST: Severity.MAJOR,
    EventKind.UNAUTHORIZED_ITEM: Severity.MAJOR,
}


def new_id() -> str:
    return str(uuid.uuid4())


class SignalTick(BaseModel):
    """One perception snapshot from the signal source."""

    face_count: int = Field(..., ge=0)
    focus_state: FocusState = FocusState.UNKNOWN
    detected_object_labels: Set[str] = Field(default_factory=set)


class ProctoringEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    session_id: str
    kind: EventKind
    severity: Severity
    description: str
    timestamp: datetime
    # normalised restricted-item label, only set for unauthorized_item
    label: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return {
            "event_id": self.id,
            "session_id": self.session_id,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "description": self.description,
            "label": self.label,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }


class ProctoringSession(BaseModel):
    id: str = Field(default_factory=new_id)
    candidate_name: str = Field(..., min_length=1)
    start_time: datetime
    end_time: Optional[datetime] = None
    integrity_score: int = Field(100, ge=0, le=100)

    @property
    def is_ended(self) -> bool:
        return self.end_time is not None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def start_record(self) -> Dict[str, Any]:
        return {
            "session_id": self.id,
            "candidate_name": self.candidate_name,
            "start_time": self.start_time,
            "integrity_score": self.integrity_score,
        }

    def end_record(self) -> Dict[str, Any]:
        return {
            "session_id": self.id,
            "end_time": self.end_time,
            "integrity_score": self.integrity_score,
        }
