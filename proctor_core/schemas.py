# proctor_core/schemas.py
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from .models import FocusState, ProctoringEvent, SessionState, SignalTick
from .utils.clock import check_unix_seconds

# client may send a UNIX timestamp in seconds
FrameTime = Optional[Annotated[float, AfterValidator(check_unix_seconds)]]


class StartSessionIn(BaseModel):
    candidate_name: str


class TickIn(BaseModel):
    face_count: int = Field(..., ge=0)
    focus_state: FocusState = FocusState.UNKNOWN
    detected_object_labels: List[str] = Field(default_factory=list)
    frame_time: FrameTime = None

    def to_tick(self) -> SignalTick:
        return SignalTick(
            face_count=self.face_count,
            focus_state=self.focus_state,
            detected_object_labels=set(self.detected_object_labels),
        )


class FaceIn(BaseModel):
    bbox: Optional[List[float]] = None
    looking_at_screen: Optional[bool] = None


class DetectedObjectIn(BaseModel):
    label: str
    confidence: float = 1.0


class DetectionsIn(BaseModel):
    faces: List[FaceIn] = Field(default_factory=list)
    objects: List[DetectedObjectIn] = Field(default_factory=list)
    frame_time: FrameTime = None


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    kind: str
    severity: str
    description: str
    label: Optional[str] = None
    timestamp: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_event(cls, event: ProctoringEvent) -> "EventOut":
        return cls(
            id=event.id,
            session_id=event.session_id,
            kind=event.kind.value,
            severity=event.severity.value,
            description=event.description,
            label=event.label,
            timestamp=event.timestamp,
            metadata=dict(event.metadata),
        )


class SessionOut(BaseModel):
    session_id: str
    candidate_name: str
    state: SessionState
    start_time: datetime
    end_time: Optional[datetime] = None
    integrity_score: int
    events_count: int = 0


class TickOut(BaseModel):
    session_id: str
    events: List[EventOut]
    integrity_score: int
