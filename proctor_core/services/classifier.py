# proctor_core/services/classifier.py
"""
Event Classifier - turns one signal tick into classified proctoring events

Each rule is evaluated independently on every tick:

- focus lost          -> focus_lost        (major,    10 s window)
- no face             -> candidate_absent  (critical, 15 s window)
- more than one face  -> multiple_faces    (critical, 10 s window)
- restricted object   -> unauthorized_item (major,    30 s window per label)

A rule stays silent while an event of the same kind (and, for items, the
same restricted label) is younger than its window. Windows are measured
from the stored event's timestamp to the tick time with ``elapsed < window``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import Settings, settings
from ..models import (
    SEVERITY_BY_KIND,
    EventKind,
    FocusState,
    ProctoringEvent,
    SignalTick,
)
from ..utils.clock import elapsed_ms

DEFAULT_RESTRICTED_ITEMS = ("phone", "book", "laptop", "tablet")


@dataclass(frozen=True)
class ClassifierRules:
    focus_lost_window_ms: int = 10_000
    candidate_absent_window_ms: int = 15_000
    multiple_faces_window_ms: int = 10_000
    unauthorized_item_window_ms: int = 30_000
    restricted_items: Tuple[str, ...] = DEFAULT_RESTRICTED_ITEMS
    _windows: Dict[EventKind, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        items = tuple(dict.fromkeys(i.strip().lower() for i in self.restricted_items if i.strip()))
        object.__setattr__(self, "restricted_items", items)
        object.__setattr__(self, "_windows", {
            EventKind.FOCUS_LOST: self.focus_lost_window_ms,
            EventKind.CANDIDATE_ABSENT: self.candidate_absent_window_ms,
            EventKind.MULTIPLE_FACES: self.multiple_faces_window_ms,
            EventKind.UNAUTHORIZED_ITEM: self.unauthorized_item_window_ms,
        })

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "ClassifierRules":
        cfg = cfg or settings
        return cls(
            focus_lost_window_ms=cfg.FOCUS_LOST_WINDOW_MS,
            candidate_absent_window_ms=cfg.CANDIDATE_ABSENT_WINDOW_MS,
            multiple_faces_window_ms=cfg.MULTIPLE_FACES_WINDOW_MS,
            unauthorized_item_window_ms=cfg.UNAUTHORIZED_ITEM_WINDOW_MS,
            restricted_items=tuple(cfg.RESTRICTED_ITEMS),
        )

    def window_ms(self, kind: EventKind) -> int:
        return self._windows[kind]


def match_restricted_items(
    labels: Iterable[str], restricted_items: Sequence[str]
) -> List[Tuple[str, str]]:
    """
    Pair detector labels with the restricted items they contain.

    Returns ``(restricted_item, detected_label)`` pairs, at most one per
    restricted item, e.g. ``"Cell Phone"`` -> ``("phone", "Cell Phone")``.
    """
    matches = []
    seen = set()
    for label in sorted(labels):
        lowered = label.lower()
        for item in restricted_items:
            if item in seen or item not in lowered:
                continue
            seen.add(item)
            matches.append((item, label))
    return matches


def recently_emitted(
    events: Iterable[ProctoringEvent],
    kind: EventKind,
    now: datetime,
    window_ms: int,
    label: Optional[str] = None,
) -> bool:
    for e in events:
        if e.kind != kind:
            continue
        if label is not None and e.label != label:
            continue
        if elapsed_ms(e.timestamp, now) < window_ms:
            return True
    return False


def _event(session_id: str, kind: EventKind, description: str, now: datetime, **extra) -> ProctoringEvent:
    return ProctoringEvent(
        session_id=session_id,
        kind=kind,
        severity=SEVERITY_BY_KIND[kind],
        description=description,
        timestamp=now,
        **extra,
    )


def classify(
    tick: SignalTick,
    events: Sequence[ProctoringEvent],
    now: datetime,
    session_id: str,
    rules: Optional[ClassifierRules] = None,
    focus_lost_seconds: Optional[float] = None,
) -> List[ProctoringEvent]:
    """
    Decide which new events a tick produces given the session's log.

    Pure: nothing is appended here, the caller owns the log.
    ``focus_lost_seconds`` only feeds event metadata.
    """
    rules = rules or ClassifierRules()
    emitted: List[ProctoringEvent] = []

    def suppressed(kind: EventKind, label: Optional[str] = None) -> bool:
        return recently_emitted(events, kind, now, rules.window_ms(kind), label)

    if tick.focus_state == FocusState.LOST and not suppressed(EventKind.FOCUS_LOST):
        metadata = {}
        if focus_lost_seconds is not None:
            metadata["duration_seconds"] = round(focus_lost_seconds, 3)
        emitted.append(_event(
            session_id, EventKind.FOCUS_LOST,
            "Candidate lost focus - looking away from screen",
            now, metadata=metadata,
        ))

    if tick.face_count == 0:
        if not suppressed(EventKind.CANDIDATE_ABSENT):
            emitted.append(_event(
                session_id, EventKind.CANDIDATE_ABSENT,
                "No face detected - candidate may have left",
                now, metadata={"face_count": 0},
            ))
    elif tick.face_count > 1:
        if not suppressed(EventKind.MULTIPLE_FACES):
            emitted.append(_event(
                session_id, EventKind.MULTIPLE_FACES,
                f"Multiple faces detected ({tick.face_count})",
                now, metadata={"face_count": tick.face_count},
            ))

    for item, detected in match_restricted_items(tick.detected_object_labels, rules.restricted_items):
        if suppressed(EventKind.UNAUTHORIZED_ITEM, label=item):
            continue
        emitted.append(_event(
            session_id, EventKind.UNAUTHORIZED_ITEM,
            f"Unauthorized item detected: {detected}",
            now, label=item, metadata={"object_type": detected},
        ))

    return emitted
