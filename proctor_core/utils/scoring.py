# proctor_core/utils/scoring.py
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from ..models import SEVERITY_BY_KIND, EventKind, ProctoringEvent, Severity

MAX_SCORE = 100

PENALTIES: Dict[Severity, int] = {
    Severity.CRITICAL: 15,
    Severity.MAJOR: 10,
    Severity.MINOR: 5,
}

EventLike = Union[ProctoringEvent, Mapping[str, Any]]


def _kind_of(event: EventLike) -> Optional[EventKind]:
    if isinstance(event, ProctoringEvent):
        return event.kind
    raw = event.get("kind") or event.get("event_type")
    try:
        return EventKind(raw)
    except ValueError:
        return None


def severity_of(event: EventLike) -> Optional[Severity]:
    """
    Severity of a live event or of a persisted record.

    Records written before severity was stored fall back to the fixed
    kind -> severity mapping.
    """
    if isinstance(event, ProctoringEvent):
        return event.severity
    raw = event.get("severity")
    if raw is not None:
        return Severity(raw)
    kind = _kind_of(event)
    return SEVERITY_BY_KIND.get(kind) if kind else None


def penalty(severity: Optional[Severity]) -> int:
    if severity is None:
        return 0
    return PENALTIES[Severity(severity)]


def integrity_score(events: Iterable[EventLike]) -> int:
    total = sum(penalty(severity_of(e)) for e in events)
    return max(0, MAX_SCORE - total)


def compute_integrity_score(events: Iterable[EventLike]) -> Dict:
    counts = {}
    total_deduction = 0
    for e in events:
        kind = _kind_of(e)
        key = kind.value if kind else "unknown"
        counts[key] = counts.get(key, 0) + 1
        total_deduction += penalty(severity_of(e))
    score = max(0, MAX_SCORE - total_deduction)
    return {"score": score, "counts": counts, "total_deductions": total_deduction}
