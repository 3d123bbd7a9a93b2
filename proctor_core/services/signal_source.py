# proctor_core/services/signal_source.py
from typing import Any, Dict, Iterable, Optional

from ..config import settings
from ..models import FocusState, SignalTick


def _focus_for_single_face(face: Dict[str, Any], look_away_threshold: float) -> FocusState:
    looking = face.get("looking_at_screen")
    if looking is not None:
        return FocusState.FOCUSED if looking else FocusState.LOST

    bbox = face.get("bbox")
    if not bbox or len(bbox) < 4:
        return FocusState.UNKNOWN
    xmin, _, width, _ = (float(v) for v in bbox[:4])
    dx = xmin + width / 2.0 - 0.5
    return FocusState.LOST if abs(dx) > look_away_threshold else FocusState.FOCUSED


def tick_from_detections(
    faces: Iterable[Dict[str, Any]],
    objects: Iterable[Dict[str, Any]] = (),
    confidence_threshold: Optional[float] = None,
    look_away_threshold: Optional[float] = None,
) -> SignalTick:
    """
    Build a tick from raw detector output.

    ``faces`` are ``{"bbox": [xmin, ymin, w, h], "looking_at_screen": bool}``
    with normalised coordinates, either key optional. ``objects`` are
    ``{"label": str, "confidence": float}``; low-confidence detections are
    dropped before they reach the classifier.
    """
    if confidence_threshold is None:
        confidence_threshold = settings.OBJECT_CONFIDENCE_THRESHOLD
    if look_away_threshold is None:
        look_away_threshold = settings.LOOK_AWAY_X_THRESHOLD

    faces = list(faces)
    if len(faces) == 1:
        focus = _focus_for_single_face(faces[0], look_away_threshold)
    else:
        # nobody in frame, or somebody else in it
        focus = FocusState.LOST

    labels = {
        str(o["label"])
        for o in objects
        if o.get("label") and float(o.get("confidence", 1.0)) >= confidence_threshold
    }
    return SignalTick(face_count=len(faces), focus_state=focus, detected_object_labels=labels)
