# proctor_core/routes/ws.py
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..errors import SessionNotFound
from ..schemas import DetectionsIn, TickIn
from ..services.session_engine import SessionRegistry
from ..services.signal_source import tick_from_detections
from ..deps import get_registry
from .sessions import run_tick

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["ws"])


@router.websocket("/sessions/{session_id}")
async def stream_ws(websocket: WebSocket, session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """
    Receives JSON messages, one per tick, either a signal snapshot:
    {"face_count": 1, "focus_state": "focused", "detected_object_labels": [], "frame_time": 169xxxxxx}
    or raw detector output:
    {"faces": [{"bbox": [x, y, w, h]}], "objects": [{"label": "cell phone", "confidence": 0.8}]}

    Messages are handled one after another so ticks of a session never overlap.
    """
    await websocket.accept()
    try:
        engine = registry.get(session_id)
    except SessionNotFound:
        await websocket.send_text(json.dumps({"error": "session not found"}))
        await websocket.close(code=4404)
        return

    try:
        while True:
            data = await websocket.receive_text()
            try:
                payload = json.loads(data)
                if "faces" in payload or "objects" in payload:
                    det = DetectionsIn.model_validate(payload)
                    tick = tick_from_detections(
                        [f.model_dump() for f in det.faces],
                        [o.model_dump() for o in det.objects],
                    )
                    frame_time = det.frame_time
                else:
                    body = TickIn.model_validate(payload)
                    tick, frame_time = body.to_tick(), body.frame_time
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"error": "invalid json"}))
                continue
            except ValidationError as exc:
                await websocket.send_text(json.dumps({"error": "invalid tick", "detail": exc.errors(include_url=False)}, default=str))
                continue

            result = run_tick(engine, tick, frame_time)
            await websocket.send_text(result.model_dump_json())
    except WebSocketDisconnect:
        logger.debug(f"WebSocket for session {session_id} disconnected")
        return
