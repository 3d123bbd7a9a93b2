# proctor_core/routes/sessions.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_registry
from ..errors import InvalidInput, InvalidState, SessionNotFound
from ..models import SignalTick
from ..schemas import DetectionsIn, EventOut, SessionOut, StartSessionIn, TickIn, TickOut
from ..services.session_engine import SessionEngine, SessionRegistry
from ..services.signal_source import tick_from_detections
from ..utils.clock import from_unix

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def session_out(engine: SessionEngine) -> SessionOut:
    session = engine.session
    return SessionOut(
        session_id=session.id,
        candidate_name=session.candidate_name,
        state=engine.state,
        start_time=session.start_time,
        end_time=session.end_time,
        integrity_score=engine.score,
        events_count=len(engine.events),
    )


def _engine_or_404(registry: SessionRegistry, session_id: str) -> SessionEngine:
    try:
        return registry.get(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


def run_tick(engine: SessionEngine, tick: SignalTick, frame_time=None) -> TickOut:
    now = from_unix(frame_time) if frame_time is not None else None
    events = engine.process_tick(tick, now=now)
    return TickOut(
        session_id=engine.session_id,
        events=[EventOut.from_event(e) for e in events],
        integrity_score=engine.score,
    )


@router.post("", response_model=SessionOut, status_code=201)
async def start_session(body: StartSessionIn, registry: SessionRegistry = Depends(get_registry)):
    """
    Start monitoring a candidate. The session begins at score 100.
    """
    try:
        engine = registry.create(body.candidate_name)
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return session_out(engine)


@router.get("", response_model=List[SessionOut])
async def list_sessions(registry: SessionRegistry = Depends(get_registry)):
    return [session_out(e) for e in registry.list()]


@router.get("/{session_id}", response_model=SessionOut)
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return session_out(_engine_or_404(registry, session_id))


@router.post("/{session_id}/ticks", response_model=TickOut)
async def post_tick(session_id: str, body: TickIn, registry: SessionRegistry = Depends(get_registry)):
    """
    Feed one signal snapshot. Snapshots sent after the session ended are
    accepted and ignored.
    """
    engine = _engine_or_404(registry, session_id)
    return run_tick(engine, body.to_tick(), body.frame_time)


@router.post("/{session_id}/detections", response_model=TickOut)
async def post_detections(session_id: str, body: DetectionsIn, registry: SessionRegistry = Depends(get_registry)):
    engine = _engine_or_404(registry, session_id)
    tick = tick_from_detections(
        [f.model_dump() for f in body.faces],
        [o.model_dump() for o in body.objects],
    )
    return run_tick(engine, tick, body.frame_time)


@router.post("/{session_id}/end", response_model=SessionOut)
async def end_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    engine = _engine_or_404(registry, session_id)
    try:
        registry.end(session_id)
    except InvalidState as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return session_out(engine)


@router.get("/{session_id}/events", response_model=List[EventOut])
async def get_events(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    engine = _engine_or_404(registry, session_id)
    return [EventOut.from_event(e) for e in engine.events]
