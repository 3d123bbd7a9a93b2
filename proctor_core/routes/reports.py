# proctor_core/routes/reports.py
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Response

from ..config import settings
from ..deps import get_registry
from ..services.report_service import build_summary, make_csv_report, make_pdf_report
from ..services.session_engine import SessionRegistry
from ..services.storage import fetch_event_records, fetch_session_record

router = APIRouter(prefix="/api", tags=["reports"])


async def load_session_data(
    session_id: str, registry: SessionRegistry
) -> Tuple[Optional[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Session record and event records, from the live registry when the
    session is held in memory, otherwise from the database.
    """
    engine = registry.find(session_id)
    if engine is not None:
        session = dict(engine.session.start_record(), **engine.session.end_record())
        session["state"] = engine.state.value
        return session, [e.to_record() for e in engine.events]

    if not settings.PERSISTENCE_ENABLED:
        return None, []
    session = await fetch_session_record(session_id)
    if session is None:
        return None, []
    return session, await fetch_event_records(session_id)


@router.get("/report/{session_id}")
async def get_report(session_id: str, format: str = "json", registry: SessionRegistry = Depends(get_registry)):
    """
    Session report in JSON | CSV | PDF.
    """
    if format not in ("json", "csv", "pdf"):
        raise HTTPException(status_code=400, detail="format must be json|csv|pdf")

    session, events = await load_session_data(session_id, registry)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    summary = build_summary(session, events)

    if format == "json":
        return {"session_id": session_id, "session": session, "summary": summary, "events": events}
    elif format == "csv":
        csv_bytes = make_csv_report(session_id, events)
        return Response(
            content=csv_bytes,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={session_id}_report.csv"},
        )
    pdf_bytes = make_pdf_report(session, events, summary)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={session_id}_report.pdf"},
    )
