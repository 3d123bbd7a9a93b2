# proctor_core/services/report_service.py
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, List, Optional

import pandas as pd
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from ..models import EventKind, Severity
from ..utils.scoring import compute_integrity_score, severity_of

CSV_COLUMNS = ["event_id", "session_id", "timestamp", "kind", "severity", "description", "label", "metadata"]


def _duration_minutes(session: Dict[str, Any]) -> int:
    start, end = session.get("start_time"), session.get("end_time")
    if not start or not end:
        return 0
    return round((end - start).total_seconds() / 60)


def _events_by_hour(events: List[Dict]) -> List[Dict[str, Any]]:
    if not events:
        return []
    stamps = pd.to_datetime(pd.Series([e.get("timestamp") for e in events]), utc=True)
    counts = stamps.dt.hour.value_counts().sort_index()
    return [{"hour": f"{int(h):02d}:00", "events": int(n)} for h, n in counts.items()]


def build_summary(session: Dict[str, Any], events: List[Dict]) -> Dict[str, Any]:
    """
    Summary block of a session report. The score is recomputed from the
    events, so it matches the live engine without trusting the stored value.
    """
    scoring = compute_integrity_score(events)
    severities = {s.value: 0 for s in Severity}
    for e in events:
        sev = severity_of(e)
        if sev is not None:
            severities[sev.value] += 1

    return {
        "candidate_name": session.get("candidate_name"),
        "duration_minutes": _duration_minutes(session),
        "total_events": len(events),
        "counts": {k.value: scoring["counts"].get(k.value, 0) for k in EventKind},
        "severity_distribution": severities,
        "events_by_hour": _events_by_hour(events),
        "score": scoring["score"],
        "recorded_score": session.get("integrity_score"),
        "total_deductions": scoring["total_deductions"],
    }


def make_csv_report(session_id: str, events: List[Dict]) -> bytes:
    df = pd.DataFrame(events, columns=CSV_COLUMNS)
    return df.to_csv(index=False).encode("utf-8")


def make_pdf_report(session: Dict[str, Any], events: List[Dict], summary: Dict, generated_at: Optional[datetime] = None) -> bytes:
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    W, H = letter
    y = H - 50

    def next_line(step: int):
        nonlocal y
        y -= step
        if y < 60:
            c.showPage()
            y = H - 50

    generated_at = generated_at or datetime.now(timezone.utc)

    c.setFont("Helvetica-Bold", 16)
    c.drawString(50, y, f"Proctoring Report - {session.get('candidate_name', '')}")
    next_line(30)

    c.setFont("Helvetica", 10)
    c.drawString(50, y, f"Session: {session.get('session_id')}")
    next_line(14)
    c.drawString(50, y, f"Generated: {generated_at.isoformat()}")
    next_line(20)

    c.setFont("Helvetica-Bold", 12)
    c.drawString(50, y, "Summary")
    next_line(16)
    c.setFont("Helvetica", 10)
    c.drawString(60, y, f"Integrity Score: {summary.get('score')}")
    next_line(12)
    c.drawString(60, y, f"Total Deductions: {summary.get('total_deductions')}")
    next_line(12)
    c.drawString(60, y, f"Duration: {summary.get('duration_minutes')} min")
    next_line(14)

    c.drawString(60, y, "Event counts:")
    next_line(12)
    for k, v in (summary.get("counts") or {}).items():
        c.drawString(70, y, f"{k}: {v}")
        next_line(12)

    next_line(10)
    c.setFont("Helvetica-Bold", 11)
    c.drawString(50, y, "Events (last 50):")
    next_line(16)
    c.setFont("Helvetica", 9)
    for e in events[-50:]:
        ts = e.get("timestamp")
        ts = ts.isoformat() if hasattr(ts, "isoformat") else (ts or "")
        s = f"{ts} | {e.get('severity')} | {e.get('kind')} | {e.get('description', '')}"
        c.drawString(50, y, s[:150])
        next_line(12)

    c.showPage()
    c.save()
    pdf = buffer.getvalue()
    buffer.close()
    return pdf
