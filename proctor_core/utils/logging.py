# proctor_core/utils/logging.py
"""
Proctoring Logger - log configuration and structured proctoring log lines
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("proctor_core.events")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``proctor_core`` logger tree.

    Handlers are only attached once, so calling this again (uvicorn
    reload, test sessions) does not duplicate output.
    """
    root = logging.getLogger("proctor_core")
    root.setLevel(level.upper())

    if not root.handlers:
        formatter = logging.Formatter(LOG_FORMAT)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    return root


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: int = logging.INFO,
):
    message = f"[PROCTOR] session={session_id} event={event_type}"
    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"
    logger.log(level, message)


def log_session_start(session_id: str, candidate_name: str):
    log_proctor_event(session_id, "session_start", {"candidate": candidate_name})


def log_session_end(session_id: str, integrity_score: int, events: int):
    log_proctor_event(
        session_id,
        "session_end",
        {"integrity_score": integrity_score, "events": events},
    )


def log_event_emitted(session_id: str, kind: str, severity: str, description: str):
    log_proctor_event(
        session_id,
        kind,
        {"severity": severity, "description": repr(description)},
        level=logging.WARNING,
    )


def log_sink_failure(session_id: Optional[str], action: str, error: BaseException):
    log_proctor_event(
        session_id or "-",
        "sink_failure",
        {"action": action, "error": repr(error)},
        level=logging.ERROR,
    )
