# proctor_core/errors.py
from typing import Optional


class ProctoringError(Exception):
    """Base class for errors raised by the session engine."""


class InvalidInput(ProctoringError):
    pass


class InvalidState(ProctoringError):
    pass


class SessionNotFound(ProctoringError):
    def __init__(self, session_id: str):
        super().__init__(f"session {session_id} not found")
        self.session_id = session_id


class SinkFailure(ProctoringError):
    """
    A persistence notification could not be delivered.

    Never raised out of a state transition; kept on the notifier's
    ``failures`` side channel instead.
    """

    def __init__(self, action: str, session_id: Optional[str], cause: BaseException):
        super().__init__(f"{action} failed for session {session_id}: {cause!r}")
        self.action = action
        self.session_id = session_id
        self.cause = cause
