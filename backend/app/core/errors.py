"""
Workflow error taxonomy. Raised by services before any mutation; rendered by the
handlers in app.main as {"success": false, "error": ...} with the class status code.
"""
from typing import Any, Optional


class WorkflowError(Exception):
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}


class ValidationError(WorkflowError):
    status_code = 400


class NotAuthorized(WorkflowError):
    status_code = 403


class NotParticipant(NotAuthorized):
    def __init__(self, message: str = "Access denied", **kwargs):
        super().__init__(message, **kwargs)


class NotFound(WorkflowError):
    status_code = 404


class PreconditionFailed(WorkflowError):
    status_code = 400


class Conflict(WorkflowError):
    """Uniqueness violation; payload carries the existing entity."""

    status_code = 400


class Internal(WorkflowError):
    status_code = 500
