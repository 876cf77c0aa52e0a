"""Domain exceptions raised by the gradebook services.

Every error carries a machine-readable ``code`` and the HTTP status it maps
to; ``gradebook.responses`` turns them into the ``{success, data, error}``
envelope at the request boundary.
"""
from typing import Optional


class GradebookError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(GradebookError):
    """Malformed input, e.g. weights not summing to 100."""
    code = "VALIDATION_ERROR"
    status_code = 400


class ForbiddenError(GradebookError):
    """The principal may not act on this class, subject or record."""
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(GradebookError):
    code = "NOT_FOUND"
    status_code = 404


class StateError(GradebookError):
    """Action attempted out of sequence, e.g. publish before compile."""
    code = "STATE_ERROR"
    status_code = 409


class ComputationError(GradebookError):
    """Nothing to aggregate."""
    code = "COMPUTATION_ERROR"
    status_code = 422


class InternalError(GradebookError):
    code = "INTERNAL_ERROR"
    status_code = 500
