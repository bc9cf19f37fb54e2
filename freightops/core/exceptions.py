"""
Domain errors raised by the core services.

Each error carries the HTTP status the API should answer with; the handler
registered in ``freightops.main`` turns them into ``{"detail": ...}`` responses.
"""
from typing import Optional


class FreightOpsError(Exception):
    """Base class for back-office errors."""
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(FreightOpsError):
    """Raised when a tenant record (employee, payroll, match, ...) does not exist."""
    status_code = 404


class ConflictError(FreightOpsError):
    """Raised when an operation is not valid for the record's current state."""
    status_code = 409


class LimitExceededError(FreightOpsError):
    """Raised when a subscription limit blocks the request."""
    status_code = 403


class RateUnavailableError(FreightOpsError):
    """Raised when no exchange rate (live, cached or fallback) exists for a pair."""
    status_code = 422


class IdentifierGenerationError(FreightOpsError):
    """Raised when a unique identifier cannot be produced."""
    status_code = 500
