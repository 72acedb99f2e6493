"""Error taxonomy shared by the exchange and marketplace surfaces.

Only payload-shape problems and domain rule violations are raised as
exceptions. Per-item failures inside a batch are returned as values
(see ``services.reconciler.ItemResult``) and never reach this module.
"""
from typing import Any, Optional


class LedgerSyncError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SchemaValidationError(LedgerSyncError):
    """Malformed batch payload; aborts the whole batch before any item runs."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, details: Any, message: str = "Validation error"):
        super().__init__(message)
        self.details = details


class UnauthorizedError(LedgerSyncError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(LedgerSyncError):
    status_code = 404
    code = "NOT_FOUND"


class DomainValidationError(LedgerSyncError):
    """Business rule violation (cross-link mismatch, inactive entity, quantity below minimum)."""

    status_code = 400
    code = "VALIDATION_ERROR"


def error_body(exc: LedgerSyncError, details: Optional[Any] = None) -> dict:
    body = {"error": exc.message, "code": exc.code}
    if details is not None:
        body["details"] = details
    return body
