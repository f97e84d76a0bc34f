"""Domain error hierarchy.

Every business-rule violation is raised as a DealRegError subclass and
rendered by the API exception handlers into the standard error envelope.
Each class carries the HTTP status it maps to and a stable error code.
"""

from __future__ import annotations

from typing import Any


class DealRegError(Exception):
    """Base error for domain/application exceptions."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(DealRegError):
    """Missing or malformed required input; the caller can correct and retry."""

    status_code = 400
    code = "validation_error"


class DuplicateConflict(DealRegError):
    """Deal submission blocked because matching active deals already exist."""

    status_code = 409
    code = "duplicate_deal"

    def __init__(self, duplicates: list[dict[str, str]]) -> None:
        super().__init__(
            "Potential duplicate deal detected",
            detail={"duplicates": duplicates},
        )
        self.duplicates = duplicates


class NotFound(DealRegError):
    """Entity id could not be resolved in the backing store."""

    status_code = 404
    code = "not_found"


class InvalidTransition(DealRegError):
    """A deal lifecycle rule was violated."""

    status_code = 409
    code = "invalid_transition"


class ConcurrentModification(DealRegError):
    """Row changed between read and write (stale updated_at token)."""

    status_code = 409
    code = "concurrent_modification"


class Unauthenticated(DealRegError):
    """Token missing, invalid or expired, or the user is not active."""

    status_code = 401
    code = "unauthenticated"


class Forbidden(DealRegError):
    """Caller is authenticated but lacks the required role."""

    status_code = 403
    code = "forbidden"


class StoreUnavailable(DealRegError):
    """Backing store I/O failure. Never retried automatically."""

    status_code = 503
    code = "store_unavailable"


class StoreSchemaError(DealRegError):
    """A table header does not carry the columns its schema requires."""

    status_code = 500
    code = "store_schema_error"
