"""Service-level errors shared by the payroll and scheduling services."""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "error"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when request input fails a business rule."""

    code = "validation_error"


class NotFoundError(ServiceError):
    """Raised when a record does not exist for the calling tenant."""

    code = "not_found"


class DuplicatePayRunError(ServiceError):
    """Raised when a pay run already covers part of the requested period."""

    code = "duplicate_pay_run"


class DuplicateRateError(ServiceError):
    """Raised when a staff member already has a rate on the effective date."""

    code = "duplicate_rate"
