"""
Ledger error taxonomy.

Every failure raised by the services derives from LedgerError so the route
layer can map it to a JSON response with one handler. Validation-class
errors are raised before any write; ConcurrencyConflict and
PersistenceError come out of the transaction boundary in
services/concurrency.py and are never retried by the core.
"""


class LedgerError(Exception):
    """Base class for ledger operation errors."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": type(self).__name__}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError):
    """Malformed input. Raised before anything is written."""
    http_status = 400


class EmptyCartError(ValidationError):
    """Checkout called with no line items."""


class NotFoundError(LedgerError):
    http_status = 404


class InsufficientStock(LedgerError):
    """A decrement would drive current_stock below zero."""
    http_status = 409


class OverRefundError(LedgerError):
    """Requested refund quantity exceeds quantity - refunded_quantity."""
    http_status = 409


class ShiftAlreadyOpenError(LedgerError):
    http_status = 409


class ShiftAlreadyClosedError(LedgerError):
    http_status = 409


class ConcurrencyConflict(LedgerError):
    """A racing write won; the caller decides whether to retry."""
    http_status = 409


class PersistenceError(LedgerError):
    """Storage or schema unavailable. Needs operator intervention."""
    http_status = 503


class PermissionDenied(LedgerError):
    http_status = 403
