# receipt_hub/services/errors.py
"""
Domain errors raised by the receipt services.

Every error raised inside ``transaction(db)`` rolls the whole operation back.
Routers translate them to HTTP responses: NotFoundError -> 404, any other
ReceiptError -> 400.
"""
from __future__ import annotations


class ReceiptError(ValueError):
    """Base class for receipt domain errors."""


class NotFoundError(ReceiptError, LookupError):
    """A referenced receipt, item or product does not exist."""

    def __init__(self, entity: str, ref: object):
        self.entity = entity
        self.ref = ref
        super().__init__(f"{entity} not found: {ref}")


class InvariantViolationError(ReceiptError):
    """A business precondition does not hold."""


class EmptyReceiptError(InvariantViolationError):
    def __init__(self, receipt_id: object):
        self.receipt_id = receipt_id
        super().__init__(f"No items on receipt {receipt_id}")


class InvalidTransitionError(InvariantViolationError):
    """The requested status change is not allowed on this path."""

    def __init__(self, old_status: object, new_status: object, reason: str):
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(f"Cannot change status {old_status} -> {new_status}: {reason}")


class RepositoryError(ReceiptError):
    """A write affected nothing (soft repository failure turned fatal)."""


class ClosedReceiptError(InvariantViolationError):
    """A write was attempted on a receipt in a final status."""

    def __init__(self, receipt_id: object, status: object, action: str):
        self.receipt_id = receipt_id
        self.status = status
        super().__init__(f"Receipt {receipt_id} is {status}; cannot {action}")
