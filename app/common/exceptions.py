"""
Domain errors of the order lifecycle and billing ledger.

All of them are HTTPExceptions so that services can raise them directly and
routers let them propagate, with a structured ``detail`` the client can act on.
"""
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status


class LedgerError(HTTPException):
    """Base class for ledger domain errors."""

    code = "ledger_error"

    def __init__(self, status_code: int, message: str, **fields):
        detail = {"error": self.code, "message": message}
        detail.update({k: _jsonable(v) for k, v in fields.items()})
        super().__init__(status_code=status_code, detail=detail)
        self.message = message


def _jsonable(value):
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if hasattr(value, "value"):
        return value.value
    return value


class InvalidTransition(LedgerError):
    code = "invalid_transition"

    def __init__(self, from_status, to_status, resource: str = "order"):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Cannot move {resource} from '{_jsonable(from_status)}' to '{_jsonable(to_status)}'",
            from_status=from_status,
            to_status=to_status,
        )


class ConfirmationRequired(LedgerError):
    code = "confirmation_required"

    def __init__(self, order_id: UUID):
        self.order_id = order_id
        super().__init__(
            status.HTTP_409_CONFLICT,
            "The customer has not confirmed delivery of this order",
            order_id=order_id,
        )


class InsufficientStock(LedgerError):
    code = "insufficient_stock"

    def __init__(self, sku: Optional[str], available: int, requested: int, inventory_id: Optional[UUID] = None):
        self.sku = sku
        self.available = available
        self.requested = requested
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Insufficient stock for {sku or inventory_id}: available {available}, requested {requested}",
            sku=sku,
            available=available,
            requested=requested,
            inventory_id=inventory_id,
        )


class DuplicateInvoice(LedgerError):
    """Raised internally when an order already has its invoice."""

    code = "duplicate_invoice"

    def __init__(self, order_id: UUID, invoice_id: UUID):
        self.order_id = order_id
        self.invoice_id = invoice_id
        super().__init__(
            status.HTTP_409_CONFLICT,
            "An invoice already exists for this order",
            order_id=order_id,
            invoice_id=invoice_id,
        )


class SequenceConflict(LedgerError):
    code = "sequence_conflict"

    def __init__(self, customer_id: UUID, year: int, attempts: int):
        super().__init__(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            f"Could not allocate an invoice number after {attempts} attempts",
            customer_id=customer_id,
            year=year,
            attempts=attempts,
        )


class TransientConflict(LedgerError):
    code = "transient_conflict"

    def __init__(self, message: str = "Concurrent update detected, retry the operation"):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, message)


class NotFound(LedgerError):
    code = "not_found"

    def __init__(self, resource: str, resource_id):
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            f"{resource} not found",
            resource=resource,
            id=resource_id,
        )


class ValidationFailed(LedgerError):
    code = "validation_error"

    def __init__(self, message: str, **fields):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, **fields)
