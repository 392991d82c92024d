# Overview: Typed error taxonomy shared by services and routes.

from __future__ import annotations


class PosError(Exception):
    """
    Base class for every error the core returns to its caller.

    Carries a stable machine code, the HTTP status the API layer maps it to,
    and a details dict for structured context (product ids, amounts).
    """
    code = "POS_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class ValidationError(PosError):
    """400-level input problem, raised before any write."""
    code = "VALIDATION_ERROR"


class ConflictError(PosError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    code = "CONFLICT"
    status_code = 409


class ProductUnavailable(PosError):
    code = "PRODUCT_UNAVAILABLE"

    def __init__(self, product_id: int, reason: str = "not found or inactive"):
        super().__init__(
            f"Product {product_id} {reason}",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStock(PosError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}",
            details={
                "product_id": product_id,
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InsufficientPayment(PosError):
    code = "INSUFFICIENT_PAYMENT"

    def __init__(self, required_cents: int, given_cents: int):
        super().__init__(
            "Insufficient payment amount",
            details={"required_cents": required_cents, "given_cents": given_cents},
        )
        self.required_cents = required_cents
        self.given_cents = given_cents


class NotFound(PosError):
    code = "NOT_FOUND"
    status_code = 404


class AlreadyRefunded(PosError):
    code = "ALREADY_REFUNDED"
    status_code = 409

    def __init__(self, sale_id: int):
        super().__init__("Sale already refunded", details={"sale_id": sale_id})
        self.sale_id = sale_id


class ConflictRetryExhausted(PosError):
    """Concurrent-update contention outlasted the bounded retry."""
    code = "CONFLICT_RETRY_EXHAUSTED"
    status_code = 503


class StorageFailure(PosError):
    """The underlying atomic commit failed; nothing was persisted."""
    code = "STORAGE_FAILURE"
    status_code = 500


class LedgerImmutableError(PosError):
    """Raised when code tries to update or delete a posted ledger row."""
    code = "LEDGER_IMMUTABLE"
    status_code = 500
