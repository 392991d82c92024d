from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

PAYMENT_METHODS = ("CASH", "CARD", "CHECK", "GIFT_CARD", "STORE_CREDIT", "OTHER")


@dataclass(frozen=True)
class SaleItemInput:
    product_id: int
    quantity: int
    discount_cents: int = 0


@dataclass(frozen=True)
class PaymentInput:
    method: str
    amount_cents: int
    reference_number: str | None = None


@dataclass(frozen=True)
class SaleRequest:
    """Validated shape of a sale request; nothing here has touched the database."""
    items: tuple[SaleItemInput, ...]
    payments: tuple[PaymentInput, ...]
    customer_id: int | None = None
    notes: str | None = None


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion.

    Rejects booleans, floats, decimals in strings and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def decimal_to_cents(raw: Any, field: str) -> int:
    """Convert a decimal amount (25, "25.00", 25.5) to integer cents."""
    if isinstance(raw, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    scaled = amount * 100
    if scaled != scaled.to_integral_value():
        raise ValidationError(f"{field} has more than two decimal places")
    return int(scaled)


def coerce_amount_cents(payload: dict, field_prefix: str) -> int:
    """
    Read a money amount as integer cents.

    Accepts 'amount_cents' (integer) or 'amount' (decimal with at most two
    places, e.g. 25, "25.00", 25.5).
    """
    if payload.get("amount_cents") is not None:
        cents = coerce_int(payload["amount_cents"], f"{field_prefix}.amount_cents")
    elif payload.get("amount") is not None:
        cents = decimal_to_cents(payload["amount"], f"{field_prefix}.amount")
    else:
        raise ValidationError(f"{field_prefix}.amount is required")

    if cents < 0:
        raise ValidationError(f"{field_prefix}.amount must be >= 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field_prefix}.amount exceeds maximum")
    return cents


def _parse_item(raw: Any, index: int) -> SaleItemInput:
    prefix = f"items[{index}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{prefix} must be an object")

    product_id = raw.get("product_id", raw.get("product"))
    if product_id is None or product_id == "":
        raise ValidationError(f"{prefix}.product_id is required")
    product_id = coerce_int(product_id, f"{prefix}.product_id")

    if raw.get("quantity") is None:
        raise ValidationError(f"{prefix}.quantity is required")
    quantity = coerce_int(raw["quantity"], f"{prefix}.quantity")
    if quantity < 1:
        raise ValidationError(f"{prefix}.quantity must be at least 1")

    # discount_cents is integer cents; discount is a decimal amount (5, "5.00")
    if raw.get("discount_cents") is not None:
        discount_cents = coerce_int(raw["discount_cents"], f"{prefix}.discount_cents")
    elif raw.get("discount") is not None:
        discount_cents = decimal_to_cents(raw["discount"], f"{prefix}.discount")
    else:
        discount_cents = 0
    if discount_cents < 0:
        raise ValidationError(f"{prefix}.discount_cents must be >= 0")

    return SaleItemInput(product_id=product_id, quantity=quantity, discount_cents=discount_cents)


def _parse_payment(raw: Any, index: int) -> PaymentInput:
    prefix = f"payments[{index}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{prefix} must be an object")

    method = str(raw.get("method") or "").strip().upper()
    if not method:
        raise ValidationError(f"{prefix}.method is required")
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {list(PAYMENT_METHODS)}")

    reference = raw.get("reference_number")
    return PaymentInput(
        method=method,
        amount_cents=coerce_amount_cents(raw, prefix),
        reference_number=str(reference).strip()[:128] if reference else None,
    )


def parse_sale_request(payload: Any) -> SaleRequest:
    """
    Validate + normalize a sale request.

    - items: non-empty list of {product_id, quantity >= 1, discount_cents >= 0}
    - payments: non-empty list of {method, amount >= 0}
    - customer_id, notes: optional
    """
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("Sale items are required")

    payments = payload.get("payments")
    if not isinstance(payments, list) or not payments:
        raise ValidationError("Payment information is required")

    customer_id = payload.get("customer_id", payload.get("customer"))
    if customer_id is not None:
        customer_id = coerce_int(customer_id, "customer_id")

    notes = payload.get("notes")
    if notes is not None:
        notes = str(notes).strip() or None

    return SaleRequest(
        items=tuple(_parse_item(raw, i) for i, raw in enumerate(items)),
        payments=tuple(_parse_payment(raw, i) for i, raw in enumerate(payments)),
        customer_id=customer_id,
        notes=notes,
    )
