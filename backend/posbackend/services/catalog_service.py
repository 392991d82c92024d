# Overview: Service-layer operations for the product catalog; lookups and catalog management.

from __future__ import annotations

from ..errors import ConflictError, NotFound, ProductUnavailable, ValidationError
from ..extensions import db
from ..models import Product
from .concurrency import run_atomic
from .inventory_service import ensure_inventory_record


UPDATABLE_FIELDS = {
    "name",
    "description",
    "category",
    "barcode",
    "price_cents",
    "cost_cents",
    "tax_rate_bps",
}

_NON_NEGATIVE_FIELDS = ("price_cents", "cost_cents", "tax_rate_bps")
_REQUIRED_TEXT_FIELDS = ("sku", "name")
_OPTIONAL_TEXT_FIELDS = ("description", "category", "barcode")


def get_product(product_id: int, *, require_active: bool = True) -> Product:
    """
    Read a product as of the current transaction.

    Raises ProductUnavailable when it does not exist or, with
    require_active, when it has been deactivated.
    """
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise ProductUnavailable(product_id, "not found")
    if require_active and not product.is_active:
        raise ProductUnavailable(product_id, "is inactive")
    return product


def _check_non_negative(values: dict) -> None:
    for field in _NON_NEGATIVE_FIELDS:
        value = values.get(field)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{field} must be an integer")
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")


def _check_text(values: dict) -> None:
    for field in _REQUIRED_TEXT_FIELDS + _OPTIONAL_TEXT_FIELDS:
        if field not in values:
            continue
        value = values[field]
        if value is None and field in _OPTIONAL_TEXT_FIELDS:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")


def create_product(
    *,
    sku: str,
    name: str,
    price_cents: int,
    cost_cents: int = 0,
    tax_rate_bps: int = 0,
    description: str | None = None,
    category: str | None = None,
    barcode: str | None = None,
    initial_quantity: int = 0,
    low_stock_threshold: int = 0,
) -> Product:
    """Create a product together with its inventory record."""
    _check_text({
        "sku": sku or "",
        "name": name or "",
        "description": description,
        "category": category,
        "barcode": barcode,
    })
    sku = (sku or "").strip()
    name = (name or "").strip()
    if not sku:
        raise ValidationError("sku is required")
    if not name:
        raise ValidationError("name is required")
    _check_non_negative(
        {"price_cents": price_cents, "cost_cents": cost_cents, "tax_rate_bps": tax_rate_bps}
    )
    if isinstance(initial_quantity, bool) or not isinstance(initial_quantity, int) or initial_quantity < 0:
        raise ValidationError("initial_quantity must be an integer >= 0")

    def _op():
        if db.session.query(Product.id).filter_by(sku=sku).first() is not None:
            raise ConflictError(f"SKU {sku} already exists", details={"sku": sku})

        product = Product(
            sku=sku,
            name=name,
            description=description,
            category=category,
            barcode=barcode,
            price_cents=price_cents,
            cost_cents=cost_cents,
            tax_rate_bps=tax_rate_bps,
            is_active=True,
        )
        db.session.add(product)
        db.session.flush()

        ensure_inventory_record(
            product.id,
            quantity=initial_quantity,
            low_stock_threshold=low_stock_threshold,
        )
        return product

    return run_atomic(_op)


def update_product(product_id: int, **fields) -> Product:
    """
    Update catalog fields. Completed sales keep the prices captured on
    their lines.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown or read-only fields: {sorted(unknown)}")
    _check_non_negative(fields)
    _check_text(fields)
    if "name" in fields and not fields["name"].strip():
        raise ValidationError("name cannot be blank")

    def _op():
        product = db.session.query(Product).filter_by(id=product_id).first()
        if product is None:
            raise NotFound("Product not found", details={"product_id": product_id})
        for key, value in fields.items():
            setattr(product, key, value)
        db.session.flush()
        return product

    return run_atomic(_op)


def deactivate_product(product_id: int) -> Product:
    """Soft delete: the product can no longer be sold."""
    def _op():
        product = db.session.query(Product).filter_by(id=product_id).first()
        if product is None:
            raise NotFound("Product not found", details={"product_id": product_id})
        product.is_active = False
        db.session.flush()
        return product

    return run_atomic(_op)
