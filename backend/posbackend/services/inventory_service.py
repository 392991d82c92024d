# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/posbackend/services/inventory_service.py

from flask import current_app

from ..errors import InsufficientStock, NotFound, ValidationError
from ..extensions import db
from ..models import InventoryMovement, InventoryRecord, Product
from posbackend.time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .ledger_service import post_entry
"""
Inventory Invariants (authoritative)

Inventory model:
- One InventoryRecord per product holds the on-hand quantity as a counter.
- The counter is only changed through reserve / release / adjust below.
- Every change writes an InventoryMovement (SALE, REFUND, ADJUST) naming its
  cause: a sale id, a refund of a sale id, or a manual reason.

Business invariants:
- On-hand quantity may never go negative (service check + CHECK constraint).
- Records are read with SELECT ... FOR UPDATE and carry a version counter, so
  a concurrent check-then-decrement either serializes or raises StaleDataError
  (retried by run_atomic).

Adjustments:
- mode 'add' applies a signed delta; mode 'set' replaces the quantity.
- A quantity change posts an inventory/cogs AccountingEntry of
  |delta| * product.cost_cents in the same unit of work.
"""

MOVEMENT_SALE = "SALE"
MOVEMENT_REFUND = "REFUND"
MOVEMENT_ADJUST = "ADJUST"

ADJUST_MODE_ADD = "add"
ADJUST_MODE_SET = "set"
ADJUST_MODES = (ADJUST_MODE_ADD, ADJUST_MODE_SET)


def _get_record_for_product(product_id: int, *, lock: bool = False) -> InventoryRecord | None:
    query = db.session.query(InventoryRecord).filter_by(product_id=product_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def _record_movement(
    record: InventoryRecord,
    *,
    movement_type: str,
    quantity_delta: int,
    actor_id: int,
    sale_id: int | None = None,
    reason: str | None = None,
) -> InventoryMovement:
    movement = InventoryMovement(
        inventory_record_id=record.id,
        product_id=record.product_id,
        movement_type=movement_type,
        quantity_delta=quantity_delta,
        quantity_after=record.quantity,
        sale_id=sale_id,
        reason=reason or None,
        actor_id=actor_id,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def get_quantity(product_id: int) -> int:
    """On-hand quantity for a product; 0 when it has no inventory record."""
    record = _get_record_for_product(product_id)
    return int(record.quantity) if record else 0


def lock_record(product_id: int) -> InventoryRecord | None:
    """Lock and return the product's record for a check-then-write sequence."""
    return _get_record_for_product(product_id, lock=True)


def ensure_inventory_record(
    product_id: int,
    *,
    quantity: int = 0,
    low_stock_threshold: int = 0,
    location: str | None = None,
) -> InventoryRecord:
    """
    Return the product's inventory record, creating it if needed.

    Joins the caller's unit of work (flush, no commit).
    """
    record = _get_record_for_product(product_id)
    if record is not None:
        return record

    if quantity < 0:
        raise ValidationError("initial quantity cannot be negative")

    record = InventoryRecord(
        product_id=product_id,
        quantity=quantity,
        low_stock_threshold=low_stock_threshold,
        location=location,
        last_restocked_at=utcnow() if quantity > 0 else None,
    )
    db.session.add(record)
    db.session.flush()
    return record


def reserve(product_id: int, quantity: int, *, sale_id: int | None, actor_id: int) -> InventoryRecord:
    """
    Decrement on-hand stock for a sale.

    Re-reads the record under lock; raises InsufficientStock when the record
    is missing or the decrement would go negative.
    """
    if quantity < 1:
        raise ValidationError("reserve quantity must be at least 1")

    record = _get_record_for_product(product_id, lock=True)
    available = int(record.quantity) if record else 0
    if record is None or available < quantity:
        raise InsufficientStock(product_id=product_id, requested=quantity, available=available)

    record.quantity = available - quantity
    _record_movement(
        record,
        movement_type=MOVEMENT_SALE,
        quantity_delta=-quantity,
        actor_id=actor_id,
        sale_id=sale_id,
    )
    db.session.flush()
    return record


def release(
    product_id: int,
    quantity: int,
    *,
    sale_id: int | None,
    actor_id: int,
    reason: str | None = None,
) -> InventoryRecord | None:
    """
    Increment on-hand stock (restock from a refund).

    Returns None when the product has no inventory record; the caller
    decides how to surface that.
    """
    if quantity < 1:
        raise ValidationError("release quantity must be at least 1")

    record = _get_record_for_product(product_id, lock=True)
    if record is None:
        return None

    record.quantity = int(record.quantity) + quantity
    _record_movement(
        record,
        movement_type=MOVEMENT_REFUND,
        quantity_delta=quantity,
        actor_id=actor_id,
        sale_id=sale_id,
        reason=reason,
    )
    db.session.flush()
    return record


def _adjust_locked(
    record: InventoryRecord,
    *,
    quantity: int,
    mode: str,
    reason: str | None,
    actor_id: int,
) -> InventoryRecord:
    old_quantity = int(record.quantity)
    if mode == ADJUST_MODE_ADD:
        new_quantity = old_quantity + quantity
    else:
        new_quantity = quantity

    if new_quantity < 0:
        raise ValidationError(
            "adjustment would make on-hand negative",
            details={"current": old_quantity, "requested": quantity, "mode": mode},
        )

    delta = new_quantity - old_quantity
    if mode == ADJUST_MODE_ADD and quantity > 0:
        record.last_restocked_at = utcnow()

    if delta == 0:
        return record

    record.quantity = new_quantity
    note = reason.strip() if reason and reason.strip() else "No reason provided"
    _record_movement(
        record,
        movement_type=MOVEMENT_ADJUST,
        quantity_delta=delta,
        actor_id=actor_id,
        reason=note,
    )

    product = db.session.query(Product).filter_by(id=record.product_id).first()
    post_entry(
        entry_type="inventory",
        category="cogs",
        amount_cents=abs(delta) * product.cost_cents,
        description=f"Inventory adjustment: {note}",
        reference_id=record.id,
        recorded_by_id=actor_id,
    )
    return record


def adjust_inventory(
    *,
    record_id: int,
    quantity: int,
    mode: str,
    actor_id: int,
    reason: str | None = None,
) -> InventoryRecord:
    """
    Manual stock adjustment (inventory-management flow).

    - mode='add': quantity is a signed delta
    - mode='set': quantity replaces the on-hand count (must be >= 0)

    The movement row and the cogs ledger entry commit together with the new
    quantity, or not at all.
    """
    if mode not in ADJUST_MODES:
        raise ValidationError(f"Invalid adjustment type: {mode}. Must be one of {list(ADJUST_MODES)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if mode == ADJUST_MODE_SET and quantity < 0:
        raise ValidationError("quantity must be >= 0 for mode 'set'")

    def _op():
        record = lock_for_update(db.session.query(InventoryRecord).filter_by(id=record_id)).first()
        if record is None:
            raise NotFound("Inventory item not found", details={"record_id": record_id})
        _adjust_locked(record, quantity=quantity, mode=mode, reason=reason, actor_id=actor_id)
        db.session.flush()
        return record

    record = run_atomic(_op)
    current_app.logger.info(
        "Inventory record %s adjusted (%s %s) by actor %s; on hand %s",
        record.id, mode, quantity, actor_id, record.quantity,
    )
    return record
