from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..errors import LedgerImmutableError
from ..money import cents_to_str
from posbackend.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data (catalog).

    Prices, costs and tax rates are read once per sale and copied onto the
    sale lines; later catalog edits never reach historical sales.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_nonneg"),
        db.CheckConstraint("cost_cents >= 0", name="ck_products_cost_nonneg"),
        db.CheckConstraint("tax_rate_bps >= 0", name="ck_products_tax_nonneg"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=True)
    barcode = db.Column(db.String(128), nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    # 1000 bps == 10%
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "barcode": self.barcode,
            "price_cents": self.price_cents,
            "price": cents_to_str(self.price_cents),
            "cost_cents": self.cost_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryRecord(db.Model):
    """
    On-hand stock for one product.

    quantity is a stored counter mutated only by inventory_service
    (reserve / release / adjust). Each mutation bumps version_id and writes
    an InventoryMovement row naming its cause.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventory_records_product"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_records_quantity_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(128), nullable=True)
    last_restocked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventory", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryRecord id={self.id} product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "location": self.location,
            "last_restocked_at": to_utc_z(self.last_restocked_at) if self.last_restocked_at else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only audit trail of quantity changes.

    MOVEMENT TYPES:
    - SALE: reservation for a completed sale (negative delta)
    - REFUND: restock from a refunded sale (positive delta)
    - ADJUST: manual correction / restock with a reason string
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_invmov_record_occurred", "inventory_record_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_record_id = db.Column(db.Integer, db.ForeignKey("inventory_records.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    reason = db.Column(db.Text, nullable=True)
    actor_id = db.Column(db.Integer, nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_record_id": self.inventory_record_id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity_delta": self.quantity_delta,
            "quantity_after": self.quantity_after,
            "sale_id": self.sale_id,
            "reason": self.reason,
            "actor_id": self.actor_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }


@event.listens_for(InventoryMovement, "before_update")
@event.listens_for(InventoryMovement, "before_delete")
def _reject_movement_mutation(mapper, connection, target):
    raise LedgerImmutableError(f"InventoryMovement {target.id} is append-only")
