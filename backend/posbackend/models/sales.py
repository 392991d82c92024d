from __future__ import annotations

from ..extensions import db
from ..money import cents_to_str
from posbackend.time_utils import to_utc_z


SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_REFUNDED = "refunded"


class Sale(db.Model):
    """
    Sale document, written once per completed transaction.

    After creation the only permitted change is the single
    completed -> refunded transition (plus the refund audit fields and the
    appended refund note).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("document_number", name="uq_sales_docnum"),
        db.CheckConstraint("total_cents = subtotal_cents + tax_cents", name="ck_sales_total"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable document number (e.g., "S-000042")
    document_number = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED, index=True)

    # Totals (all amounts in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False)
    change_due_cents = db.Column(db.Integer, nullable=False, default=0)

    # Attribution
    employee_id = db.Column(db.Integer, nullable=False, index=True)
    customer_id = db.Column(db.Integer, nullable=True, index=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Refund audit trail
    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    refunded_by_id = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
        lazy=True,
    )
    payments = db.relationship(
        "SalePayment",
        backref="sale",
        order_by="SalePayment.id",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "change_due_cents": self.change_due_cents,
            "subtotal": cents_to_str(self.subtotal_cents),
            "tax": cents_to_str(self.tax_cents),
            "total": cents_to_str(self.total_cents),
            "change_due": cents_to_str(self.change_due_cents),
            "employee_id": self.employee_id,
            "customer_id": self.customer_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "refunded_at": to_utc_z(self.refunded_at) if self.refunded_at else None,
            "refunded_by_id": self.refunded_by_id,
            "version_id": self.version_id,
            "lines": [line.to_dict() for line in self.lines],
            "payments": [payment.to_dict() for payment in self.payments],
        }


class SaleLine(db.Model):
    """Line item with the price and tax rate captured at sale time."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_lines_sale_line"),
        db.CheckConstraint("quantity >= 1", name="ck_sale_lines_quantity_pos"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sale_lines_discount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)

    # unit_price_cents * quantity - discount_cents
    line_subtotal_cents = db.Column(db.Integer, nullable=False)
    line_tax_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "discount_cents": self.discount_cents,
            "line_subtotal_cents": self.line_subtotal_cents,
            "line_tax_cents": self.line_tax_cents,
        }


class SalePayment(db.Model):
    """
    Tender recorded against a sale.

    TENDER TYPES:
    - CASH, CARD, CHECK, GIFT_CARD, STORE_CREDIT, OTHER

    Split payments are multiple rows on one sale.
    """
    __tablename__ = "sale_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_sale_payments_amount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    method = db.Column(db.String(32), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)

    # Card auth code, check number, etc.
    reference_number = db.Column(db.String(128), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "reference_number": self.reference_number,
        }


class DocumentSequence(db.Model):
    """
    Atomic per-type document number counters.

    Incremented with a single UPDATE inside the caller's transaction so two
    concurrent sales never receive the same document number.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
