from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..errors import LedgerImmutableError
from ..money import cents_to_str
from posbackend.time_utils import to_utc_z


ENTRY_TYPES = ("sale", "expense", "payroll", "inventory", "other")
ENTRY_CATEGORIES = ("revenue", "cogs", "payroll", "utilities", "rent", "supplies", "other")


class AccountingEntry(db.Model):
    """
    Append-only financial log.

    reference_id is polymorphic; entry_type is its discriminant:
    - sale      -> sales.id
    - inventory -> inventory_records.id
    - others    -> caller-supplied opaque id

    IMMUTABLE: rows are never updated or deleted. A refund is a new
    negative-amount row referencing the same sale.
    """
    __tablename__ = "accounting_entries"
    __table_args__ = (
        db.Index("ix_accounting_type_reference", "entry_type", "reference_id"),
        db.Index("ix_accounting_date", "entry_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    entry_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    entry_type = db.Column(db.String(16), nullable=False, index=True)
    category = db.Column(db.String(16), nullable=False, index=True)

    # Signed: negative for refunds / reversals
    amount_cents = db.Column(db.Integer, nullable=False)

    description = db.Column(db.Text, nullable=False)
    reference_id = db.Column(db.Integer, nullable=False)
    recorded_by_id = db.Column(db.Integer, nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return (
            f"<AccountingEntry id={self.id} type={self.entry_type} "
            f"amount_cents={self.amount_cents} reference_id={self.reference_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entry_date": to_utc_z(self.entry_date),
            "entry_type": self.entry_type,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "amount": cents_to_str(self.amount_cents),
            "description": self.description,
            "reference_id": self.reference_id,
            "recorded_by_id": self.recorded_by_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(AccountingEntry, "before_update")
@event.listens_for(AccountingEntry, "before_delete")
def _reject_entry_mutation(mapper, connection, target):
    raise LedgerImmutableError(f"AccountingEntry {target.id} is append-only")
