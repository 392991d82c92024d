# Overview: Service-layer operations for the accounting ledger; append-only postings.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..errors import ValidationError
from ..extensions import db
from ..models import AccountingEntry
from ..models.ledger import ENTRY_CATEGORIES, ENTRY_TYPES
from .concurrency import run_atomic
"""
Ledger Invariants (authoritative)

- Append-only: entries are inserted, never updated or deleted.
- Postings join the caller's transaction (flush, no commit) so an entry
  exists if and only if the state change it records exists.
- A reversal is a new entry with the negated amount and the same reference.
- reference_id is interpreted through entry_type (sale -> Sale,
  inventory -> InventoryRecord).
"""

MANUAL_ENTRY_TYPES = ("expense", "payroll", "other")


def post_entry(
    *,
    entry_type: str,
    category: str,
    amount_cents: int,
    description: str,
    reference_id: int,
    recorded_by_id: int,
    entry_date: Optional[datetime] = None,
) -> AccountingEntry:
    """
    Append one accounting entry to the current unit of work.

    entry_date defaults to the database clock when omitted.
    """
    if entry_type not in ENTRY_TYPES:
        raise ValidationError(f"Invalid entry type: {entry_type}. Must be one of {list(ENTRY_TYPES)}")
    if category not in ENTRY_CATEGORIES:
        raise ValidationError(f"Invalid category: {category}. Must be one of {list(ENTRY_CATEGORIES)}")
    if not description or not description.strip():
        raise ValidationError("description is required")
    if reference_id is None:
        raise ValidationError("reference_id is required")

    entry = AccountingEntry(
        entry_type=entry_type,
        category=category,
        amount_cents=amount_cents,
        description=description.strip(),
        reference_id=reference_id,
        recorded_by_id=recorded_by_id,
        entry_date=entry_date,  # if None, db default applies
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def record_manual_entry(
    *,
    entry_type: str,
    category: str,
    amount_cents: int,
    description: str,
    reference_id: int,
    recorded_by_id: int,
    entry_date: Optional[datetime] = None,
) -> AccountingEntry:
    """
    Post an operator-entered expense / payroll / other entry in its own
    unit of work. Sale and inventory entries are only ever posted by the
    flows that cause them.
    """
    if entry_type not in MANUAL_ENTRY_TYPES:
        raise ValidationError(
            f"Manual entries must use one of {list(MANUAL_ENTRY_TYPES)}; got {entry_type}"
        )

    def _op():
        return post_entry(
            entry_type=entry_type,
            category=category,
            amount_cents=amount_cents,
            description=description,
            reference_id=reference_id,
            recorded_by_id=recorded_by_id,
            entry_date=entry_date,
        )

    return run_atomic(_op)


def entries_for_reference(entry_type: str, reference_id: int) -> list[AccountingEntry]:
    return (
        db.session.query(AccountingEntry)
        .filter_by(entry_type=entry_type, reference_id=reference_id)
        .order_by(AccountingEntry.id.asc())
        .all()
    )
