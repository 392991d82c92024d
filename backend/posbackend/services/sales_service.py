"""
Sales Service - sale processing and refund reversal

Each entry point is one atomic unit of work spanning the catalog (read),
the inventory records (locked read + write), the sale document and the
accounting ledger. Either every write commits or none does.

Money is integer cents; tax is computed per line on the discounted amount
(tax-on-net) and rounded half-up to the cent.
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass

from flask import current_app

from ..errors import (
    AlreadyRefunded,
    InsufficientPayment,
    InsufficientStock,
    NotFound,
    ValidationError,
)
from ..extensions import db
from ..models import Product, Sale, SaleLine, SalePayment
from ..models.sales import SALE_STATUS_COMPLETED, SALE_STATUS_REFUNDED
from ..money import tax_cents
from ..validation import SaleItemInput, parse_sale_request
from posbackend.time_utils import utcnow
from . import inventory_service
from .catalog_service import get_product
from .concurrency import lock_for_update, run_atomic
from .document_service import next_document_number
from .ledger_service import post_entry


def _as_payload(values):
    # Anything that is not a list is left for parse_sale_request to reject
    if not isinstance(values, (list, tuple)):
        return values
    return [asdict(v) if is_dataclass(v) else v for v in values]


def _price_line(line_number: int, item: SaleItemInput, product: Product) -> SaleLine:
    gross_cents = product.price_cents * item.quantity
    if item.discount_cents > gross_cents:
        raise ValidationError(
            f"Discount exceeds line total for product {product.id}",
            details={
                "product_id": product.id,
                "line_total_cents": gross_cents,
                "discount_cents": item.discount_cents,
            },
        )
    net_cents = gross_cents - item.discount_cents

    # Price and tax rate are captured here; later catalog edits never reach this line.
    return SaleLine(
        line_number=line_number,
        product_id=product.id,
        quantity=item.quantity,
        unit_price_cents=product.price_cents,
        tax_rate_bps=product.tax_rate_bps,
        discount_cents=item.discount_cents,
        line_subtotal_cents=net_cents,
        line_tax_cents=tax_cents(net_cents, product.tax_rate_bps),
    )


def _check_stock(items: tuple[SaleItemInput, ...]) -> None:
    """Lock every touched record and verify combined demand per product."""
    demand: dict[int, int] = {}
    for item in items:
        demand[item.product_id] = demand.get(item.product_id, 0) + item.quantity

    for product_id in sorted(demand):
        requested = demand[product_id]
        record = inventory_service.lock_record(product_id)
        available = int(record.quantity) if record else 0
        if available < requested:
            raise InsufficientStock(product_id=product_id, requested=requested, available=available)


def process_sale(
    items,
    payments,
    *,
    actor_id: int,
    customer_id: int | None = None,
    notes: str | None = None,
) -> Sale:
    """
    Convert a cart and its tenders into a completed sale.

    items: [{product_id, quantity, discount_cents?}] or SaleItemInput
    payments: [{method, amount | amount_cents}] or PaymentInput

    Raises ValidationError, ProductUnavailable, InsufficientStock,
    InsufficientPayment, ConflictRetryExhausted or StorageFailure; on any of
    them no inventory, sale or ledger row is left behind.
    """
    request = parse_sale_request({
        "items": _as_payload(items),
        "payments": _as_payload(payments),
        "customer_id": customer_id,
        "notes": notes,
    })
    if actor_id is None:
        raise ValidationError("actor_id is required")

    def _op():
        products: dict[int, Product] = {}
        for item in request.items:
            if item.product_id not in products:
                products[item.product_id] = get_product(item.product_id)

        _check_stock(request.items)

        lines = [
            _price_line(i + 1, item, products[item.product_id])
            for i, item in enumerate(request.items)
        ]
        subtotal_cents = sum(line.line_subtotal_cents for line in lines)
        sale_tax_cents = sum(line.line_tax_cents for line in lines)
        total_cents = subtotal_cents + sale_tax_cents

        paid_cents = sum(p.amount_cents for p in request.payments)
        if paid_cents < total_cents:
            raise InsufficientPayment(required_cents=total_cents, given_cents=paid_cents)

        sale = Sale(
            document_number=next_document_number(document_type="SALE", prefix="S"),
            status=SALE_STATUS_COMPLETED,
            subtotal_cents=subtotal_cents,
            tax_cents=sale_tax_cents,
            total_cents=total_cents,
            amount_paid_cents=paid_cents,
            change_due_cents=paid_cents - total_cents,
            employee_id=actor_id,
            customer_id=request.customer_id,
            notes=request.notes,
            created_at=utcnow(),
        )
        sale.lines = lines
        sale.payments = [
            SalePayment(
                method=p.method,
                amount_cents=p.amount_cents,
                reference_number=p.reference_number,
            )
            for p in request.payments
        ]
        db.session.add(sale)
        db.session.flush()

        for line in lines:
            inventory_service.reserve(
                line.product_id,
                line.quantity,
                sale_id=sale.id,
                actor_id=actor_id,
            )

        post_entry(
            entry_type="sale",
            category="revenue",
            amount_cents=total_cents,
            description=f"Sale #{sale.document_number}",
            reference_id=sale.id,
            recorded_by_id=actor_id,
        )
        return sale

    sale = run_atomic(_op)
    current_app.logger.info(
        "Sale %s completed by actor %s: total_cents=%s change_due_cents=%s",
        sale.document_number, actor_id, sale.total_cents, sale.change_due_cents,
    )
    return sale


def refund_sale(sale_id: int, reason: str, *, actor_id: int) -> Sale:
    """
    Fully refund a completed sale: restock every line and post the negated
    total to the ledger.

    A second call fails with AlreadyRefunded and changes nothing.
    """
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Refund reason is required")
    if actor_id is None:
        raise ValidationError("actor_id is required")

    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFound("Sale not found", details={"sale_id": sale_id})

        if sale.status == SALE_STATUS_REFUNDED:
            raise AlreadyRefunded(sale.id)

        if sale.status != SALE_STATUS_COMPLETED:
            raise ValidationError(f"Cannot refund sale with status {sale.status}")

        sale.status = SALE_STATUS_REFUNDED
        sale.refunded_at = utcnow()
        sale.refunded_by_id = actor_id

        refund_note = f"Refund: {reason}. Processed by {actor_id}"
        sale.notes = f"{sale.notes}\n{refund_note}" if sale.notes else refund_note

        for line in sale.lines:
            record = inventory_service.release(
                line.product_id,
                line.quantity,
                sale_id=sale.id,
                actor_id=actor_id,
                reason=reason,
            )
            if record is None:
                current_app.logger.warning(
                    "Refund of sale %s: no inventory record for product %s; %s unit(s) not restocked",
                    sale.document_number, line.product_id, line.quantity,
                )

        post_entry(
            entry_type="sale",
            category="revenue",
            amount_cents=-sale.total_cents,
            description=f"Refund for sale #{sale.document_number}: {reason}",
            reference_id=sale.id,
            recorded_by_id=actor_id,
        )
        db.session.flush()
        return sale

    sale = run_atomic(_op)
    current_app.logger.info(
        "Sale %s refunded by actor %s: amount_cents=%s",
        sale.document_number, actor_id, -sale.total_cents,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise NotFound("Sale not found", details={"sale_id": sale_id})
    return sale
