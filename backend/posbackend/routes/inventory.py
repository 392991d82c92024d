# backend/posbackend/routes/inventory.py
"""
Inventory management routes.

Stock changes outside of sales and refunds go through PUT /<id>/stock,
which posts the matching cogs ledger entry in the same transaction.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError, ValidationError
from ..validation import coerce_int
from ..services import inventory_service
from ..decorators import require_actor


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.put("/<int:record_id>/stock")
@require_actor
def update_stock_route(record_id: int):
    """
    Adjust stock.

    Body: {"quantity": int, "adjustment_type": "add" | "set", "reason"?: str}
    """
    payload = request.get_json(silent=True) or {}

    try:
        if payload.get("quantity") is None:
            raise ValidationError("Quantity is required")
        quantity = coerce_int(payload.get("quantity"), "quantity")
        mode = str(payload.get("adjustment_type") or "").strip().lower()
        if not mode:
            raise ValidationError("Adjustment type is required")

        record = inventory_service.adjust_inventory(
            record_id=record_id,
            quantity=quantity,
            mode=mode,
            reason=payload.get("reason"),
            actor_id=g.actor_id,
        )
        return jsonify({"inventory": record.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500
