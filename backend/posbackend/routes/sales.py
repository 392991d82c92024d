# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/posbackend/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError
from ..services import sales_service
from ..decorators import require_actor


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_actor
def process_sale_route():
    """
    Process a new sale.

    Body: {"items": [{product_id, quantity, discount_cents?}],
           "payments": [{method, amount | amount_cents}],
           "customer_id"?, "notes"?}
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.process_sale(
            data.get("items"),
            data.get("payments"),
            actor_id=g.actor_id,
            customer_id=data.get("customer_id", data.get("customer")),
            notes=data.get("notes"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_actor
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/refund")
@require_actor
def refund_sale_route(sale_id: int):
    """
    Refund a completed sale in full.

    Body: {"reason": "..."} (required)
    """
    try:
        data = request.get_json(silent=True) or {}
        reason = data.get("reason")

        if not reason or not str(reason).strip():
            return jsonify({"error": "Refund reason is required", "code": "VALIDATION_ERROR"}), 400

        sale = sales_service.refund_sale(sale_id, str(reason), actor_id=g.actor_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to refund sale")
        return jsonify({"error": "Internal server error"}), 500
