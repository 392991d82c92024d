# Overview: Flask API routes for catalog management; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError, ValidationError
from ..validation import coerce_int
from ..services import catalog_service
from ..decorators import require_actor


products_bp = Blueprint("products", __name__, url_prefix="/api/products")

_INT_FIELDS = ("price_cents", "cost_cents", "tax_rate_bps", "initial_quantity", "low_stock_threshold")


def _int_fields(payload: dict) -> dict:
    return {
        key: coerce_int(payload[key], key)
        for key in _INT_FIELDS
        if payload.get(key) is not None
    }


@products_bp.post("")
@require_actor
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        numbers = _int_fields(payload)
        if "price_cents" not in numbers:
            raise ValidationError("price_cents is required")
        product = catalog_service.create_product(
            sku=payload.get("sku"),
            name=payload.get("name"),
            description=payload.get("description"),
            category=payload.get("category"),
            barcode=payload.get("barcode"),
            **numbers,
        )
        return jsonify({"product": product.to_dict(), "inventory": product.inventory.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_actor
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id, require_active=False)
        inventory = product.inventory.to_dict() if product.inventory else None
        return jsonify({"product": product.to_dict(), "inventory": inventory}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@require_actor
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        fields = {k: v for k, v in payload.items() if k not in _INT_FIELDS}
        fields.update(_int_fields(payload))
        product = catalog_service.update_product(product_id, **fields)
        return jsonify({"product": product.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_actor
def deactivate_product_route(product_id: int):
    """Soft delete (is_active = False)."""
    try:
        product = catalog_service.deactivate_product(product_id)
        return jsonify({"product": product.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to deactivate product")
        return jsonify({"error": "Internal server error"}), 500
