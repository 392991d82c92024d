# Overview: Flask API routes for manual accounting entries.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError, ValidationError
from ..validation import coerce_int
from posbackend.time_utils import parse_iso_datetime
from ..services import ledger_service
from ..decorators import require_actor


accounting_bp = Blueprint("accounting", __name__, url_prefix="/api/accounting")


@accounting_bp.post("")
@require_actor
def create_entry_route():
    """
    Record a manual expense / payroll / other entry.

    Body: {type, category, amount_cents, description, reference_id, date?}
    date is ISO-8601 and defaults to now.

    Sale and inventory entries are posted only by the sale, refund and
    stock adjustment flows.
    """
    payload = request.get_json(silent=True) or {}
    try:
        for field in ("type", "category", "amount_cents", "description", "reference_id"):
            if payload.get(field) is None:
                raise ValidationError(f"{field} is required")

        raw_date = payload.get("date")
        if raw_date is not None and not isinstance(raw_date, str):
            raise ValidationError("date must be an ISO-8601 date or datetime")
        try:
            entry_date = parse_iso_datetime(raw_date)
        except ValueError:
            raise ValidationError("date must be an ISO-8601 date or datetime")

        entry = ledger_service.record_manual_entry(
            entry_type=str(payload["type"]).strip().lower(),
            category=str(payload["category"]).strip().lower(),
            amount_cents=coerce_int(payload["amount_cents"], "amount_cents"),
            description=str(payload["description"]),
            reference_id=coerce_int(payload["reference_id"], "reference_id"),
            recorded_by_id=g.actor_id,
            entry_date=entry_date,
        )
        return jsonify({"entry": entry.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record accounting entry")
        return jsonify({"error": "Internal server error"}), 500
