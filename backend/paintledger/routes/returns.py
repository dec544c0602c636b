# Overview: Flask API routes for returns; parses input and returns JSON responses.

# backend/paintledger/routes/returns.py
from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_store
from ..models import ReturnModel
from ..services import return_service
from ..services.return_service import ReturnError
from ..validation import ModelValidationPolicy, ValidationError, validate_line_items, validate_payload

RETURN_POLICY = ModelValidationPolicy(
    writable_fields={"sale_id", "customer_id", "date", "total_amount", "reason", "created_by"},
    required_on_create={"sale_id"},
)

returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.get("")
def list_returns_route():
    sale_id = request.args.get("sale_id", type=int)
    store = get_store()
    if sale_id is not None:
        returns = return_service.get_returns_for_sale(store, sale_id)
    else:
        returns = return_service.list_returns(store)
    return jsonify({"items": [r.to_dict() for r in returns], "count": len(returns)})


@returns_bp.get("/<int:return_id>")
def get_return_route(return_id: int):
    ret = return_service.get_return(get_store(), return_id)
    if ret is None:
        return jsonify({"error": "Return not found"}), 404
    return jsonify({"return": ret.to_dict()})


@returns_bp.post("")
def create_return_route():
    """
    Record a return against a sale.

    Body: return fields plus "items": [{product_id, quantity, unit_price, total_price?}].
    customer_id defaults to the sale's customer.
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        data = dict(data)
        items = validate_line_items(data.pop("items", None))
        fields = validate_payload(model=ReturnModel, payload=data, policy=RETURN_POLICY, partial=False)

        ret = return_service.create_return(get_store(), fields, items)
        return jsonify({"return": ret.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ReturnError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500
