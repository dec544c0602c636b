# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/paintledger/routes/sales.py
from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_store
from ..models import SaleModel
from ..services import sales_service
from ..services.sales_service import SaleError
from ..validation import ModelValidationPolicy, ValidationError, validate_line_items, validate_payload

SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id",
        "date",
        "subtotal",
        "discount_amount",
        "total_amount",
        "payment_method",
        "payment_status",
        "notes",
        "created_by",
    },
    required_on_create={"customer_id", "payment_method"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _split_payload(partial: bool) -> tuple[dict, list | None]:
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    data = dict(data)
    raw_items = data.pop("items", None)
    fields = validate_payload(model=SaleModel, payload=data, policy=SALE_POLICY, partial=partial)
    if raw_items is None:
        return fields, None if partial else []
    return fields, validate_line_items(raw_items)


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - status: payment status filter (optional)
    - customer_id: int (optional)
    """
    status = request.args.get("status")
    customer_id = request.args.get("customer_id", type=int)

    sales = sales_service.list_sales(get_store())
    if status:
        sales = [s for s in sales if s.payment_status == status]
    if customer_id is not None:
        sales = [s for s in sales if s.customer_id == customer_id]
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(get_store(), sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict()})


@sales_bp.post("")
def create_sale_route():
    """
    Create an invoice.

    Body: sale fields plus "items": [{product_id, quantity, unit_price, total_price?}].
    Totals omitted from the body are derived from the items.
    """
    try:
        fields, items = _split_payload(partial=False)
        sale = sales_service.create_sale(get_store(), fields, items)
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:sale_id>")
def update_sale_route(sale_id: int):
    """
    Update a sale. Supplying "items" replaces all line items and moves stock
    accordingly; omitting it leaves items untouched.
    """
    try:
        fields, items = _split_payload(partial=True)
        sale = sales_service.update_sale(get_store(), sale_id, fields, items)
        if sale is None:
            return jsonify({"error": "Sale not found"}), 404
        return jsonify({"sale": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500
