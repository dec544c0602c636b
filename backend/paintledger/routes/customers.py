# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

# backend/paintledger/routes/customers.py
from flask import Blueprint, current_app, request

from ..extensions import get_store
from ..models import CustomerModel
from ..services import customers_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address", "classification", "discount_percentage"},
    required_on_create={"name", "classification"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers():
    customers = customers_service.list_customers(get_store())
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.get("/<int:customer_id>")
def get_customer(customer_id: int):
    customer = customers_service.get_customer(get_store(), customer_id)
    if customer is None:
        return {"error": "Customer not found"}, 404
    return customer.to_dict()


@customers_bp.post("")
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=CustomerModel, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        created = customers_service.create_customer(get_store(), patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500

    return created.to_dict(), 201


@customers_bp.put("/<int:customer_id>")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=CustomerModel, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        updated = customers_service.update_customer(get_store(), customer_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return {"error": "Internal server error"}, 500

    if updated is None:
        return {"error": "Customer not found"}, 404
    return updated.to_dict(), 200


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    if not customers_service.delete_customer(get_store(), customer_id):
        return {"error": "Customer not found"}, 404
    return {"ok": True}, 200
