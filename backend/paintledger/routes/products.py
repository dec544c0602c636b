# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/paintledger/routes/products.py
from flask import Blueprint, current_app, request

from ..extensions import get_store
from ..models import ProductModel
from ..services import products_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "color_or_batch", "price", "stock"},
    required_on_create={"name", "category", "price"},
)

# NOTE: MAX_PRICE is defined in validation.py and enforced by enforce_rules_product()

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List all products, optionally filtered by category.

    Query params:
    - category: construction | external_facades | decorative (optional)
    """
    category = request.args.get("category")
    products = products_service.list_products(get_store())
    if category:
        products = [p for p in products if p.category == category]
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    product = products_service.get_product(get_store(), product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=ProductModel, payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = products_service.create_product(get_store(), patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=ProductModel, payload=payload, policy=PRODUCT_POLICY, partial=True)
        updated = products_service.update_product(get_store(), product_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    if updated is None:
        return {"error": "Product not found"}, 404
    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    if not products_service.delete_product(get_store(), product_id):
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200
