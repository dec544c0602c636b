# Overview: Flask API routes for customer balances.

from flask import Blueprint, current_app, jsonify

from ..extensions import get_store
from ..records import Customer
from ..services import balance_service

balances_bp = Blueprint("balances", __name__, url_prefix="/api/customer-balances")


@balances_bp.get("/<int:customer_id>")
def get_balance_route(customer_id: int):
    balance = balance_service.get_customer_balance(get_store(), customer_id)
    if balance is None:
        return jsonify({"error": "Balance not found"}), 404
    return jsonify({"balance": balance.to_dict()})


@balances_bp.post("/<int:customer_id>/recompute")
def recompute_balance_route(customer_id: int):
    """Recompute a customer's balance from their sales, payments and returns."""
    store = get_store()
    if store.get(Customer, customer_id) is None:
        return jsonify({"error": "Customer not found"}), 404

    try:
        balance_service.update_customer_balance(store, customer_id)
    except Exception:
        current_app.logger.exception("Failed to recompute customer balance")
        return jsonify({"error": "Internal server error"}), 500

    balance = balance_service.get_customer_balance(store, customer_id)
    return jsonify({"balance": balance.to_dict()}), 200
