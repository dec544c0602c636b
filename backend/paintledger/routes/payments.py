# Overview: Flask API routes for payment operations; parses input and returns JSON responses.

# backend/paintledger/routes/payments.py
"""Payment API routes. Payments are append-only: there is no update or delete."""

from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_store
from ..models import PaymentModel
from ..records import jsonable
from ..services import payment_service
from ..services.payment_service import PaymentError
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_payment,
    validate_payload,
)

PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={"sale_id", "amount", "payment_method", "date", "reference", "created_by"},
    required_on_create={"sale_id", "amount", "payment_method"},
)

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.get("")
def list_payments_route():
    payments = payment_service.list_payments(get_store())
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})


@payments_bp.get("/<int:payment_id>")
def get_payment_route(payment_id: int):
    payment = payment_service.get_payment(get_store(), payment_id)
    if payment is None:
        return jsonify({"error": "Payment not found"}), 404
    return jsonify({"payment": payment.to_dict()})


@payments_bp.get("/sales/<int:sale_id>")
def get_sale_payments_route(sale_id: int):
    """Payment summary of a sale: total, paid, balance due, status and payments."""
    summary = payment_service.get_payment_summary(
        get_store(),
        sale_id,
        overdue_days=current_app.config["OVERDUE_AFTER_DAYS"],
    )
    if summary is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify(jsonable(summary))


@payments_bp.post("")
def create_payment_route():
    try:
        payload = request.get_json(silent=True) or {}
        fields = validate_payload(model=PaymentModel, payload=payload, policy=PAYMENT_POLICY, partial=False)
        enforce_rules_payment(fields)

        store = get_store()
        payment = payment_service.create_payment(store, fields)
        summary = payment_service.get_payment_summary(
            store,
            payment.sale_id,
            overdue_days=current_app.config["OVERDUE_AFTER_DAYS"],
        )
        return jsonify({"payment": payment.to_dict(), "summary": jsonable(summary)}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create payment")
        return jsonify({"error": "Internal server error"}), 500
