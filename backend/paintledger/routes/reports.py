# Overview: Flask API routes for the dashboard and finance reports; read-only aggregates.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import get_store
from ..records import jsonable
from ..services import reporting_service
from ..services.reporting_service import ReportError

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")
finances_bp = Blueprint("finances", __name__, url_prefix="/api/finances")


def _limit(default: int = 5) -> int:
    return request.args.get("limit", default=default, type=int)


@dashboard_bp.get("/stats")
def dashboard_stats():
    return jsonify(jsonable(reporting_service.get_dashboard_stats(get_store())))


@dashboard_bp.get("/recent-sales")
def recent_sales():
    try:
        sales = reporting_service.get_recent_sales(get_store(), limit=_limit())
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": jsonable(sales)})


@dashboard_bp.get("/recent-customers")
def recent_customers():
    try:
        customers = reporting_service.get_recent_customers(get_store(), limit=_limit())
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": jsonable(customers)})


@dashboard_bp.get("/top-products")
def top_products():
    try:
        products = reporting_service.get_top_products(get_store(), limit=_limit())
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": jsonable(products)})


@finances_bp.get("/overview")
def financial_overview():
    overview = reporting_service.get_financial_overview(
        get_store(), days=current_app.config["OVERDUE_AFTER_DAYS"]
    )
    return jsonify(jsonable(overview))


@finances_bp.get("/monthly")
def monthly_totals():
    """
    Query params:
    - months: int (optional, default 6, max 36)
    """
    months = request.args.get("months", default=6, type=int)
    try:
        rows = reporting_service.get_monthly_totals(get_store(), months=months)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": jsonable(rows)})


@finances_bp.get("/payment-methods")
def payment_method_totals():
    return jsonify({"items": jsonable(reporting_service.get_payment_method_totals(get_store()))})


@finances_bp.get("/outstanding")
def outstanding_balances():
    limit = request.args.get("limit", type=int)
    try:
        balances = reporting_service.get_outstanding_balances(get_store(), limit=limit)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": jsonable(balances), "count": len(balances)})


@finances_bp.get("/overdue")
def overdue_sales():
    """
    Unsettled sales older than OVERDUE_AFTER_DAYS (or ?days=N). Derived at
    query time; no status is written.
    """
    days = request.args.get("days", default=current_app.config["OVERDUE_AFTER_DAYS"], type=int)
    if days < 0:
        return jsonify({"error": "days must be >= 0"}), 400
    sales = reporting_service.get_overdue_sales(get_store(), days=days)
    return jsonify({"items": jsonable(sales), "count": len(sales)})
