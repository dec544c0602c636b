# backend/paintledger/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time

from flask import Blueprint, current_app

from ..extensions import get_store
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_store_health() -> dict:
    """
    Check record store connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = get_store().health()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Record store health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Store error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: record store reachable
    - 503: record store unhealthy
    """
    store_health = check_store_health()
    http_status = 200 if store_health["status"] == "healthy" else 503

    response = {
        "status": store_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "store": store_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "record_store": get_store().name,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
