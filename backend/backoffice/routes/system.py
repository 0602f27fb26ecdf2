# backend/backoffice/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Order, Variant
from backoffice.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a couple of cheap queries.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        variant_count = db.session.query(Variant).count()
        order_count = db.session.query(Order).count()
        negative_stock = db.session.query(func.count(Variant.id)).filter(
            Variant.quantity_on_hand < 0
        ).scalar()

        elapsed_ms = (time.time() - start_time) * 1000

        status = "healthy" if not negative_stock else "degraded"
        return {
            "status": status,
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "variants": variant_count,
                "orders": order_count,
                "variants_with_negative_stock": int(negative_stock or 0),
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()
    database_health = check_database_health()

    http_status = 503 if database_health["status"] == "unhealthy" else 200
    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging. Exposes no secrets or paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
