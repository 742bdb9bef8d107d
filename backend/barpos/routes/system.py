# backend/barpos/routes/system.py
"""
System health endpoint.

Reports database connectivity for load balancers and deployment debugging.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Tenant, Product, StockMovement, Order

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "tenants": db.session.query(Tenant).count(),
            "products": db.session.query(Product).count(),
            "stock_movements": db.session.query(StockMovement).count(),
            "orders": db.session.query(Order).count(),
        }

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
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
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return {"status": database["status"], "checks": {"database": database}}, status_code
