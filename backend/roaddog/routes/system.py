# Overview: Health, version and reference-data endpoints.

"""
System endpoints.

/health checks database connectivity (200 healthy, 503 unhealthy).
/api/currencies lists the supported display currencies for the settings UI.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..currency import BASE_CURRENCY, CURRENCIES
from ..extensions import db
from ..time_utils import to_utc_z, utcnow


API_VERSION = "1.0.0"

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }, 200 if healthy else 503


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info."""
    return {
        "api_version": API_VERSION,
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }


@system_bp.get("/api/currencies")
def currencies():
    return {
        "baseCurrency": BASE_CURRENCY,
        "currencies": [info.to_dict() for info in CURRENCIES.values()],
    }
