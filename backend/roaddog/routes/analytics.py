# Overview: Flask API routes for sales analytics; parses input and returns JSON responses.

from datetime import date

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_org_role
from ..models.tenancy import ROLE_VIEWER
from ..services import analytics_service
from ..time_utils import parse_iso_datetime


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _bounds():
    """(start, end) from ?start=&end=; raises ValueError on malformed input."""
    return parse_iso_datetime(request.args.get("start")), parse_iso_datetime(request.args.get("end"))


def _report(fn):
    try:
        start, end = _bounds()
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400
    return jsonify(fn(g.org_context.organization_id, start, end)), 200


@analytics_bp.get("/quick-stats")
@require_auth
@require_org_role(ROLE_VIEWER)
def quick_stats_route():
    return _report(analytics_service.quick_stats)


@analytics_bp.get("/daily-revenue")
@require_auth
@require_org_role(ROLE_VIEWER)
def daily_revenue_route():
    return _report(analytics_service.daily_revenue)


@analytics_bp.get("/product-performance")
@require_auth
@require_org_role(ROLE_VIEWER)
def product_performance_route():
    return _report(analytics_service.product_performance)


@analytics_bp.get("/payment-breakdown")
@require_auth
@require_org_role(ROLE_VIEWER)
def payment_breakdown_route():
    return _report(analytics_service.payment_breakdown)


@analytics_bp.get("/size-distribution")
@require_auth
@require_org_role(ROLE_VIEWER)
def size_distribution_route():
    return _report(analytics_service.size_distribution)


@analytics_bp.get("/products-by-date")
@require_auth
@require_org_role(ROLE_VIEWER)
def products_by_date_route():
    raw = request.args.get("date")
    if not raw:
        return jsonify({"error": "date is required"}), 400
    try:
        day = date.fromisoformat(raw)
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    products = analytics_service.products_by_date(g.org_context.organization_id, day)
    return jsonify({"date": raw, "products": products}), 200
