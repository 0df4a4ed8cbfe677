# Overview: Flask API routes for recorded sales and mailing-list signups; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_org_role
from ..models.tenancy import ROLE_MEMBER, ROLE_VIEWER
from ..records import EmailSignupRecord, RecordError, SaleRecord
from ..services import email_signup_service, sales_service
from ..services.sales_service import SaleError
from ..time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")
email_signups_bp = Blueprint("email_signups", __name__, url_prefix="/api/email-signups")


def _json_error(exc: Exception):
    if isinstance(exc, RecordError):
        return jsonify({"error": str(exc), "details": {"field": exc.field}}), 400
    if isinstance(exc, SaleError):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        return jsonify(body), 400
    return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_org_role(ROLE_VIEWER)
def list_sales_route():
    """Sales newest first. Optional ?start=&end= ISO bounds and ?limit=."""
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
        limit = request.args.get("limit", type=int)
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    sales = sales_service.list_sales(g.org_context.organization_id, start=start, end=end, limit=limit)
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.post("")
@require_auth
@require_org_role(ROLE_MEMBER)
def record_sales_route():
    """
    Record a batch of completed sales.

    Body: {"sales": [ {id, timestamp, items, total, actualAmount?, discount?,
    paymentMethod, tipAmount?}, ... ]}

    Sale ids already stored are reported under "skipped" and left untouched.
    """
    data = request.get_json(silent=True) or {}
    payload = data.get("sales")
    if not isinstance(payload, list):
        return jsonify({"error": "sales must be a list"}), 400
    try:
        records = [SaleRecord.from_payload(s) for s in payload]
        result = sales_service.record_sales(g.org_context.organization_id, records, g.current_user.id)
        return jsonify({"success": True, **result}), 200
    except (RecordError, SaleError) as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to record sales")
        return _json_error(exc)


@sales_bp.post("/mark-synced")
@require_auth
@require_org_role(ROLE_MEMBER)
def mark_synced_route():
    data = request.get_json(silent=True) or {}
    sale_ids = data.get("saleIds")
    if not isinstance(sale_ids, list):
        return jsonify({"error": "saleIds must be a list"}), 400
    updated = sales_service.mark_synced(g.org_context.organization_id, [str(s) for s in sale_ids])
    return jsonify({"success": True, "updated": updated}), 200


@email_signups_bp.get("")
@require_auth
@require_org_role(ROLE_VIEWER)
def list_signups_route():
    signups = email_signup_service.list_signups(g.org_context.organization_id)
    return jsonify({"signups": [s.to_dict() for s in signups]}), 200


@email_signups_bp.post("")
@require_auth
@require_org_role(ROLE_MEMBER)
def record_signup_route():
    data = request.get_json(silent=True) or {}
    try:
        record = EmailSignupRecord.from_payload(data)
        signup = email_signup_service.record_signup(g.org_context.organization_id, record)
        return jsonify({"success": True, "signup": signup.to_dict()}), 201
    except RecordError as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to record email signup")
        return _json_error(exc)
