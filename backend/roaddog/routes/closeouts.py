# Overview: Flask API routes for close-outs; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_org_role
from ..models.tenancy import ROLE_MEMBER, ROLE_VIEWER
from ..services import closeout_service
from ..services.closeout_service import CloseOutError, CloseOutNotFoundError


closeouts_bp = Blueprint("closeouts", __name__, url_prefix="/api/closeouts")


def _json_error(exc: Exception):
    if isinstance(exc, CloseOutNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, CloseOutError):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        return jsonify(body), 400
    return jsonify({"error": "Internal server error"}), 500


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@closeouts_bp.get("/current")
@require_auth
@require_org_role(ROLE_VIEWER)
def current_session_route():
    """Running totals for sales recorded since the last close-out."""
    stats = closeout_service.current_session_stats(g.org_context.organization_id)
    return jsonify(stats), 200


@closeouts_bp.get("")
@require_auth
@require_org_role(ROLE_VIEWER)
def list_close_outs_route():
    close_outs = closeout_service.list_close_outs(g.org_context.organization_id)
    return jsonify({"closeOuts": [c.to_dict() for c in close_outs]}), 200


@closeouts_bp.post("")
@require_auth
@require_org_role(ROLE_MEMBER)
def create_close_out_route():
    """
    Close out the current session.

    Body (all optional): sessionName, location, eventDate (YYYY-MM-DD),
    notes, actualCash (counted cash, for the cash difference).
    """
    data = _body()
    metadata = {key: data[key] for key in closeout_service.EDITABLE_FIELDS + ("actualCash",) if key in data}
    try:
        close_out = closeout_service.create_close_out(
            g.org_context.organization_id, g.current_user.id, metadata
        )
        return jsonify({"success": True, "closeOut": close_out.to_dict()}), 201
    except CloseOutError as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to create close-out")
        return _json_error(exc)


@closeouts_bp.patch("/<int:close_out_id>")
@require_auth
@require_org_role(ROLE_MEMBER)
def update_close_out_route(close_out_id: int):
    changes = {key: value for key, value in _body().items() if key != "organizationId"}
    try:
        close_out = closeout_service.update_close_out(g.org_context.organization_id, close_out_id, changes)
        return jsonify({"success": True, "closeOut": close_out.to_dict()}), 200
    except CloseOutError as exc:
        return _json_error(exc)
