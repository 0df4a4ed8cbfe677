# Overview: Flask API routes for organization and personal POS settings; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_org_role
from ..models.tenancy import ROLE_ADMIN, ROLE_VIEWER
from ..services import settings_service
from ..services.settings_service import SettingsNotFoundError, SettingsValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _json_error(exc: Exception):
    if isinstance(exc, SettingsValidationError):
        return jsonify({"error": str(exc), "details": {"field": exc.field}}), 400
    if isinstance(exc, SettingsNotFoundError):
        return jsonify({"error": str(exc)}), 404
    return jsonify({"error": "Internal server error"}), 500


def _settings_payload() -> dict | None:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    settings = data.get("settings", data)
    return settings if isinstance(settings, dict) else None


@settings_bp.get("/organization")
@require_auth
@require_org_role(ROLE_VIEWER)
def load_organization_settings_route():
    settings = settings_service.load_organization_settings(g.org_context.organization_id)
    is_default = settings.pop("isDefault")
    return jsonify({"settings": settings, "isDefault": is_default}), 200


@settings_bp.put("/organization")
@require_auth
@require_org_role(ROLE_ADMIN)
def save_organization_settings_route():
    payload = _settings_payload()
    if payload is None:
        return jsonify({"error": "Settings must be an object"}), 400
    try:
        settings = settings_service.save_organization_settings(
            g.org_context.organization_id, payload, g.current_user.id
        )
        return jsonify({"success": True, "settings": settings}), 200
    except SettingsValidationError as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to save organization settings")
        return _json_error(exc)


@settings_bp.get("/user")
@require_auth
def load_user_settings_route():
    settings = settings_service.load_user_settings(g.current_user.id)
    return jsonify({"settings": settings}), 200


@settings_bp.put("/user")
@require_auth
def save_user_settings_route():
    payload = _settings_payload()
    if payload is None:
        return jsonify({"error": "Settings must be an object"}), 400
    try:
        settings = settings_service.save_user_settings(g.current_user.id, payload)
        return jsonify({"success": True, "settings": settings}), 200
    except (SettingsValidationError, SettingsNotFoundError) as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to save user settings")
        return _json_error(exc)
