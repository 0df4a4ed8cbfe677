# Overview: Flask API routes for organizations and memberships; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..models.tenancy import ROLE_MEMBER
from ..services import organization_service
from ..services.organization_service import (
    OrganizationError,
    OrganizationNotFoundError,
    OrganizationPermissionError,
)


organizations_bp = Blueprint("organizations", __name__, url_prefix="/api/organizations")
user_bp = Blueprint("user", __name__, url_prefix="/api/user")


def _json_error(exc: Exception):
    if isinstance(exc, OrganizationError):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        if isinstance(exc, OrganizationPermissionError):
            return jsonify(body), 403
        if isinstance(exc, OrganizationNotFoundError):
            return jsonify(body), 404
        return jsonify(body), 400
    return jsonify({"error": "Internal server error"}), 500


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@organizations_bp.get("")
@require_auth
def list_organizations_route():
    """
    Organizations the caller belongs to, plus the one to open.

    ?preferredId= is the client's remembered choice; it is honored only
    while the caller is still a member.
    """
    user_id = g.current_user.id
    preferred_id = request.args.get("preferredId", type=int)
    organizations = organization_service.list_user_organizations(user_id)
    current = organization_service.resolve_current_organization(user_id, preferred_id)
    return jsonify({"organizations": organizations, "current": current}), 200


@organizations_bp.post("")
@require_auth
def create_organization_route():
    data = _body()
    try:
        org = organization_service.create_organization(
            g.current_user.id,
            data.get("name"),
            data.get("description"),
        )
        return jsonify({"success": True, "organization": org.to_dict()}), 201
    except OrganizationError as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to create organization")
        return _json_error(exc)


@organizations_bp.patch("/<int:organization_id>")
@require_auth
def update_organization_route(organization_id: int):
    data = _body()
    try:
        org = organization_service.update_organization(
            organization_id,
            g.current_user.id,
            name=data.get("name"),
            description=data.get("description"),
            avatar_url=data.get("avatarUrl"),
        )
        return jsonify({"success": True, "organization": org.to_dict()}), 200
    except OrganizationError as exc:
        return _json_error(exc)


@organizations_bp.delete("/<int:organization_id>")
@require_auth
def delete_organization_route(organization_id: int):
    try:
        organization_service.delete_organization(organization_id, g.current_user.id)
        return jsonify({"success": True}), 200
    except OrganizationError as exc:
        return _json_error(exc)


@organizations_bp.get("/<int:organization_id>/members")
@require_auth
def list_members_route(organization_id: int):
    try:
        members = organization_service.list_members(organization_id, g.current_user.id)
        return jsonify({"members": [m.to_dict() for m in members]}), 200
    except OrganizationError as exc:
        return _json_error(exc)


@organizations_bp.post("/<int:organization_id>/members")
@require_auth
def add_member_route(organization_id: int):
    data = _body()
    try:
        member = organization_service.add_member_by_email(
            organization_id,
            g.current_user.id,
            data.get("email"),
            data.get("role") or ROLE_MEMBER,
        )
        return jsonify({"success": True, "member": member.to_dict()}), 201
    except OrganizationError as exc:
        return _json_error(exc)
    except Exception as exc:
        current_app.logger.exception("Failed to add member")
        return _json_error(exc)


@organizations_bp.patch("/<int:organization_id>/members/<int:member_id>")
@require_auth
def update_member_route(organization_id: int, member_id: int):
    role = _body().get("role")
    if not role:
        return jsonify({"error": "role is required"}), 400
    try:
        member = organization_service.update_member_role(organization_id, g.current_user.id, member_id, role)
        return jsonify({"success": True, "member": member.to_dict()}), 200
    except OrganizationError as exc:
        return _json_error(exc)


@organizations_bp.delete("/<int:organization_id>/members/<int:member_id>")
@require_auth
def remove_member_route(organization_id: int, member_id: int):
    try:
        organization_service.remove_member(organization_id, g.current_user.id, member_id)
        return jsonify({"success": True}), 200
    except OrganizationError as exc:
        return _json_error(exc)


@organizations_bp.post("/<int:organization_id>/leave")
@require_auth
def leave_organization_route(organization_id: int):
    try:
        organization_service.leave_organization(organization_id, g.current_user.id)
        return jsonify({"success": True}), 200
    except OrganizationError as exc:
        return _json_error(exc)


@user_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "organizations": organization_service.list_user_organizations(user.id),
    }), 200
