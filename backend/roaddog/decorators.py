# Overview: Request decorators for authentication, Google token handoff and organization roles.

from functools import wraps

from flask import g, jsonify, request

from .services import organization_service, session_service
from .services.organization_service import OrganizationPermissionError


GOOGLE_TOKEN_HEADER = "X-Google-Access-Token"
ORGANIZATION_HEADER = "X-Organization-Id"


def require_auth(f):
    """
    Require a valid bearer session token.

    Sets g.current_user. Returns 401 when the header is missing, the token
    is unknown, expired or revoked, or the user is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(auth_header.split(" ", 1)[1])
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_google_token(f):
    """
    Require the caller's Google OAuth access token.

    The token is issued to the browser by the identity provider and passed
    through per request; it is never stored. Sets g.google_access_token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = (request.headers.get(GOOGLE_TOKEN_HEADER) or "").strip()
        if not token:
            return jsonify({"error": "Unauthorized - Please sign in"}), 401
        g.google_access_token = token
        return f(*args, **kwargs)

    return decorated_function


def _requested_organization_id():
    raw = request.headers.get(ORGANIZATION_HEADER)
    if raw is None:
        raw = request.args.get("organizationId")
    if raw is None and request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            raw = body.get("organizationId")
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def require_org_role(min_role: str):
    """
    Require membership in the requested organization with at least `min_role`.

    MULTI-TENANT: the organization comes from X-Organization-Id (or an
    organizationId query/body field) and membership is re-checked against
    the database on every request. Sets g.org_context.

    Must be applied after @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401

            organization_id = _requested_organization_id()
            if organization_id is None:
                return jsonify({"error": "Organization ID not provided"}), 400

            try:
                g.org_context = organization_service.require_role(
                    organization_id, g.current_user.id, min_role
                )
            except OrganizationPermissionError as exc:
                body = {"error": str(exc)}
                if exc.details:
                    body["details"] = exc.details
                return jsonify(body), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
