# Overview: Flask API routes for feedback and beta-interest notifications; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import notification_service
from ..services.notification_service import NotificationError, NotificationValidationError


feedback_bp = Blueprint("feedback", __name__, url_prefix="/api")


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@feedback_bp.post("/feedback")
@require_auth
def feedback_route():
    """Body: {"type": "feature" | "bug", "message": "..."}"""
    data = _body()
    try:
        notification_service.send_feedback(data.get("type"), data.get("message"), g.current_user.email)
    except NotificationValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except NotificationError:
        current_app.logger.exception("Failed to send feedback")
        return jsonify({"error": "Failed to send feedback"}), 500
    return jsonify({"success": True, "message": "Feedback sent successfully"}), 200


@feedback_bp.post("/beta-interest")
def beta_interest_route():
    """Public landing-page signup. Body: {"email": "...", "name"?: "..."}"""
    data = _body()
    try:
        notification_service.send_beta_interest(data.get("email"), data.get("name"))
    except NotificationValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except NotificationError:
        current_app.logger.exception("Failed to submit beta interest")
        return jsonify({"error": "Failed to submit. Please try again."}), 500
    return jsonify({
        "success": True,
        "message": "Thanks for your interest! We'll be in touch soon.",
    }), 200
