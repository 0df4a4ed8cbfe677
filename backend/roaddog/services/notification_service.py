# Overview: Outbound notification emails (feedback, beta interest) through the Resend HTTP API.

"""
Notification Service

Sends plain transactional emails to the project inbox (NOTIFICATION_RECIPIENT)
via Resend's REST endpoint. One synchronous HTTP call per notification; a
failed call raises NotificationError and the route answers 500.
"""

from __future__ import annotations

import html
import logging

import httpx
from flask import current_app

from ..records import EMAIL_PATTERN
from ..time_utils import to_utc_z, utcnow


logger = logging.getLogger(__name__)

FEEDBACK_TYPES = {
    "feature": "Feature Request",
    "bug": "Bug Report",
}
REQUEST_TIMEOUT_SECONDS = 10.0


class NotificationError(Exception):
    """Raised when a notification cannot be validated or delivered."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotificationValidationError(NotificationError):
    pass


def send_email(subject: str, body_html: str) -> dict:
    """POST one email to Resend; returns the provider's JSON response."""
    config = current_app.config
    api_key = config.get("RESEND_API_KEY")
    recipient = config.get("NOTIFICATION_RECIPIENT")
    if not api_key or not recipient:
        raise NotificationError("Email notifications are not configured")

    payload = {
        "from": config["NOTIFICATION_FROM"],
        "to": [recipient],
        "subject": subject,
        "html": body_html,
    }
    try:
        with httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            response = client.post(
                config["RESEND_API_URL"],
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("Resend request failed: %s", exc)
        raise NotificationError("Failed to send email", details={"reason": str(exc)}) from exc

    return response.json() if response.content else {}


def send_feedback(feedback_type: str, message: str, sender_email: str) -> dict:
    if not feedback_type or not (message or "").strip():
        raise NotificationValidationError("Type and message are required")
    label = FEEDBACK_TYPES.get(feedback_type)
    if label is None:
        raise NotificationValidationError("Invalid feedback type")

    body = (
        f"<h2>{label}</h2>"
        f"<p><strong>From:</strong> {html.escape(sender_email)}</p>"
        f"<p><strong>Submitted:</strong> {to_utc_z(utcnow())}</p>"
        "<hr />"
        f'<p style="white-space: pre-wrap;">{html.escape(message)}</p>'
    )
    result = send_email(f"{label} - Road Dog", body)
    logger.info("Feedback (%s) sent from %s", feedback_type, sender_email)
    return result


def send_beta_interest(email: str, name: str | None = None) -> dict:
    email = (email or "").strip()
    if not email:
        raise NotificationValidationError("Email is required")
    if not EMAIL_PATTERN.match(email):
        raise NotificationValidationError("Invalid email address")

    body = "<h2>New Beta Tester Interest!</h2>" f"<p><strong>Email:</strong> {html.escape(email)}</p>"
    if name:
        body += f"<p><strong>Name:</strong> {html.escape(name)}</p>"
    body += f"<p><strong>Submitted:</strong> {to_utc_z(utcnow())}</p>"
    result = send_email("New Beta Interest - Road Dog", body)
    logger.info("Beta interest received from %s", email)
    return result
