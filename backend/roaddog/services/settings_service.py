# Overview: Service-layer operations for organization and personal POS settings documents.

"""
Settings Service

Settings are one JSON document per organization (and optionally per user),
always saved wholesale: payment methods, categories, theme, display
currency, tip jar and email-signup capture. Loading an organization that
never saved settings returns the defaults flagged `isDefault: true`, which
the client uses to offer the onboarding flow.
"""

from __future__ import annotations

from ..extensions import db
from ..models import OrganizationSetting, User, UserSetting
from ..records import RecordError, default_pos_settings, normalize_pos_settings


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class SettingsNotFoundError(SettingsError):
    pass


def _validate(payload) -> dict:
    try:
        return normalize_pos_settings(payload)
    except RecordError as exc:
        raise SettingsValidationError(str(exc), field=exc.field) from None


def load_organization_settings(organization_id: int) -> dict:
    row = db.session.get(OrganizationSetting, organization_id)
    if row is None:
        settings = default_pos_settings()
        settings["isDefault"] = True
        return settings
    settings = normalize_pos_settings(row.settings or {})
    settings["isDefault"] = False
    return settings


def save_organization_settings(organization_id: int, payload: dict, user_id: int | None = None) -> dict:
    """Replace the organization's settings document (upsert on organization_id)."""
    settings = _validate(payload)
    row = db.session.get(OrganizationSetting, organization_id)
    if row is None:
        row = OrganizationSetting(organization_id=organization_id, settings=settings)
        db.session.add(row)
    else:
        row.settings = settings
    row.updated_by = user_id
    db.session.commit()
    return settings


def load_user_settings(user_id: int) -> dict | None:
    """Personal settings, or None when the user never saved any."""
    row = db.session.get(UserSetting, user_id)
    if row is None:
        return None
    return normalize_pos_settings(row.settings or {})


def save_user_settings(user_id: int, payload: dict) -> dict:
    if not db.session.get(User, user_id):
        raise SettingsNotFoundError("User not found")
    settings = _validate(payload)
    row = db.session.get(UserSetting, user_id)
    if row is None:
        db.session.add(UserSetting(user_id=user_id, settings=settings))
    else:
        row.settings = settings
    db.session.commit()
    return settings
