# Overview: Service-layer operations for mailing-list signups captured at the merch table.

from __future__ import annotations

from ..extensions import db
from ..models import EmailSignup
from ..records import EmailSignupRecord


def record_signup(organization_id: int, record: EmailSignupRecord) -> EmailSignup:
    """Store a signup; re-sending the same id returns the stored row unchanged."""
    existing = db.session.get(EmailSignup, (organization_id, record.id))
    if existing:
        return existing

    signup = EmailSignup(
        organization_id=organization_id,
        id=record.id,
        timestamp=record.timestamp,
        email=record.email,
        name=record.name,
        phone=record.phone,
        source=record.source,
        sale_id=record.sale_id,
        synced=record.synced,
    )
    db.session.add(signup)
    db.session.commit()
    return signup


def list_signups(organization_id: int) -> list[EmailSignup]:
    return (
        db.session.query(EmailSignup)
        .filter_by(organization_id=organization_id)
        .order_by(EmailSignup.timestamp.desc())
        .all()
    )
