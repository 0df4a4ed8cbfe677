from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_VIEWER = "viewer"


class Organization(db.Model):
    """
    Multi-tenant root: a band, vendor or team sharing one product catalog.

    MULTI-TENANT: Products, sales, close-outs and settings all carry
    organization_id. No row is shared across organizations.

    Soft delete: is_active=False hides the organization from every listing;
    rows are kept.
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)
    avatar_url = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "avatarUrl": self.avatar_url,
            "createdBy": self.created_by,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class OrganizationMember(db.Model):
    """
    Membership of a user in an organization with one role.

    Roles form a strict hierarchy: owner > admin > member > viewer.
    """
    __tablename__ = "organization_members"
    __table_args__ = (
        db.UniqueConstraint("organization_id", "user_id", name="uq_org_members_org_user"),
        db.Index("ix_org_members_user", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_MEMBER)
    joined_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    invited_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    organization = db.relationship("Organization", backref=db.backref("members", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id])

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "organizationId": self.organization_id,
            "userId": self.user_id,
            "role": self.role,
            "joinedAt": to_utc_z(self.joined_at),
            "invitedBy": self.invited_by,
        }
        if self.user is not None:
            data["user"] = {
                "id": self.user.id,
                "email": self.user.email,
                "name": self.user.name,
                "imageUrl": self.user.image_url,
            }
        return data


class OrganizationSetting(db.Model):
    """
    POS settings document for one organization.

    Saved wholesale: the JSON document always holds the full settings
    (payment methods, categories, theme, currency, email signup capture).
    """
    __tablename__ = "organization_settings"

    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), primary_key=True)
    settings = db.Column(db.JSON, nullable=False)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
