# Overview: Service-layer operations for organizations, memberships and the role hierarchy.

"""
Organization Service

WHY: Every database-backed resource (products, sales, close-outs, settings)
belongs to exactly one organization. Access is decided only by the caller's
membership row and its role; there is no global admin.

ROLE HIERARCHY (lowest to highest):
    viewer < member < admin < owner

    viewer  - read products, sales and analytics
    member  - also record sales, email signups and close-outs
    admin   - also edit products and settings, manage members
    owner   - also delete the organization and grant/revoke ownership

MULTI-TENANT: require_role() is the single gate. Routes call it (through
@require_org_role) before touching any org-scoped table.

INVARIANTS:
- An organization always keeps at least one owner.
- Only an owner may grant the owner role or change an owner's role.
- Deleting an organization is a soft delete (is_active=False).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlalchemy import func

from ..extensions import db
from ..models import Organization, OrganizationMember, User
from ..models.tenancy import ROLE_ADMIN, ROLE_MEMBER, ROLE_OWNER, ROLE_VIEWER


logger = logging.getLogger(__name__)

ROLE_HIERARCHY = (ROLE_VIEWER, ROLE_MEMBER, ROLE_ADMIN, ROLE_OWNER)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


class OrganizationError(Exception):
    """Raised for invalid organization or membership operations."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrganizationNotFoundError(OrganizationError):
    pass


class OrganizationPermissionError(OrganizationError):
    pass


@dataclass
class OrganizationContext:
    """Resolved (organization, caller role) for one request."""
    organization: Organization
    role: str
    user_id: int

    @property
    def organization_id(self) -> int:
        return self.organization.id

    def has_role(self, min_role: str) -> bool:
        return has_role(self.role, min_role)


def role_rank(role: str) -> int:
    try:
        return ROLE_HIERARCHY.index(role)
    except ValueError:
        raise OrganizationError(
            f"Invalid role: {role}",
            details={"allowed_roles": list(ROLE_HIERARCHY)},
        ) from None


def has_role(role: str | None, min_role: str) -> bool:
    """True when `role` is at or above `min_role` in the hierarchy."""
    if role not in ROLE_HIERARCHY:
        return False
    return role_rank(role) >= role_rank(min_role)


def _membership(organization_id: int, user_id: int) -> OrganizationMember | None:
    return db.session.query(OrganizationMember).filter_by(
        organization_id=organization_id,
        user_id=user_id,
    ).first()


def require_role(organization_id: int, user_id: int, min_role: str = ROLE_VIEWER) -> OrganizationContext:
    """
    Resolve the caller's membership and enforce a minimum role.

    SECURITY: non-members get the same 403 as under-privileged members, so
    organization ids cannot be probed for existence.
    """
    org = db.session.query(Organization).filter_by(id=organization_id, is_active=True).first()
    member = _membership(organization_id, user_id) if org else None
    if not org or not member:
        logger.warning("User %s denied access to organization %s", user_id, organization_id)
        raise OrganizationPermissionError("You do not have access to this organization")

    if not has_role(member.role, min_role):
        logger.warning(
            "User %s (%s) lacks %s role in organization %s",
            user_id, member.role, min_role, organization_id,
        )
        raise OrganizationPermissionError(
            f"This action requires the {min_role} role",
            details={"required_role": min_role, "current_role": member.role},
        )
    return OrganizationContext(organization=org, role=member.role, user_id=user_id)


def _member_counts(organization_ids: list[int]) -> dict[int, int]:
    if not organization_ids:
        return {}
    rows = (
        db.session.query(OrganizationMember.organization_id, func.count(OrganizationMember.id))
        .filter(OrganizationMember.organization_id.in_(organization_ids))
        .group_by(OrganizationMember.organization_id)
        .all()
    )
    return {org_id: count for org_id, count in rows}


def list_user_organizations(user_id: int) -> list[dict]:
    """Active organizations the user belongs to, most recently joined first."""
    rows = (
        db.session.query(Organization, OrganizationMember)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .filter(OrganizationMember.user_id == user_id, Organization.is_active.is_(True))
        .order_by(OrganizationMember.joined_at.desc(), OrganizationMember.id.desc())
        .all()
    )
    counts = _member_counts([org.id for org, _ in rows])
    result = []
    for org, member in rows:
        data = org.to_dict()
        data["role"] = member.role
        data["memberCount"] = counts.get(org.id, 0)
        result.append(data)
    return result


def resolve_current_organization(user_id: int, preferred_id: int | None = None) -> dict | None:
    """
    The organization a client should open with.

    Uses `preferred_id` when the user still belongs to it, otherwise the
    first entry of list_user_organizations(). None when the user has no
    organizations.
    """
    organizations = list_user_organizations(user_id)
    if not organizations:
        return None
    if preferred_id is not None:
        for org in organizations:
            if org["id"] == preferred_id:
                return org
    return organizations[0]


def slugify(name: str) -> str:
    slug = _SLUG_STRIP.sub("-", (name or "").lower()).strip("-")
    return slug or "organization"


def _unique_slug(name: str) -> str:
    base = slugify(name)
    slug = base
    suffix = 2
    while db.session.query(Organization.id).filter_by(slug=slug).first():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def create_organization(user_id: int, name: str, description: str | None = None) -> Organization:
    """Create an organization; the creator becomes its owner."""
    name = (name or "").strip()
    if not name:
        raise OrganizationError("Organization name is required")
    if not db.session.get(User, user_id):
        raise OrganizationNotFoundError("User not found")

    org = Organization(
        name=name,
        slug=_unique_slug(name),
        description=(description or "").strip() or None,
        created_by=user_id,
        is_active=True,
    )
    db.session.add(org)
    db.session.flush()
    db.session.add(OrganizationMember(
        organization_id=org.id,
        user_id=user_id,
        role=ROLE_OWNER,
    ))
    db.session.commit()
    logger.info("Organization %s (%s) created by user %s", org.id, org.slug, user_id)
    return org


def update_organization(
    organization_id: int,
    user_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
    avatar_url: str | None = None,
) -> Organization:
    """Edit name/description/avatar. Requires admin."""
    context = require_role(organization_id, user_id, ROLE_ADMIN)
    org = context.organization
    if name is not None:
        name = name.strip()
        if not name:
            raise OrganizationError("Organization name cannot be empty")
        org.name = name
    if description is not None:
        org.description = description.strip() or None
    if avatar_url is not None:
        org.avatar_url = avatar_url.strip() or None
    db.session.commit()
    return org


def delete_organization(organization_id: int, user_id: int) -> None:
    """Soft delete. Requires owner."""
    context = require_role(organization_id, user_id, ROLE_OWNER)
    context.organization.is_active = False
    db.session.commit()
    logger.info("Organization %s deactivated by user %s", organization_id, user_id)


def list_members(organization_id: int, user_id: int) -> list[OrganizationMember]:
    require_role(organization_id, user_id, ROLE_VIEWER)
    return (
        db.session.query(OrganizationMember)
        .filter_by(organization_id=organization_id)
        .order_by(OrganizationMember.joined_at.desc(), OrganizationMember.id.desc())
        .all()
    )


def _owner_count(organization_id: int) -> int:
    return db.session.query(OrganizationMember).filter_by(
        organization_id=organization_id,
        role=ROLE_OWNER,
    ).count()


def add_member_by_email(
    organization_id: int,
    actor_id: int,
    email: str,
    role: str = ROLE_MEMBER,
) -> OrganizationMember:
    """
    Add an existing user (looked up by email) to the organization.

    Requires admin; granting owner requires owner.
    """
    context = require_role(organization_id, actor_id, ROLE_ADMIN)
    role_rank(role)
    if role == ROLE_OWNER and context.role != ROLE_OWNER:
        raise OrganizationPermissionError("Only owners can add other owners")

    normalized = (email or "").strip().lower()
    if not normalized:
        raise OrganizationError("Email is required")
    user = db.session.query(User).filter_by(email=normalized).first()
    if not user:
        raise OrganizationError(f"No user found with email: {email}")

    existing = _membership(organization_id, user.id)
    if existing:
        raise OrganizationError(
            f"User is already a {existing.role} of this organization",
            details={"role": existing.role},
        )

    member = OrganizationMember(
        organization_id=organization_id,
        user_id=user.id,
        role=role,
        invited_by=actor_id,
    )
    db.session.add(member)
    db.session.commit()
    logger.info("Added %s as %s to organization %s", normalized, role, organization_id)
    return member


def _target_member(organization_id: int, member_id: int) -> OrganizationMember:
    member = db.session.query(OrganizationMember).filter_by(
        id=member_id,
        organization_id=organization_id,
    ).first()
    if not member:
        raise OrganizationNotFoundError("Member not found")
    return member


def update_member_role(organization_id: int, actor_id: int, member_id: int, role: str) -> OrganizationMember:
    """
    Change a member's role. Requires admin.

    Only owners may promote to owner or change an owner's role, and the
    last owner cannot be demoted.
    """
    context = require_role(organization_id, actor_id, ROLE_ADMIN)
    role_rank(role)
    member = _target_member(organization_id, member_id)

    touches_owner = role == ROLE_OWNER or member.role == ROLE_OWNER
    if touches_owner and context.role != ROLE_OWNER:
        raise OrganizationPermissionError("Only owners can grant or revoke the owner role")
    if member.role == ROLE_OWNER and role != ROLE_OWNER and _owner_count(organization_id) <= 1:
        raise OrganizationError("Cannot demote the last owner of the organization")

    member.role = role
    db.session.commit()
    return member


def remove_member(organization_id: int, actor_id: int, member_id: int) -> None:
    """Remove a member. Requires admin; removing an owner requires owner."""
    context = require_role(organization_id, actor_id, ROLE_ADMIN)
    member = _target_member(organization_id, member_id)

    if member.role == ROLE_OWNER:
        if context.role != ROLE_OWNER:
            raise OrganizationPermissionError("Only owners can remove an owner")
        if _owner_count(organization_id) <= 1:
            raise OrganizationError("Cannot remove the last owner of the organization")

    db.session.delete(member)
    db.session.commit()


def leave_organization(organization_id: int, user_id: int) -> None:
    """Remove the caller's own membership. The only owner cannot leave."""
    member = _membership(organization_id, user_id)
    if not member:
        raise OrganizationNotFoundError("You are not a member of this organization")
    if member.role == ROLE_OWNER and _owner_count(organization_id) <= 1:
        raise OrganizationError(
            "Cannot leave organization: you are the only owner. "
            "Transfer ownership or delete the organization first."
        )
    db.session.delete(member)
    db.session.commit()
    logger.info("User %s left organization %s", user_id, organization_id)
