# Overview: Flask CLI command groups for bootstrap, inspection, and token issuing.

# backend/roaddog/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to the package (PowerShell: $env:FLASK_APP="roaddog").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--org "Road Dog Demo"] [--email owner@roaddog.local]
#   Idempotent bootstrap: creates tables, an owner user and their organization.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organization management (MULTI-TENANT):
# - python -m flask orgs list
#   List all organizations with member counts.
# - python -m flask orgs create --name "The Tour Band" --owner-email owner@roaddog.local
#   Create an organization owned by an existing user.
#
# Users and API tokens:
# - python -m flask users list
#   List all users.
# - python -m flask users create --email crew@roaddog.local [--name "Crew"]
#   Create a user record (sign-in happens at the identity provider).
# - python -m flask users issue-token --email crew@roaddog.local
#   Print a bearer session token for scripts and manual API testing.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization, OrganizationMember, User
from .services import organization_service, session_service


def _user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=email.strip().lower()).first()


def _ensure_user(email: str, name: str | None = None) -> tuple[User, bool]:
    user = _user_by_email(email)
    if user:
        return user, False
    user = User(email=email.strip().lower(), name=name, is_active=True)
    db.session.add(user)
    db.session.commit()
    return user, True


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Road Dog Demo', help='Organization name')
@click.option('--email', default='owner@roaddog.local', help='Owner email')
@with_appcontext
def init_system(org_name, email):
    """
    Initialize a development database: schema, one owner, one organization.

    Safe to re-run; existing rows are reused.
    """
    click.echo("START Initializing Road Dog...")
    db.create_all()

    user, created = _ensure_user(email, name="Owner")
    click.echo(f"{'PASS Created' if created else 'PASS Using existing'} user: {user.email} (ID: {user.id})")

    membership = db.session.query(OrganizationMember).filter_by(user_id=user.id).first()
    if membership:
        org = db.session.get(Organization, membership.organization_id)
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")
    else:
        org = organization_service.create_organization(user.id, org_name)
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Slug: {org.slug})")

    click.echo("\nDONE Run 'python -m flask users issue-token --email "
               f"{user.email}' to get an API token.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = db.session.query(Organization).order_by(Organization.id).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Slug':<25} {'Active':<8} {'Members'}")
    click.echo("="*80)

    for org in orgs:
        member_count = db.session.query(OrganizationMember).filter_by(organization_id=org.id).count()
        active_str = "Yes" if org.is_active else "No"
        click.echo(f"{org.id:<5} {org.name:<30} {org.slug:<25} {active_str:<8} {member_count}")

    click.echo("="*80 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--owner-email', required=True, help='Email of the existing user who will own it')
@click.option('--description', default=None, help='Optional description')
@with_appcontext
def create_org_cli(name, owner_email, description):
    """Create a new organization (tenant)."""
    owner = _user_by_email(owner_email)
    if not owner:
        click.echo(f"FAIL No user found with email '{owner_email}'")
        return

    try:
        org = organization_service.create_organization(owner.id, name, description)
    except organization_service.OrganizationError as exc:
        click.echo(f"FAIL {exc}")
        return
    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, Slug: {org.slug})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<25} {'Active'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.name or '-':<25} {active_str}")
    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email (stored lowercase)')
@click.option('--name', default=None, help='Display name')
@with_appcontext
def create_user_cli(email, name):
    """Create a user."""
    user, created = _ensure_user(email, name)
    if not created:
        click.echo(f"WARN  User '{user.email}' already exists (ID: {user.id})")
        return
    click.echo(f"PASS Created user: {user.email} (ID: {user.id})")


@users_group.command('issue-token')
@click.option('--email', required=True, help='User email')
@with_appcontext
def issue_token_cli(email):
    """Issue a bearer session token for a user."""
    user = _user_by_email(email)
    if not user:
        click.echo(f"FAIL No user found with email '{email}'")
        return

    try:
        session, token = session_service.create_session(user.id)
    except ValueError as exc:
        click.echo(f"FAIL {exc}")
        return
    click.echo(f"PASS Token for {user.email} (expires {session.expires_at.isoformat()}Z):")
    click.echo(token)


def register_commands(app):
    """Register CLI command groups with the Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)  # Multi-tenant organization management
    app.cli.add_command(users_group)
