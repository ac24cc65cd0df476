# Overview: Flask CLI command groups for bootstrap, allow-list inspection and exports.

# backend/giftdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/maintenance:
# - python -m flask system init
#   Create tables (sql store backend) and ensure the seed administrator exists.
# - python -m flask system cleanup-sessions
#   Delete expired/revoked local session tokens older than 30 days.
#
# Allow-list:
# - python -m flask users list
# - python -m flask users create --email kim@gschargev.co.kr --name "김철수" [--admin]
# - python -m flask users toggle-admin kim@gschargev.co.kr
#
# Catalog:
# - python -m flask catalog list [--category "A(VIP)"]
#
# Clients:
# - python -m flask clients export [--email kim@gschargev.co.kr] [--search 삼성] [--output out.csv]
#   Same rows as the download button; --email applies that user's visibility.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db, get_runtime
from .records import AppState, CATEGORIES, normalize_email
from .services import session_service
from .services.access_service import search_clients, visible_clients
from .services.bootstrap_service import fetch_catalog, fetch_clients, fetch_users
from .services.export_service import export_csv_bytes, export_filename
from .services.user_service import add_user, ensure_seed_admin, toggle_admin
from .validation import ValidationError


def _admin_state() -> AppState:
    """State acting as the seed administrator, for CLI writes."""
    store = get_runtime().store
    admin = ensure_seed_admin(
        store,
        current_app.config["SEED_ADMIN_EMAIL"],
        current_app.config["SEED_ADMIN_NAME"],
    )
    return AppState(current_user=admin, users=fetch_users(store), loading=False)


@click.group('system')
def system_group():
    """System bootstrap and maintenance commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the gift desk.

    Creates:
    - All tables (when STORE_BACKEND=sql; hosted tables are managed remotely)
    - The protected seed administrator on the allow-list
    """
    click.echo("START Initializing gift desk...")

    db.create_all()
    if current_app.config["STORE_BACKEND"] == "sql":
        click.echo("PASS Tables created")
    else:
        click.echo("PASS Local auth tables created (store tables are hosted)")

    admin = ensure_seed_admin(
        get_runtime().store,
        current_app.config["SEED_ADMIN_EMAIL"],
        current_app.config["SEED_ADMIN_NAME"],
    )
    click.echo(f"PASS Seed administrator: {admin.name} <{admin.email}>")
    click.echo("DONE Gift desk initialized")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired and revoked local session tokens older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session token(s)")


@click.group('users')
def users_group():
    """Allow-list inspection and management."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = fetch_users(get_runtime().store)
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'Email':<40} {'Name':<20} {'Admin'}")
    click.echo("=" * 70)
    for user in users:
        click.echo(f"{user.email:<40} {user.name:<20} {'yes' if user.is_admin else 'no'}")
    click.echo("=" * 70 + "\n")


@users_group.command('create')
@click.option('--email', required=True, help='Corporate email address')
@click.option('--name', required=True, help='Display name')
@click.option('--admin', 'is_admin', is_flag=True, default=False, help='Grant administrator role')
@with_appcontext
def create_user_cli(email, name, is_admin):
    try:
        _, user = add_user(
            get_runtime().store,
            _admin_state(),
            email,
            name,
            is_admin,
            domain=current_app.config["CORPORATE_EMAIL_DOMAIN"],
        )
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Added {user.name} <{user.email}>{' (admin)' if user.is_admin else ''}")


@users_group.command('toggle-admin')
@click.argument('email')
@with_appcontext
def toggle_admin_cli(email):
    state = _admin_state()
    if state.find_user(email) is None:
        click.echo(f"FAIL {normalize_email(email)} is not on the allow-list")
        raise SystemExit(1)
    _, user = toggle_admin(get_runtime().store, state, email)
    click.echo(f"PASS {user.email} is now {'an administrator' if user.is_admin else 'a regular user'}")


@click.group('catalog')
def catalog_group():
    """Gift catalog inspection."""


@catalog_group.command('list')
@click.option('--category', type=click.Choice(CATEGORIES), default=None, help='Only one tier')
@with_appcontext
def list_catalog(category):
    items = fetch_catalog(get_runtime().store)
    if category:
        items = tuple(i for i in items if i.target_category == category)
    if not items:
        click.echo("No catalog items found.")
        return

    for item in items:
        click.echo(f"{item.target_category:<10} {item.name:<30} {item.unit_price:>12,}")


@click.group('clients')
def clients_group():
    """Client data exports."""


@clients_group.command('export')
@click.option('--email', default=None, help='Export as this user (visibility rules apply); default all clients')
@click.option('--search', default="", help='Same search as the client list')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None,
              help='File to write (default gift_list_export_<date>.csv)')
@with_appcontext
def export_clients(email, search, output):
    store = get_runtime().store
    clients = fetch_clients(store)

    if email:
        identity = next((u for u in fetch_users(store) if u.email == normalize_email(email)), None)
        if identity is None:
            click.echo(f"FAIL {normalize_email(email)} is not on the allow-list")
            raise SystemExit(1)
        clients = visible_clients(clients, identity)

    clients = search_clients(clients, search)
    path = output or export_filename()
    with open(path, "wb") as fh:
        fh.write(export_csv_bytes(clients))

    lines = sum(c.gift_count for c in clients)
    click.echo(f"PASS Wrote {lines} gift line(s) for {len(clients)} client(s) to {path}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(clients_group)
