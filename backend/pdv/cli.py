# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/pdv/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-username admin --admin-password 1234] [--seed-catalog/--no-seed-catalog]
#   Idempotent: creates tables, the first ADMIN user and the default coffee catalog.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username caixa1 --name "Caixa 1" --password 1234 --role OPERATOR
#
# Register sessions:
# - python -m flask registers status
#   Show the OPEN session and its per-method position.
# - python -m flask registers history --limit 20
#   Recent sessions, newest first.

import click
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import Product, UserRole, new_id
from .money import format_cents, parse_non_negative_amount
from .repository import SqlAlchemyRepository
from .services import auth_service, register_service


# (name, category, price, description)
DEFAULT_CATALOG = [
    ("Tradicional", "Cafés em Grão", "25.00", "Torra Escura. Café clássico e equilibrado."),
    ("Gourmet", "Cafés em Grão", "32.00", "Torra Média. Notas frutadas e acidez equilibrada."),
    ("Superior", "Cafés em Grão", "38.00", "Sabor marcante e aroma intenso."),
    ("Especial 84 Pontos", "Especiais", "45.00", "Notas complexas e finalização suave."),
    ("Especial 87 Pontos", "Especiais", "52.00", "Experiência sensorial única com notas florais."),
    ("Especial 90 Pontos", "Especiais", "65.00", "Perfil aromático intenso e notas exóticas."),
    ("Especial 93 Pontos", "Especiais", "80.00", "Café raro com características excepcionais."),
    ("Drip Coffee", "Práticos", "4.50", "Café em sachê para preparo prático."),
]


def seed_catalog() -> int:
    """Insert DEFAULT_CATALOG when the products table is empty. Returns rows added."""
    if db.session.query(Product).count() > 0:
        return 0
    for name, category, price, description in DEFAULT_CATALOG:
        db.session.add(Product(
            id=new_id(),
            name=name,
            category=category,
            price_cents=parse_non_negative_amount(price),
            description=description,
            is_active=True,
        ))
    db.session.commit()
    return len(DEFAULT_CATALOG)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Username of the first ADMIN')
@click.option('--admin-password', default='admin', help='Password/PIN of the first ADMIN')
@click.option('--seed-catalog/--no-seed-catalog', 'load_catalog', default=True, help='Load the default coffee catalog')
@with_appcontext
def init_system(admin_username, admin_password, load_catalog):
    """
    Initialize the PDV database.

    Creates:
    - All tables (db.create_all; safe to re-run)
    - ADMIN user (skipped if the username exists)
    - Default catalog (only when no products exist)

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing PDV...")

    db.create_all()
    click.echo("PASS Tables ready")

    repository = SqlAlchemyRepository()
    if repository.get_user_by_username(admin_username):
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
    else:
        try:
            auth_service.create_user(repository, {
                "username": admin_username,
                "name": "Administrador",
                "password": admin_password,
                "role": UserRole.ADMIN.value,
            })
            click.echo(f"PASS Created ADMIN user: {admin_username}")
        except PosError as e:
            click.echo(f"FAIL Failed to create user '{admin_username}': {e.message}")

    if load_catalog:
        added = seed_catalog()
        if added:
            click.echo(f"PASS Seeded {added} catalog products")
        else:
            click.echo("WARN  Catalog already has products, skipping seed")

    click.echo("DONE PDV initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive operation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = SqlAlchemyRepository().list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'Username':<20} {'Name':<30} {'Role':<10} {'Active'}")
    click.echo("=" * 70)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.username:<20} {user.name:<30} {user.role.value:<10} {active_str}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password or PIN')
@click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.OPERATOR.value,
              show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, name, password, role):
    """Create a new user. Secrets must be at least 4 characters."""
    try:
        user = auth_service.create_user(SqlAlchemyRepository(), {
            "username": username,
            "name": name,
            "password": password,
            "role": role,
        })
        click.echo(f"PASS Created user: {user.username} ({user.role.value})")
    except PosError as e:
        click.echo(f"FAIL {e.message}")


@click.group('registers')
def registers_group():
    """Register session inspection commands."""


@registers_group.command('status')
@with_appcontext
def register_status():
    """Show the OPEN session and its live position."""
    session = register_service.get_open_session(SqlAlchemyRepository())
    if session is None:
        click.echo("Register is CLOSED.")
        return

    position = register_service.cash_position(session)
    click.echo(f"Session {session.id} OPEN since {session.opened_at:%Y-%m-%d %H:%M} (operator {session.operator_id})")
    click.echo(f"  Opening balance: {format_cents(position.opening_balance_cents)}")
    click.echo(f"  Sales:           {position.sale_count}")
    click.echo(f"  Revenue:         {format_cents(position.total_revenue_cents)}")
    for method, cents in position.by_method.items():
        click.echo(f"    {method.value:<8} {format_cents(cents)}")
    click.echo(f"  Expected:        {format_cents(position.expected_balance_cents)}")


@registers_group.command('history')
@click.option('--limit', type=int, default=20, help='Max sessions to show')
@with_appcontext
def register_history(limit):
    """List recent register sessions, newest first."""
    sessions = SqlAlchemyRepository().list_session_history()[:limit]

    if not sessions:
        click.echo("No register sessions found.")
        return

    click.echo(f"{'ID':<34} {'Status':<8} {'Opened':<17} {'Sales':>5} {'Expected':>12} {'Diff':>10}")
    click.echo("=" * 90)
    for session in sessions:
        expected = session.expected_balance_cents
        difference = session.difference_cents
        click.echo(
            f"{session.id:<34} {session.status.value:<8} {session.opened_at:%Y-%m-%d %H:%M} "
            f"{len(session.sales):>5} "
            f"{format_cents(expected) if expected is not None else '-':>12} "
            f"{format_cents(difference) if difference is not None else '-':>10}"
        )


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(registers_group)
