# cli.py
"""
Flask CLI commands for managing users and modules.
"""

import click
from flask.cli import with_appcontext

from efest.exceptions import EfestError
from efest.extensions import db
from efest.models import RoleType, User


@click.command("create-user")
@click.option("--name", prompt=True, help="Display name")
@click.option("--email", prompt=True, help="Email address")
@click.option("--role", prompt=True, type=click.Choice(RoleType.ALL), help="User role")
@with_appcontext
def create_user(name, email, role):
    """Create a user and print a freshly issued API key."""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo(f"Error: User with email {email} already exists", err=True)
        return

    try:
        user = User(name=name.strip(), email=email, role=role)
        api_key = user.issue_api_key()
        db.session.add(user)
        db.session.commit()

        click.echo(f"User {email} created with role {role}")
        click.echo(f"API key (shown once): {api_key}")

    except Exception as e:
        db.session.rollback()
        click.echo(f"Error creating user: {str(e)}", err=True)
        raise


@click.command("rotate-api-key")
@click.argument("email")
@with_appcontext
def rotate_api_key(email):
    """Issue a new API key for an existing user."""
    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"Error: No user with email {email}", err=True)
        return

    api_key = user.issue_api_key()
    db.session.commit()
    click.echo(f"New API key for {user.email}: {api_key}")


@click.command("create-module")
@click.option("--title", prompt=True, help="Module title")
@click.option("--cap", prompt=True, type=int, help="Maximum number of participants")
@click.option("--fee", default=0.0, type=float, help="Base fee")
@click.option("--discount", default=0.0, type=float, help="Discount percentage")
@click.option("--date", default=None, help="ISO date of the module")
@click.option("--location", default=None, help="Venue")
@with_appcontext
def create_module(title, cap, fee, discount, date, location):
    """Create a module."""
    from efest.services.module_service import ModuleService

    try:
        module = ModuleService.create_module({
            'title': title,
            'cap': cap,
            'fee': fee,
            'discount': discount,
            'date': date,
            'location': location
        })
        click.echo(f"Module '{module.title}' created (id {module.id}, cap {module.capacity})")

    except EfestError as e:
        click.echo(f"Error: {e.message}", err=True)


@click.command("module-capacity")
@with_appcontext
def module_capacity():
    """Show enrolled vs cap for every module."""
    from efest.services.capacity_service import CapacityService
    from efest.services.module_service import ModuleService

    modules = ModuleService.list_modules()
    if not modules:
        click.echo("No modules found")
        return

    click.echo(f"{'Module':<40} {'Enrolled':>9} {'Cap':>6} {'Free':>6}")
    click.echo("-" * 64)

    for module in modules:
        capacity = CapacityService.capacity_for_module(module.id)
        marker = ' FULL' if capacity.available == 0 else ''
        click.echo(
            f"{module.title[:40]:<40} {capacity.current_enrolled:>9} {capacity.cap:>6} {capacity.available:>6}{marker}")


def register_cli_commands(app):
    """Register all CLI commands with the Flask app."""
    app.cli.add_command(create_user)
    app.cli.add_command(rotate_api_key)
    app.cli.add_command(create_module)
    app.cli.add_command(module_capacity)


# flask create-user --name "Reg Desk" --email desk@zabefest.org --role registration_team
# flask create-module --title Hackathon --cap 3 --fee 500
# flask module-capacity
