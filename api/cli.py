"""
Maintenance commands, run with `flask --app api <command>`:
- init-db         create tables
- seed-admin      create the first admin from FIRST_ADMIN_* variables
- purge-sessions  delete refresh-token rows whose expiry has passed
"""
from __future__ import annotations

import asyncio
import os

import click
from flask import current_app
from flask.cli import with_appcontext
from marshmallow import ValidationError

from models.schemas.user import UserCreateSchema
from models.user import Role


def _services():
    return current_app.extensions["bookstore"]


@click.command("init-db")
@with_appcontext
def init_db():
    """Create all tables."""
    asyncio.run(_services().storage.reload())
    click.echo("Database tables created.")


@click.command("seed-admin")
@with_appcontext
def seed_admin():
    """Create the first admin account unless one already exists."""
    email = os.getenv("FIRST_ADMIN_EMAIL")
    password = os.getenv("FIRST_ADMIN_PASSWORD")
    name = os.getenv("FIRST_ADMIN_NAME", "Administrator")
    if not email or not password:
        raise click.ClickException("FIRST_ADMIN_EMAIL and FIRST_ADMIN_PASSWORD must be set")

    try:
        data = UserCreateSchema().load({"name": name, "email": email, "password": password})
    except ValidationError as err:
        raise click.ClickException(f"Invalid admin account: {err.messages}")

    async def _seed():
        services = _services()
        existing = await services.users.find_any_admin()
        if existing is not None:
            return None
        return await services.sessions.register(role=Role.ADMIN, **data)

    created = asyncio.run(_seed())
    if created is None:
        click.echo("An admin already exists; nothing to do.")
    else:
        click.echo(f"Admin {created['email']} created.")


@click.command("purge-sessions")
@with_appcontext
def purge_sessions():
    """Delete expired refresh-token records."""
    purged = asyncio.run(_services().sessions.purge_expired())
    click.echo(f"Purged {purged} expired session record(s).")


def register_commands(app):
    app.cli.add_command(init_db)
    app.cli.add_command(seed_admin)
    app.cli.add_command(purge_sessions)
