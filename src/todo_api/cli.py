"""Todo API command-line interface.

Usage:
    todo-api serve                 # Run the HTTP server on $PORT (default 3000)
    todo-api serve --port 8080     # Override the listen port
    todo-api migrate up            # Apply pending migrations
    todo-api migrate down          # Revert the latest migration
    todo-api migrate status        # List registered migrations and their state

`python -m todo_api` runs the same commands.
"""
from __future__ import annotations

import logging
from dataclasses import replace

import click
import uvicorn

from .db import Database
from .main import create_app
from .migrations import MIGRATIONS, applied_versions, downgrade, upgrade
from .settings import get_settings


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.pass_context
def main(ctx: click.Context) -> None:
    """Todo REST CRUD server."""
    settings = get_settings()
    _configure_logging(settings.log_level)
    ctx.obj = settings


@main.command()
@click.option("--host", default=None, help="Bind host (defaults to $HOST)")
@click.option("--port", type=int, default=None, help="Listen port (defaults to $PORT)")
@click.pass_obj
def serve(settings, host, port) -> None:
    """Run the HTTP server."""
    settings = replace(
        settings,
        host=host or settings.host,
        port=port or settings.port,
    )
    app = create_app(settings)
    click.echo(f"Server is running at http://localhost:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)


@main.group()
def migrate() -> None:
    """Apply or revert schema migrations."""


@migrate.command("up")
@click.pass_obj
def migrate_up(settings) -> None:
    """Apply every pending migration."""
    database = Database(settings.database_url, echo=settings.database_echo)
    try:
        applied = upgrade(database.engine)
    finally:
        database.dispose()
    if not applied:
        click.echo("Already up to date.")
    for version in applied:
        click.echo(f"Applied {version}")


@migrate.command("down")
@click.option("--steps", default=1, show_default=True, help="Number of migrations to revert")
@click.pass_obj
def migrate_down(settings, steps: int) -> None:
    """Revert the most recently applied migrations."""
    database = Database(settings.database_url, echo=settings.database_echo)
    try:
        reverted = downgrade(database.engine, steps=steps)
    finally:
        database.dispose()
    if not reverted:
        click.echo("Nothing to revert.")
    for version in reverted:
        click.echo(f"Reverted {version}")


@migrate.command("status")
@click.pass_obj
def migrate_status(settings) -> None:
    """Show registered migrations and whether they are applied."""
    database = Database(settings.database_url, echo=settings.database_echo)
    try:
        done = set(applied_versions(database.engine))
    finally:
        database.dispose()
    for migration in MIGRATIONS:
        state = "applied" if migration.version in done else "pending"
        click.echo(f"{migration.version}_{migration.name}\t{state}")
