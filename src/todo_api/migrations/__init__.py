"""
Versioned, reversible schema migrations and the runner that applies them.

Each migration module exposes VERSION, NAME, up(connection) and
down(connection). Applied versions are recorded in the 'schema_migrations'
table so that upgrade() only runs what is pending.

Usage:
    from todo_api.migrations import upgrade, downgrade
    upgrade(engine)
    downgrade(engine, steps=1)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from types import ModuleType
from typing import Callable, List

from sqlalchemy import Column, DateTime, MetaData, String, Table, delete, insert, select
from sqlalchemy.engine import Connection, Engine

from . import create_todo_table

logger = logging.getLogger(__name__)

_tracking_metadata = MetaData()

schema_migrations = Table(
    "schema_migrations",
    _tracking_metadata,
    Column("version", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("applied_at", DateTime, nullable=False),
)


@dataclass(frozen=True)
class Migration:
    version: str
    name: str
    up: Callable[[Connection], None]
    down: Callable[[Connection], None]

    @classmethod
    def from_module(cls, module: ModuleType) -> "Migration":
        return cls(version=module.VERSION, name=module.NAME, up=module.up, down=module.down)


# Registered migrations, oldest first
MIGRATIONS: List[Migration] = sorted(
    [Migration.from_module(create_todo_table)],
    key=lambda m: m.version,
)


def _ensure_tracking_table(engine: Engine) -> None:
    with engine.begin() as conn:
        schema_migrations.create(conn, checkfirst=True)


# PUBLIC_INTERFACE
def applied_versions(engine: Engine) -> List[str]:
    """Return the recorded migration versions in ascending order."""
    _ensure_tracking_table(engine)
    with engine.connect() as conn:
        rows = conn.execute(select(schema_migrations.c.version).order_by(schema_migrations.c.version))
        return [row[0] for row in rows]


# PUBLIC_INTERFACE
def upgrade(engine: Engine) -> List[str]:
    """
    Apply every registered migration that has not been recorded yet.

    Each migration and its tracking row are written in one transaction.

    Returns:
        The versions applied by this call (empty when already up to date).
    """
    done = set(applied_versions(engine))
    applied: List[str] = []
    for migration in MIGRATIONS:
        if migration.version in done:
            continue
        with engine.begin() as conn:
            migration.up(conn)
            conn.execute(
                insert(schema_migrations).values(
                    version=migration.version,
                    name=migration.name,
                    applied_at=datetime.now(),
                )
            )
        logger.info("Applied migration %s_%s", migration.version, migration.name)
        applied.append(migration.version)
    return applied


# PUBLIC_INTERFACE
def downgrade(engine: Engine, steps: int = 1) -> List[str]:
    """
    Revert the `steps` most recently applied migrations, newest first.

    Returns:
        The versions reverted by this call (empty when nothing is applied).
    """
    by_version = {m.version: m for m in MIGRATIONS}
    reverted: List[str] = []
    for version in reversed(applied_versions(engine)):
        if len(reverted) >= max(steps, 0):
            break
        migration = by_version.get(version)
        if migration is None:
            raise LookupError(f"Applied migration {version} is not registered; cannot revert it")
        with engine.begin() as conn:
            migration.down(conn)
            conn.execute(delete(schema_migrations).where(schema_migrations.c.version == version))
        logger.info("Reverted migration %s_%s", migration.version, migration.name)
        reverted.append(version)
    return reverted


__all__ = [
    "MIGRATIONS",
    "Migration",
    "applied_versions",
    "downgrade",
    "schema_migrations",
    "upgrade",
]
