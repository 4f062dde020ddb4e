"""Alembic entry points for the ``stored_sessions`` schema.

The scripts under ``scripts/`` and the test suite both go through these
helpers, so the Alembic environment is exercised the same way everywhere.
Passing an open :class:`~sqlalchemy.engine.Connection` makes ``alembic/env.py``
migrate that connection instead of opening one for ``DB_URL``; this is how
in-memory SQLite databases are migrated.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from alembic import command
from alembic.autogenerate import compare_metadata
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session

from ..models import Base, StoredSession
from .engine import ROOT_DIR

logger = logging.getLogger(__name__)

SESSIONS_TABLE = StoredSession.__tablename__

# Autogenerate diff kinds that mean a table or column is missing or extra.
STRUCTURAL_DIFFS = frozenset({"add_table", "remove_table", "add_column", "remove_column"})


def alembic_config(connection: Optional[Connection] = None) -> Config:
    """Load ``alembic.ini`` with ``script_location`` pinned to the repository."""

    cfg = Config(str(ROOT_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT_DIR / "alembic"))
    if connection is not None:
        cfg.attributes["connection"] = connection
    return cfg


def upgrade_db(connection: Optional[Connection] = None, revision: str = "head") -> None:
    """Apply migrations up to ``revision``.

    Parameters
    ----------
    connection : Optional[Connection]
        Connection to migrate. When omitted, ``alembic/env.py`` connects to the
        configured ``DB_URL``.
    revision : str, default: "head"
        Target revision identifier.
    """

    logger.info("Upgrading schema to %s", revision)
    command.upgrade(alembic_config(connection), revision)


def current_revision(connection: Connection) -> Optional[str]:
    return MigrationContext.configure(connection).get_current_revision()


def schema_drift(connection: Connection) -> list[Any]:
    """Compare the live schema with the model metadata.

    Returns the raw autogenerate diff list; it is empty when the database
    matches :data:`codedraw.models.Base.metadata`.
    """

    context = MigrationContext.configure(
        connection=connection,
        opts={
            "compare_type": True,
            "render_as_batch": connection.dialect.name == "sqlite",
        },
    )
    return compare_metadata(context, Base.metadata)


def structural_drift(diffs: list[Any]) -> list[tuple]:
    """Keep only the diffs that add or remove whole tables or columns."""

    return [d for d in diffs if isinstance(d, tuple) and d and d[0] in STRUCTURAL_DIFFS]


def sessions_table_exists(connection: Connection) -> bool:
    return inspect(connection).has_table(SESSIONS_TABLE)


def stored_keys(connection: Connection) -> list[str]:
    """Storage keys present in ``stored_sessions``, or ``[]`` if the table is missing."""

    if not sessions_table_exists(connection):
        return []
    with Session(bind=connection) as session:
        return StoredSession.storage_keys(session)


__all__ = [
    "SESSIONS_TABLE",
    "alembic_config",
    "current_revision",
    "schema_drift",
    "sessions_table_exists",
    "stored_keys",
    "structural_drift",
    "upgrade_db",
]
