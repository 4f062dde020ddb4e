"""Alembic environment for the codedraw session store.

Two ways in:

* ``alembic upgrade head`` (or ``scripts/init_db.py``) connects to ``DB_URL``
  from the environment / ``.env``.
* :func:`codedraw.db.migrations.upgrade_db` may hand over an open connection
  through ``config.attributes["connection"]``; it is migrated in place and
  logging configuration is left to the caller.
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path
from typing import Optional

from alembic import context
from sqlalchemy.engine import Connection
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))
load_dotenv(ROOT_DIR / ".env")

from codedraw.db.engine import DEFAULT_SQLITE_URL, make_engine  # noqa: E402
from codedraw.db.utils import resolve_sqlite_url  # noqa: E402
from codedraw.models import Base  # noqa: E402 - registers StoredSession

config = context.config
supplied_connection: Optional[Connection] = config.attributes.get("connection")

if config.config_file_name is not None and supplied_connection is None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _database_url() -> str:
    env_url = os.getenv("DB_URL")
    if env_url:
        return resolve_sqlite_url(env_url, ROOT_DIR)
    return DEFAULT_SQLITE_URL


DATABASE_URL = _database_url()
# ConfigParser interpolation treats "%" specially.
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))


def _configure(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER constraints; later revisions rely on batch mode.
        render_as_batch=connection.dialect.name == "sqlite",
    )


def run_migrations_offline() -> None:
    """Print the DDL for ``stored_sessions`` instead of executing it."""

    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    if supplied_connection is not None:
        _configure(supplied_connection)
        with context.begin_transaction():
            context.run_migrations()
        return

    with make_engine(database_url=DATABASE_URL).connect() as connection:
        _configure(connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
