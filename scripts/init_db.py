"""Migrate the configured database and report the stored draw sessions."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from codedraw.db.engine import make_engine
from codedraw.db.migrations import (
    SESSIONS_TABLE,
    current_revision,
    sessions_table_exists,
    stored_keys,
    upgrade_db,
)


def main(revision: str = "head") -> int:
    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(levelname)s %(name)s %(message)s",
    )

    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    with engine.begin() as connection:
        upgrade_db(connection, revision)
        if not sessions_table_exists(connection):
            print(f"{SESSIONS_TABLE} is missing from {url_display} after upgrading to {revision}")
            return 1
        keys = stored_keys(connection)
        print(f"{url_display} at revision {current_revision(connection)}")
    if keys:
        print(f"{SESSIONS_TABLE}: {len(keys)} stored session(s): {', '.join(keys)}")
    else:
        print(f"{SESSIONS_TABLE}: empty (the first draw creates the session)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
