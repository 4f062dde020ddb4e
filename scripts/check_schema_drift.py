"""Exit non-zero when ``stored_sessions`` in the live database differs from the model.

Exit codes: 0 no drift, 1 drift found, 2 the database could not be inspected.
"""

from __future__ import annotations

import sys

from sqlalchemy.exc import SQLAlchemyError

from codedraw.db.engine import make_engine
from codedraw.db.migrations import SESSIONS_TABLE, schema_drift


def _describe(diff) -> str:
    # Column modifications arrive as a list of tuples; everything else is one tuple.
    if isinstance(diff, list):
        return "; ".join(_describe(d) for d in diff)
    kind = diff[0]
    if kind in ("add_table", "remove_table"):
        return f"{kind} {diff[1].name}"
    if kind in ("add_column", "remove_column"):
        return f"{kind} {diff[2]}.{diff[3].name}"
    if kind.startswith("modify_"):
        return f"{kind} {diff[2]}.{diff[3]}: {diff[-2]!r} -> {diff[-1]!r}"
    return kind


def main() -> int:
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            diffs = schema_drift(connection)
    except SQLAlchemyError as exc:
        print(f"{SESSIONS_TABLE} drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    if not diffs:
        print(f"{SESSIONS_TABLE} drift check: OK for {url_display}")
        return 0
    print(f"{SESSIONS_TABLE} drift check: FAILED for {url_display}")
    for diff in diffs:
        print(f"  - {_describe(diff)}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
