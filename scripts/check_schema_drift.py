"""Compare the migrated database schema with the ORM models.

Exit status: 0 when they match, 1 when differences were found, 2 when the
database could not be inspected.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from alembic.autogenerate import compare_metadata
from alembic.runtime.migration import MigrationContext
from sqlalchemy.engine import make_url

from lotterysim.config import Settings
from lotterysim.db.engine import make_engine
from lotterysim.models import Base


def find_drift(database_url: str) -> list:
    """Return Alembic's list of differences between ``database_url`` and the models."""
    engine = make_engine(database_url)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={"compare_type": True},
            )
            return compare_metadata(context, Base.metadata)
    finally:
        engine.dispose()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--db-url", default=None, help="Overrides DB_URL")
    args = parser.parse_args(argv)

    url = args.db_url or Settings.from_env().db_url
    shown = make_url(url).render_as_string(hide_password=True)
    try:
        diffs = find_drift(url)
    except Exception as exc:
        print(f"Schema drift check: ERROR for {shown}: {exc}", file=sys.stderr)
        return 2
    if not diffs:
        print(f"Schema drift check: OK (no differences) for {shown}.")
        return 0
    print(f"Schema drift check: FAILED for {shown}. Differences detected:")
    for diff in diffs:
        print(f"- {diff}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
