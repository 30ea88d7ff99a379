from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from lotterysim.db.engine import get_sessionmaker, make_engine
from lotterysim.store import RecordStore


def upgrade_db(target_revision: str = "head", database_url: Optional[str] = None) -> None:
    """Apply Alembic migrations up to the requested revision."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    if database_url:
        alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    command.upgrade(alembic_cfg, target_revision)


def seed_counters(database_url: Optional[str] = None) -> None:
    """Create the baseline counter rows so the first commit starts at id 1."""
    engine = make_engine(database_url)
    RecordStore(get_sessionmaker(engine)).initialize()
    engine.dispose()


def print_tables(database_url: Optional[str] = None) -> None:
    """Inspect the configured database and print all table names."""
    engine = make_engine(database_url)
    insp = inspect(engine)
    print("Current tables:", ", ".join(sorted(insp.get_table_names())))
    engine.dispose()


def main() -> None:
    """Apply migrations (default to head) and report the resulting schema."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("--revision", default="head")
    parser.add_argument("--db-url", default=None, help="Overrides DB_URL")
    args = parser.parse_args()

    upgrade_db(args.revision, args.db_url)
    seed_counters(args.db_url)
    print_tables(args.db_url)


if __name__ == "__main__":
    main()
