"""Alembic environment for the draw database."""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv

# Ensure project root is on path and load environment variables
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))
load_dotenv(ROOT_DIR / ".env")

from lotterysim.config import Settings  # noqa: E402
from lotterysim.db.engine import make_engine  # noqa: E402
from lotterysim.db.utils import resolve_sqlite_url  # noqa: E402
from lotterysim.models import Base  # noqa: E402 - import populates metadata

config = context.config

# Callers running migrations in-process (tests, scripts/init_db.py) can pass
# attributes["configure_logger"] = False to keep their own logging setup.
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def database_url() -> str:
    """URL given to Alembic explicitly, else the worker's ``DB_URL`` setting."""
    explicit = config.get_main_option("sqlalchemy.url")
    if explicit:
        return resolve_sqlite_url(explicit, ROOT_DIR)
    return Settings.from_env().db_url


DATABASE_URL = database_url()
# Percent signs need to be escaped due to ConfigParser interpolation rules.
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))


def run_migrations_offline() -> None:
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
    engine = make_engine(DATABASE_URL)
    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                # SQLite cannot ALTER most constraints in place.
                render_as_batch=connection.dialect.name == "sqlite",
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
