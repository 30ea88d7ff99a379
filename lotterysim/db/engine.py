"""Engine and session factory for the shared draw database."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .utils import resolve_sqlite_url

load_dotenv()
# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./lottery.db"), ROOT_DIR
)

# Seconds a worker waits for another worker's write lock on a shared SQLite file.
SQLITE_BUSY_TIMEOUT = 30


def _is_sqlite_file(url: str) -> bool:
    return url.startswith("sqlite") and ":memory:" not in url and not url.endswith("://")


def make_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Create an engine that several draw workers can use at the same time.

    For a SQLite file the connections wait on the write lock instead of
    failing, and the journal is switched to WAL so readers do not block the
    worker that is committing.
    """
    url = database_url or DEFAULT_SQLITE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"timeout": SQLITE_BUSY_TIMEOUT, "check_same_thread": False}
    engine = create_engine(
        url,
        echo=echo,
        future=True,
        connect_args=connect_args,
    )

    if _is_sqlite_file(url):

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker:
    # RecordStore hands records out after their session has closed.
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)
