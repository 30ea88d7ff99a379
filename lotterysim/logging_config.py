"""Logging configuration."""

from __future__ import annotations

import logging


def configure_logging(level: str = "INFO") -> None:
    """Configure process-wide logging for a draw worker."""

    resolved = getattr(logging, str(level).upper(), logging.INFO)

    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # SQL echo is noisy at one transaction per counter update.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
