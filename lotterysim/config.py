"""Environment-based configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .db.engine import ROOT_DIR
from .db.utils import resolve_sqlite_url

DEFAULT_DB_URL = "sqlite:///./lottery.db"


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{name}' must be a number, got {raw!r}") from exc


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{name}' must be an integer, got {raw!r}") from exc


def _flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings for a draw worker."""

    db_url: str
    tick_interval_seconds: float = 1.0
    jackpot_pause_seconds: float = 30.0
    reset_grace_seconds: float = 1.0
    reset_batch_size: int = 500
    store_max_retries: int = 32
    webhook_url: Optional[str] = None
    log_level: str = "INFO"
    strict: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``env`` (``os.environ`` after loading ``.env``)."""

        if env is None:
            load_dotenv()
            env = os.environ

        return cls(
            db_url=resolve_sqlite_url(env.get("DB_URL") or DEFAULT_DB_URL, ROOT_DIR),
            tick_interval_seconds=_float(env, "TICK_INTERVAL_SECONDS", 1.0),
            jackpot_pause_seconds=_float(env, "JACKPOT_PAUSE_SECONDS", 30.0),
            reset_grace_seconds=_float(env, "RESET_GRACE_SECONDS", 1.0),
            reset_batch_size=_int(env, "RESET_BATCH_SIZE", 500),
            store_max_retries=_int(env, "STORE_MAX_RETRIES", 32),
            webhook_url=env.get("WEBHOOK_URL") or None,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            strict=_flag(env, "LOTTERY_STRICT"),
        )


__all__ = ["DEFAULT_DB_URL", "Settings"]
