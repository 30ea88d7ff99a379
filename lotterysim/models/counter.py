"""Key/value rows backing the store's counters and locks."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base

DRAW_ID_KEY = "draw_id"
TICK_KEY = "tick"
MAINTENANCE_KEY = "maintenance"
COOLDOWN_KEY = "cooldown_until"

BASELINE_KEYS = (DRAW_ID_KEY, TICK_KEY, MAINTENANCE_KEY, COOLDOWN_KEY)


def type_counter_key(lottery_type: str) -> str:
    return f"type:{lottery_type}"


def score_counter_key(score: float) -> str:
    # ``1`` and ``1.0`` must land on the same row.
    return f"score:{float(score)!r}"


class StoreCounter(Base):
    """A single named integer, mutated only through compare-and-set."""

    __tablename__ = "store_counters"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    """Counter name, e.g. ``draw_id`` or ``type:toto``."""

    value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    """Current value."""

    def __init__(self, *, key: str, value: int = 0) -> None:
        self.key = key
        self.value = value

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<StoreCounter(key={self.key}, value={self.value})>"

    @classmethod
    def read(cls, session: Session, key: str) -> Optional[int]:
        """Return the value stored under ``key`` or ``None`` when absent."""

        return session.scalar(select(cls.value).where(cls.key == key))


__all__ = [
    "BASELINE_KEYS",
    "COOLDOWN_KEY",
    "DRAW_ID_KEY",
    "MAINTENANCE_KEY",
    "StoreCounter",
    "TICK_KEY",
    "score_counter_key",
    "type_counter_key",
]
