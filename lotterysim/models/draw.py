"""Database model for committed lottery draws."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, Float, Index, String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from .base import ID_TYPE, Base
from ..db.utils import dt_iso


class DrawRecord(Base):
    """Immutable record of one draw committed for a lottery type.

    Rows are written exactly once by :meth:`lotterysim.store.RecordStore.commit`
    and only ever removed by a full store reset.
    """

    __tablename__ = "draw_records"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=False)
    """Store-assigned identifier, strictly increasing in commit order."""

    lottery_type: Mapped[str] = mapped_column(String(50), nullable=False)
    """Type tag of the rule-set that produced ``draw`` and ``guesses``."""

    draw: Mapped[dict] = mapped_column(JSON, nullable=False)
    """Winning outcome, shaped by the lottery type's schema."""

    guesses: Mapped[list] = mapped_column(JSON, nullable=False)
    """Outcomes evaluated against ``draw``."""

    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    """Prize tier reached by the guesses; ``0`` means no prize."""

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Commit time."""

    __table_args__ = (
        # Type-partitioned index; ``ORDER BY id DESC`` walks it newest-first.
        Index("ix_draw_records_type_id", "lottery_type", "id"),
        Index("ix_draw_records_score", "score"),
    )

    def __init__(
        self,
        *,
        id: int,
        lottery_type: str,
        draw: dict,
        guesses: list,
        score: float,
        timestamp: Optional[datetime] = None,
    ) -> None:
        self.id = id
        self.lottery_type = lottery_type
        self.draw = draw
        self.guesses = guesses
        self.score = score
        if timestamp is not None:
            self.timestamp = timestamp

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DrawRecord(id={id}, lottery_type={type}, score={score})>".format(
            id=self.id,
            type=self.lottery_type,
            score=self.score,
        )

    def to_json(self) -> dict[str, Any]:
        """Return the event payload published for this record."""
        return {
            "id": self.id,
            "lottery_type": self.lottery_type,
            "draw": self.draw,
            "guesses": self.guesses,
            "score": self.score,
            "timestamp": dt_iso(self.timestamp),
        }

    def to_json_str(self) -> str:
        return json.dumps(self.to_json())


__all__ = ["DrawRecord"]
