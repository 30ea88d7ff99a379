"""Read-only reporting over the record store: history pages and prize totals."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .lottery import DEFAULT_LOTTERY_REGISTRY
from .lottery.base import LotteryRegistry
from .models import DrawRecord
from .store import RecordStore

logger = logging.getLogger(__name__)

PAGE_SIZE = 24

# Singapore Pools prize per winning tier. Groups 1-4 are estimated averages,
# groups 5-7 are fixed amounts.
PRIZE_AMOUNTS: Mapping[float, int] = {
    1.0: 1_000_000,
    0.85: 100_000,
    0.7: 50_000,
    0.55: 2_000,
    0.4: 50,
    0.25: 25,
    0.1: 10,
}


@dataclass
class HistoryPage:
    """One page of a lottery type's draw history, newest first."""

    data: list[DrawRecord] = field(default_factory=list)
    total: int = 0

    def to_json(self) -> dict[str, Any]:
        return {"data": [r.to_json() for r in self.data], "total": self.total}


@dataclass(frozen=True)
class PrizeSummary:
    wins: int
    total_prizes: int

    def to_json(self) -> dict[str, Any]:
        return {"wins": self.wins, "totalPrizes": self.total_prizes}


def history_page(
    store: RecordStore,
    lottery_type: str,
    page: Any = 0,
    *,
    page_size: int = PAGE_SIZE,
    registry: Optional[LotteryRegistry] = None,
) -> HistoryPage:
    """Return page ``page`` of ``lottery_type``'s history.

    Parameters
    ----------
    store : RecordStore
        Store to read from.
    lottery_type : str
        Type tag; must be registered.
    page : Any, default: 0
        Zero-based page number. Anything that is not a non-negative integer
        is treated as the first page.
    page_size : int, default: 24
        Records per page.
    registry : Optional[LotteryRegistry], default: None
        Registry used to check ``lottery_type``; the default registry when
        omitted.

    Raises
    ------
    UnknownLotteryType
        If ``lottery_type`` is not registered.
    RecordValidationError
        If a stored record no longer matches its schema.
    """

    if registry is None:
        registry = DEFAULT_LOTTERY_REGISTRY
    registry.get(lottery_type)

    try:
        page_number = int(page)
    except (TypeError, ValueError, OverflowError):
        page_number = 0
    if page_number < 0:
        page_number = 0

    total = store.count_by_type(lottery_type)
    if not total:
        logger.debug(f"No {lottery_type} draws recorded yet")
        return HistoryPage(data=[], total=0)

    records = store.list_by_type(lottery_type, page_size, page_size * page_number)
    return HistoryPage(data=records, total=total)


def prize_summary(
    store: RecordStore, prize_amounts: Optional[Mapping[float, int]] = None
) -> PrizeSummary:
    """Count winning draws and the prize money they represent.

    Reads only the per-score counters, never the records themselves.
    """

    amounts = PRIZE_AMOUNTS if prize_amounts is None else prize_amounts
    wins = 0
    total_prizes = 0
    for score, amount in amounts.items():
        count = store.count_by_score(score)
        wins += count
        total_prizes += count * amount
    return PrizeSummary(wins=wins, total_prizes=total_prizes)


__all__ = [
    "HistoryPage",
    "PAGE_SIZE",
    "PRIZE_AMOUNTS",
    "PrizeSummary",
    "history_page",
    "prize_summary",
]
