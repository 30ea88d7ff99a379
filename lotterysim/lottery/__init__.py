"""Lottery rule-sets, random sampling, and the type registry."""

from .base import JACKPOT, LotteryRegistry, LotteryType, Play
from .rng import uniform_int, weighted_select
from .toto import TOTO, TotoOutcome, draw_toto, quick_pick_toto, score_toto

DEFAULT_LOTTERY_REGISTRY = LotteryRegistry()
DEFAULT_LOTTERY_REGISTRY.register(TOTO)

__all__ = [
    "DEFAULT_LOTTERY_REGISTRY",
    "JACKPOT",
    "LotteryRegistry",
    "LotteryType",
    "Play",
    "TOTO",
    "TotoOutcome",
    "draw_toto",
    "quick_pick_toto",
    "score_toto",
    "uniform_int",
    "weighted_select",
]
