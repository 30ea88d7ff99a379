"""Singapore Toto rule-set: pick 6 numbers from 1-49 plus an additional number.

Jackpot odds for a single guess are 1 in 13,983,816.
"""

from __future__ import annotations

import secrets
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .base import JACKPOT, LotteryType
from .rng import BitSource, weighted_select

TOTO_KEY = "toto"
POOL_SIZE = 49
PICK_COUNT = 6

# Winning-number frequencies published by Singapore Pools (draws since
# 9 Oct 2014).
MAIN_BALL_FREQUENCY: dict[int, int] = {
    1: 152, 2: 148, 3: 137, 4: 141, 5: 148, 6: 137, 7: 134, 8: 149, 9: 144, 10: 148,
    11: 134, 12: 153, 13: 135, 14: 132, 15: 168, 16: 131, 17: 138, 18: 132, 19: 139, 20: 140,
    21: 136, 22: 153, 23: 136, 24: 146, 25: 128, 26: 133, 27: 137, 28: 155, 29: 128, 30: 146,
    31: 144, 32: 149, 33: 119, 34: 142, 35: 147, 36: 145, 37: 145, 38: 139, 39: 133, 40: 163,
    41: 129, 42: 123, 43: 138, 44: 148, 45: 117, 46: 153, 47: 133, 48: 143, 49: 152,
}

ADDITIONAL_FREQUENCY: dict[int, int] = {
    1: 27, 2: 26, 3: 21, 4: 16, 5: 19, 6: 31, 7: 23, 8: 25, 9: 18, 10: 24,
    11: 16, 12: 22, 13: 24, 14: 18, 15: 20, 16: 27, 17: 19, 18: 26, 19: 22, 20: 35,
    21: 27, 22: 22, 23: 24, 24: 24, 25: 24, 26: 20, 27: 24, 28: 20, 29: 28, 30: 23,
    31: 30, 32: 13, 33: 32, 34: 30, 35: 25, 36: 26, 37: 24, 38: 18, 39: 23, 40: 16,
    41: 24, 42: 27, 43: 19, 44: 25, 45: 20, 46: 25, 47: 20, 48: 30, 49: 28,
}

UNIFORM_FREQUENCY: dict[int, int] = {n: 1 for n in range(1, POOL_SIZE + 1)}


# Prize groups, highest first: (main matches, additional matched, score).
PRIZE_GROUPS: tuple[tuple[int, bool, float], ...] = (
    (5, True, 0.85),
    (5, False, 0.7),
    (4, True, 0.55),
    (4, False, 0.4),
    (3, True, 0.25),
    (3, False, 0.1),
)

WINNING_SCORES: tuple[float, ...] = (JACKPOT,) + tuple(s for _, _, s in PRIZE_GROUPS)


class TotoOutcome(BaseModel):
    """Six main numbers and one additional number.

    Used for both the winning draw and a guess.
    """

    type: Literal["toto"] = TOTO_KEY
    numbers: list[int] = Field(min_length=PICK_COUNT, max_length=PICK_COUNT)
    additional: int = Field(ge=1, le=POOL_SIZE)

    @field_validator("numbers")
    @classmethod
    def _check_numbers(cls, value: list[int]) -> list[int]:
        out_of_range = [n for n in value if not 1 <= n <= POOL_SIZE]
        if out_of_range:
            raise ValueError(f"numbers must be within 1-{POOL_SIZE}: {out_of_range}")
        if len(set(value)) != len(value):
            raise ValueError("numbers must be distinct")
        return value

    @model_validator(mode="after")
    def _check_additional(self) -> "TotoOutcome":
        if self.additional in self.numbers:
            raise ValueError("additional number must not repeat a main number")
        return self


def _pick(main: dict[int, int], additional: dict[int, int], bits: BitSource) -> TotoOutcome:
    numbers: list[int] = []
    while len(numbers) < PICK_COUNT:
        numbers.append(weighted_select(main, numbers, bits=bits))
    extra = weighted_select(additional, numbers, bits=bits)
    return TotoOutcome(numbers=sorted(numbers), additional=extra)


def draw_toto(bits: BitSource = secrets.randbits) -> TotoOutcome:
    """Draw six main numbers and an additional number by historical frequency."""
    return _pick(MAIN_BALL_FREQUENCY, ADDITIONAL_FREQUENCY, bits)


def quick_pick_toto(bits: BitSource = secrets.randbits) -> TotoOutcome:
    """Equally weighted pick, as issued by a lottery terminal."""
    return _pick(UNIFORM_FREQUENCY, UNIFORM_FREQUENCY, bits)


def score_toto(draw: TotoOutcome, guess: TotoOutcome) -> float:
    """Return the prize tier reached by ``guess`` against ``draw``.

    Only the guess's six numbers are compared; one of them matching the
    draw's additional number is what upgrades a tier.
    """

    main_matches = len(set(guess.numbers) & set(draw.numbers))
    additional_match = draw.additional in guess.numbers

    if main_matches == PICK_COUNT:
        return JACKPOT
    for matches, needs_additional, score in PRIZE_GROUPS:
        if main_matches == matches and additional_match == needs_additional:
            return score
    return 0.0


TOTO = LotteryType(
    key=TOTO_KEY,
    schema=TotoOutcome,
    generator=draw_toto,
    scorer=score_toto,
    description=(
        "Singapore Toto: 6 of 49 drawn by historical frequency plus an "
        "additional number; jackpot on 6 main matches."
    ),
)

__all__ = [
    "ADDITIONAL_FREQUENCY",
    "JACKPOT",
    "MAIN_BALL_FREQUENCY",
    "PRIZE_GROUPS",
    "TOTO",
    "TOTO_KEY",
    "TotoOutcome",
    "WINNING_SCORES",
    "draw_toto",
    "quick_pick_toto",
    "score_toto",
]
