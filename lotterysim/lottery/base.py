"""Lottery type definitions and the registry the coordinator iterates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Sequence

from pydantic import BaseModel, ValidationError

from ..errors import RecordValidationError, UnknownLotteryType

JACKPOT = 1.0
"""Score of a perfect match; every lottery type reports its top prize with it."""


@dataclass(frozen=True)
class Play:
    """One generated draw, the guess evaluated against it, and the score."""

    draw: BaseModel
    guess: BaseModel
    score: float

    @property
    def guesses(self) -> list[BaseModel]:
        return [self.guess]


@dataclass(frozen=True)
class LotteryType:
    """Definition of a lottery rule-set.

    Attributes
    ----------
    key : str
        Type tag stored on every :class:`~lotterysim.models.DrawRecord`. This
        is also the key used by :class:`LotteryRegistry`.
    schema : type[BaseModel]
        Pydantic model describing one outcome (a draw or a guess).
    generator : Callable[[], BaseModel]
        Produces a winning outcome.
    scorer : Callable[[Any, Any], float]
        Maps ``(draw, guess)`` to a prize tier.
    guesser : Optional[Callable[[], BaseModel]]
        Produces a guess. Falls back to ``generator`` when omitted.
    description : Optional[str]
        Human-readable summary of the rule-set.
    """

    key: str
    schema: type[BaseModel]
    generator: Callable[[], BaseModel]
    scorer: Callable[[Any, Any], float]
    guesser: Optional[Callable[[], BaseModel]] = None
    description: Optional[str] = None

    def draw(self) -> BaseModel:
        return self.generator()

    def guess(self) -> BaseModel:
        return (self.guesser or self.generator)()

    def score(self, draw: BaseModel, guess: BaseModel) -> float:
        return float(self.scorer(draw, guess))

    def play(self) -> Play:
        """Generate a draw, then an independent guess, then score them."""
        draw = self.draw()
        guess = self.guess()
        return Play(draw=draw, guess=guess, score=self.score(draw, guess))

    def validate_outcome(self, value: Any, *, record_id: Optional[int] = None) -> BaseModel:
        """Parse ``value`` into :attr:`schema`.

        Parameters
        ----------
        value : Any
            A schema instance, a mapping, or a JSON string.
        record_id : Optional[int], default: None
            Identifier of the stored record being checked, used in the error.

        Raises
        ------
        RecordValidationError
            If ``value`` does not conform to the schema.
        """
        if isinstance(value, self.schema):
            return value
        try:
            if isinstance(value, (str, bytes)):
                return self.schema.model_validate_json(value)
            return self.schema.model_validate(value)
        except ValidationError as exc:
            where = f" in record {record_id}" if record_id is not None else ""
            raise RecordValidationError(
                f"Invalid {self.key} outcome{where}: {exc.error_count()} error(s)",
                lottery_type=self.key,
                record_id=record_id,
                details=exc.errors(),
            ) from exc

    def validate_guesses(
        self, values: Sequence[Any], *, record_id: Optional[int] = None
    ) -> list[BaseModel]:
        if isinstance(values, (str, bytes, dict)) or not isinstance(values, Sequence):
            raise RecordValidationError(
                f"Invalid {self.key} guesses: expected a list of outcomes",
                lottery_type=self.key,
                record_id=record_id,
            )
        return [self.validate_outcome(v, record_id=record_id) for v in values]


class LotteryRegistry:
    """Mutable registry mapping type tags to lottery definitions."""

    def __init__(self) -> None:
        self._lotteries: Dict[str, LotteryType] = {}

    def register(self, lottery: LotteryType, *, replace: bool = False) -> None:
        """Register a lottery type under its key.

        Parameters
        ----------
        lottery : LotteryType
            Definition to add to the registry.
        replace : bool, default: False
            When ``True`` an existing registration with the same key is
            overwritten. Otherwise a duplicate raises :class:`ValueError`.
        """
        if not replace and lottery.key in self._lotteries:
            raise ValueError(f"Lottery type '{lottery.key}' is already registered")
        self._lotteries[lottery.key] = lottery

    def get(self, key: str) -> LotteryType:
        """Return the lottery type registered under ``key``."""
        try:
            return self._lotteries[key]
        except KeyError as exc:
            raise UnknownLotteryType(f"Unknown lottery type '{key}'") from exc

    def __contains__(self, key: object) -> bool:
        return key in self._lotteries

    def __iter__(self) -> Iterator[LotteryType]:
        return iter(list(self._lotteries.values()))

    def __len__(self) -> int:
        return len(self._lotteries)

    def available_lotteries(self) -> Dict[str, LotteryType]:
        """Return a copy of the registered lottery types keyed by tag."""
        return dict(self._lotteries)


__all__ = ["JACKPOT", "LotteryRegistry", "LotteryType", "Play"]
