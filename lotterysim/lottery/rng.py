"""Unbiased random sampling helpers backed by the OS entropy source."""

from __future__ import annotations

import secrets
from typing import Callable, Collection, Hashable, Mapping, TypeVar

from ..errors import GeneratorInvariantViolation

K = TypeVar("K", bound=Hashable)

BitSource = Callable[[int], int]
"""Callable returning a non-negative integer with the given number of random bits."""

_SAMPLE_BITS = 32
_SAMPLE_SPACE = 1 << _SAMPLE_BITS


def uniform_int(low: int, high: int, *, bits: BitSource = secrets.randbits) -> int:
    """Return an integer in ``[low, high]`` with no modulo bias.

    A 32-bit sample is drawn and rejected when it falls above the largest
    multiple of the range size, so every outcome keeps exactly equal
    probability.

    Parameters
    ----------
    low : int
        Smallest value that may be returned.
    high : int
        Largest value that may be returned.
    bits : BitSource, default: :func:`secrets.randbits`
        Entropy source. Tests substitute a deterministic one.

    Raises
    ------
    GeneratorInvariantViolation
        If the range is empty or wider than the 32-bit sample space.
    """

    span = high - low + 1
    if span <= 0:
        raise GeneratorInvariantViolation(f"empty range [{low}, {high}]")
    if span > _SAMPLE_SPACE:
        raise GeneratorInvariantViolation(
            f"range [{low}, {high}] exceeds {_SAMPLE_BITS}-bit sampling"
        )

    limit = _SAMPLE_SPACE - (_SAMPLE_SPACE % span)
    while True:
        value = bits(_SAMPLE_BITS)
        if value < limit:
            return low + value % span


def weighted_select(
    weights: Mapping[K, int],
    exclude: Collection[K] = (),
    *,
    bits: BitSource = secrets.randbits,
) -> K:
    """Pick one item not in ``exclude`` with probability proportional to its weight.

    Items are walked in the mapping's iteration order, subtracting each weight
    from a uniform draw in ``[1, total]`` until the remainder reaches zero.

    Raises
    ------
    GeneratorInvariantViolation
        If every item is excluded or a weight is not positive. Callers with the
        fixed lottery domains never trigger this.
    """

    excluded = set(exclude)
    eligible = [(item, weight) for item, weight in weights.items() if item not in excluded]
    if not eligible:
        raise GeneratorInvariantViolation("exclude set covers every weighted item")

    total = 0
    for item, weight in eligible:
        if weight <= 0:
            raise GeneratorInvariantViolation(f"weight for {item!r} must be positive")
        total += weight

    remaining = uniform_int(1, total, bits=bits)
    for item, weight in eligible:
        remaining -= weight
        if remaining <= 0:
            return item

    return eligible[-1][0]


__all__ = ["BitSource", "uniform_int", "weighted_select"]
