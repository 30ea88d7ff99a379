"""Exception types raised by the draw subsystem."""

from __future__ import annotations

from typing import Any, Optional


class LotterySimError(RuntimeError):
    """Base class for failures originating in the store or coordinator."""


class TransientStoreError(LotterySimError):
    """A store operation could not complete within its retry budget."""


class StoreMaintenanceError(TransientStoreError):
    """The store is being reset and refuses writes until it finishes."""


class RecordValidationError(ValueError):
    """A draw or guess does not conform to its lottery type's schema.

    Attributes
    ----------
    lottery_type : str
        Type tag whose schema rejected the value.
    record_id : Optional[int]
        Identifier of the stored record, when the value was read back from the
        store.
    details : Any
        Structured error list reported by the schema validator.
    """

    def __init__(
        self,
        message: str,
        *,
        lottery_type: str,
        record_id: Optional[int] = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.lottery_type = lottery_type
        self.record_id = record_id
        self.details = details


class GeneratorInvariantViolation(AssertionError):
    """A random generator was called with arguments it can never satisfy."""


class UnknownLotteryType(KeyError):
    """No lottery type is registered under the requested tag."""


__all__ = [
    "GeneratorInvariantViolation",
    "LotterySimError",
    "RecordValidationError",
    "StoreMaintenanceError",
    "TransientStoreError",
    "UnknownLotteryType",
]
