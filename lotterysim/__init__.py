"""Recurring lottery draw simulation: generation, tick coordination and storage."""

from .coordinator import CoordinatorState, TickCoordinator, TickReport, TickStatus
from .errors import (
    GeneratorInvariantViolation,
    LotterySimError,
    RecordValidationError,
    StoreMaintenanceError,
    TransientStoreError,
    UnknownLotteryType,
)
from .lottery import DEFAULT_LOTTERY_REGISTRY, LotteryRegistry, LotteryType
from .store import RecordStore

__all__ = [
    "CoordinatorState",
    "DEFAULT_LOTTERY_REGISTRY",
    "GeneratorInvariantViolation",
    "LotteryRegistry",
    "LotterySimError",
    "LotteryType",
    "RecordStore",
    "RecordValidationError",
    "StoreMaintenanceError",
    "TickCoordinator",
    "TickReport",
    "TickStatus",
    "TransientStoreError",
    "UnknownLotteryType",
]
