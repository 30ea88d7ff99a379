"""Tick loop that commits at most one draw per lottery type per time unit."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .errors import GeneratorInvariantViolation
from .lottery import DEFAULT_LOTTERY_REGISTRY
from .lottery.base import JACKPOT, LotteryRegistry, LotteryType
from .models import DrawRecord
from .publish import DrawPublisher
from .store import RecordStore

logger = logging.getLogger(__name__)


class CoordinatorState(str, Enum):
    RUNNING = "running"
    COOLING_DOWN = "cooling_down"


class TickStatus(str, Enum):
    COMMITTED = "committed"
    CONFLICT = "conflict"  # another worker owns this tick
    COOLING_DOWN = "cooling_down"
    MAINTENANCE = "maintenance"
    FAILED = "failed"


@dataclass
class TickReport:
    """Outcome of a single :meth:`TickCoordinator.run_once` call.

    Attributes
    ----------
    tick : int
        Tick unit the iteration ran for.
    status : TickStatus
        What the iteration did.
    records : list[DrawRecord]
        Records committed during the iteration. A failed tick may still list
        the records committed before the failure.
    error : Optional[BaseException]
        Exception that ended a failed tick.
    """

    tick: int
    status: TickStatus
    records: list[DrawRecord] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def jackpot(self) -> bool:
        return any(r.score == JACKPOT for r in self.records)


class TickCoordinator:
    """Drive draws for every registered lottery type on a fixed cadence.

    Several coordinators may share one :class:`RecordStore`; the store's tick
    claim lets exactly one of them draw for each tick unit. After a jackpot
    all of them pause for ``pause_seconds`` because the deadline is kept in
    the store.
    """

    def __init__(
        self,
        store: RecordStore,
        registry: Optional[LotteryRegistry] = None,
        *,
        publisher: Optional[DrawPublisher] = None,
        interval_seconds: float = 1.0,
        pause_seconds: float = 30.0,
        strict: bool = False,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if pause_seconds < 0:
            raise ValueError("pause_seconds must be non-negative")
        self._store = store
        self._registry = registry if registry is not None else DEFAULT_LOTTERY_REGISTRY
        self._publisher = publisher
        self._interval = interval_seconds
        self._pause = pause_seconds
        self._strict = strict
        self._clock = clock
        self._monotonic = monotonic
        self._state = CoordinatorState.RUNNING
        self._cooldown_deadline = 0.0
        # True once the store holds our deadline; a store value of 0 then
        # means the deadline was cleared by a reset.
        self._deadline_in_store = False

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def cooldown_deadline(self) -> float:
        return self._cooldown_deadline

    def tick_unit(self, now: float) -> int:
        """Discrete time bucket containing the epoch timestamp ``now``."""
        return int(now // self._interval)

    def run_once(self, now: Optional[float] = None) -> TickReport:
        """Run one iteration of the tick loop.

        1. Skip while the store is being reset.
        2. Claim the tick unit; lose the race and the iteration ends silently.
        3. Stay quiet while a jackpot cool-down is in effect; resume after it.
        4. Draw, score and commit one record per registered lottery type.
        5. Pause on a jackpot, then hand the records to the publisher.

        Failures are logged and reported, never raised, except for a
        :class:`GeneratorInvariantViolation` in strict mode. A failed tick
        keeps its claim and is not retried.
        """

        now = self._clock() if now is None else now
        tick = self.tick_unit(now)
        records: list[DrawRecord] = []
        try:
            # Checked before the claim: a reset zeroes the tick lock, and a
            # tick claimed mid-reset would be wiped along with the records.
            if self._store.is_under_maintenance():
                logger.debug(f"Tick {tick} skipped: store under maintenance")
                return TickReport(tick=tick, status=TickStatus.MAINTENANCE)

            if not self._store.try_claim_tick(tick):
                logger.debug(f"Tick {tick} already claimed by another worker")
                return TickReport(tick=tick, status=TickStatus.CONFLICT)

            if self._cooling_down(now):
                return TickReport(tick=tick, status=TickStatus.COOLING_DOWN)

            try:
                for lottery in self._registry:
                    records.append(self._draw_and_commit(lottery))
            finally:
                if records:
                    self._after_commit(records, now)
        except Exception as exc:
            if self._strict and isinstance(exc, GeneratorInvariantViolation):
                raise
            logger.exception(f"Tick {tick} failed")
            return TickReport(tick=tick, status=TickStatus.FAILED, records=records, error=exc)

        return TickReport(tick=tick, status=TickStatus.COMMITTED, records=records)

    def run_forever(
        self,
        stop_event: Optional[threading.Event] = None,
        *,
        max_ticks: Optional[int] = None,
    ) -> int:
        """Run :meth:`run_once` every ``interval_seconds`` until stopped.

        The sleep between iterations is shortened by the time the iteration
        itself took. ``stop_event`` is honoured at the sleep boundary.

        Returns
        -------
        int
            Number of iterations run.
        """

        stop_event = stop_event or threading.Event()
        ticks = 0
        while not stop_event.is_set():
            started = self._monotonic()
            self.run_once()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            elapsed = self._monotonic() - started
            stop_event.wait(max(0.0, self._interval - elapsed))
        return ticks

    def _cooling_down(self, now: float) -> bool:
        stored = self._store.cooldown_until()
        if stored == 0 and self._deadline_in_store:
            # The shared deadline was cleared by a store reset.
            self._cooldown_deadline = 0.0
            self._deadline_in_store = False
        elif stored and stored >= self._cooldown_deadline:
            self._deadline_in_store = True
        deadline = max(self._cooldown_deadline, stored)
        if now < deadline:
            if self._state is not CoordinatorState.COOLING_DOWN:
                logger.info(f"Draws paused until {deadline:.3f} after a jackpot")
            self._state = CoordinatorState.COOLING_DOWN
            self._cooldown_deadline = deadline
            return True
        if self._state is CoordinatorState.COOLING_DOWN:
            self._state = CoordinatorState.RUNNING
            logger.info("Resuming lottery draws after jackpot cool-down")
        return False

    def _draw_and_commit(self, lottery: LotteryType) -> DrawRecord:
        play = lottery.play()
        return self._store.commit(lottery.key, play.draw, play.guesses, play.score)

    def _after_commit(self, records: list[DrawRecord], now: float) -> None:
        if any(r.score == JACKPOT for r in records):
            self._state = CoordinatorState.COOLING_DOWN
            self._cooldown_deadline = now + self._pause
            logger.warning(f"JACKPOT! Pausing draws for {self._pause} seconds")
            self._share_cooldown()
        self._publish(records)

    def _share_cooldown(self) -> None:
        try:
            self._cooldown_deadline = self._store.extend_cooldown(self._cooldown_deadline)
        except Exception:
            # Other workers keep drawing; this one still pauses on its own deadline.
            self._deadline_in_store = False
            logger.exception("Could not store the jackpot cool-down deadline")
        else:
            self._deadline_in_store = True

    def _publish(self, records: list[DrawRecord]) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher.publish(records)
        except Exception:
            logger.exception(f"Publishing {len(records)} committed draw(s) failed")


__all__ = ["CoordinatorState", "TickCoordinator", "TickReport", "TickStatus"]
