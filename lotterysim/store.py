"""Record store for committed draws and the counters derived from them.

Every contended value (the id counter, the tick lock, the aggregate counters,
the maintenance flag and the cool-down deadline) is a row in
``store_counters`` and is only changed with a compare-and-set ``UPDATE``,
so any number of workers may share one database.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from .db.utils import from_epoch_ms, to_epoch_ms, utc_from_timestamp
from .errors import StoreMaintenanceError, TransientStoreError
from .lottery.base import LotteryRegistry
from .models import DrawRecord, StoreCounter
from .models.counter import (
    BASELINE_KEYS,
    COOLDOWN_KEY,
    DRAW_ID_KEY,
    MAINTENANCE_KEY,
    TICK_KEY,
    score_counter_key,
    type_counter_key,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _CasConflict(Exception):
    """Another writer changed a counter between our read and our update."""


def _to_payload(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


class RecordStore:
    """Append-only draw storage with O(1) aggregate counters.

    Parameters
    ----------
    session_factory : sessionmaker
        Factory producing sessions bound to the shared database. Each store
        operation runs in its own transaction.
    registry : Optional[LotteryRegistry], default: None
        When given, outcomes of registered lottery types are validated on
        :meth:`commit` and again when read back by :meth:`list_by_type`.
    max_retries : int, default: 32
        Attempts made by every compare-and-set loop before giving up with
        :class:`~lotterysim.errors.TransientStoreError`.
    reset_grace_seconds : float, default: 1.0
        Time :meth:`reset` waits for in-flight commits after raising the
        maintenance flag.
    reset_batch_size : int, default: 500
        Number of records deleted per transaction during :meth:`reset`.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        registry: Optional[LotteryRegistry] = None,
        max_retries: int = 32,
        reset_grace_seconds: float = 1.0,
        reset_batch_size: int = 500,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if reset_batch_size < 1:
            raise ValueError("reset_batch_size must be at least 1")
        self._session_factory = session_factory
        self._registry = registry
        self._max_retries = max_retries
        self._reset_grace_seconds = reset_grace_seconds
        self._reset_batch_size = reset_batch_size
        self._clock = clock
        self._sleep = sleep

    # -------- transaction plumbing --------
    def _run(self, operation: str, work: Callable[[Session], T]) -> T:
        """Run ``work`` in a fresh transaction, retrying lost races."""
        last_error: Optional[Exception] = None
        for attempt in range(1, self._max_retries + 1):
            try:
                with self._session_factory.begin() as session:
                    result = work(session)
                    # Hand out plain detached objects that outlive the session.
                    session.flush()
                    session.expunge_all()
                    return result
            except _CasConflict as exc:
                last_error = exc
                logger.debug(f"{operation}: compare-and-set lost on attempt {attempt}")
            except (OperationalError, IntegrityError) as exc:
                last_error = exc
                logger.debug(f"{operation}: store conflict on attempt {attempt}: {exc}")
                self._sleep(min(0.005 * attempt, 0.1))
        raise TransientStoreError(
            f"{operation} did not complete after {self._max_retries} attempts"
        ) from last_error

    @staticmethod
    def _compare_and_set(session: Session, key: str, expected: int, new: int) -> bool:
        result = session.execute(
            update(StoreCounter)
            .where(StoreCounter.key == key, StoreCounter.value == expected)
            .values(value=new)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _increment(session: Session, key: str) -> None:
        result = session.execute(
            update(StoreCounter)
            .where(StoreCounter.key == key)
            .values(value=StoreCounter.value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # First record for this key; a concurrent insert surfaces as an
            # IntegrityError and the whole transaction is retried.
            session.add(StoreCounter(key=key, value=1))
            session.flush()

    @staticmethod
    def _put(session: Session, key: str, value: int) -> None:
        result = session.execute(
            update(StoreCounter)
            .where(StoreCounter.key == key)
            .values(value=value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            session.add(StoreCounter(key=key, value=value))
            session.flush()

    @staticmethod
    def _read_or_create(session: Session, key: str) -> int:
        current = StoreCounter.read(session, key)
        if current is None:
            session.add(StoreCounter(key=key, value=0))
            session.flush()
            return 0
        return current

    def _now_ms(self) -> int:
        return to_epoch_ms(self._clock())

    # -------- lifecycle --------
    def initialize(self) -> None:
        """Create the baseline counter rows if they do not exist yet."""

        def work(session: Session) -> None:
            for key in BASELINE_KEYS:
                self._read_or_create(session, key)

        self._run("initialize", work)

    # -------- write path --------
    def commit(
        self,
        lottery_type: str,
        draw: Any,
        guesses: Sequence[Any],
        score: float,
    ) -> DrawRecord:
        """Persist a draw and update the aggregate counters atomically.

        The next id is claimed with a compare-and-set on the id counter; the
        record insert and the per-type and per-score increments share that
        transaction, so counters never drift from the stored records.

        Parameters
        ----------
        lottery_type : str
            Type tag of the rule-set that produced the outcomes.
        draw : Any
            Winning outcome (schema instance or JSON-compatible mapping).
        guesses : Sequence[Any]
            Guessed outcomes evaluated against ``draw``.
        score : float
            Prize tier reached; ``0`` for no prize.

        Returns
        -------
        DrawRecord
            The stored record with its assigned ``id`` and ``timestamp``.

        Raises
        ------
        RecordValidationError
            If the outcomes do not match a registered type's schema.
        StoreMaintenanceError
            If a reset is in progress.
        TransientStoreError
            If the id could not be claimed within the retry budget.
        """

        if self._registry is not None and lottery_type in self._registry:
            lottery = self._registry.get(lottery_type)
            draw = lottery.validate_outcome(draw)
            guesses = lottery.validate_guesses(guesses)
        draw_payload = _to_payload(draw)
        guess_payloads = [_to_payload(g) for g in guesses]
        score = float(score)

        def work(session: Session) -> DrawRecord:
            if StoreCounter.read(session, MAINTENANCE_KEY):
                raise StoreMaintenanceError("Store reset in progress; commit refused")

            current = self._read_or_create(session, DRAW_ID_KEY)
            if not self._compare_and_set(session, DRAW_ID_KEY, current, current + 1):
                raise _CasConflict(DRAW_ID_KEY)

            record = DrawRecord(
                id=current + 1,
                lottery_type=lottery_type,
                draw=draw_payload,
                guesses=guess_payloads,
                score=score,
                timestamp=utc_from_timestamp(self._clock()),
            )
            session.add(record)
            session.flush()

            self._increment(session, type_counter_key(lottery_type))
            if score != 0:
                self._increment(session, score_counter_key(score))
            return record

        return self._run("commit", work)

    def try_claim_tick(self, tick_unit: int) -> bool:
        """Reserve ``tick_unit`` for the calling worker.

        Returns ``True`` for exactly one caller per tick unit. The stored tick
        never moves backwards, so a worker with a lagging clock cannot claim a
        tick older than the latest committed one.
        """

        def work(session: Session) -> bool:
            current = StoreCounter.read(session, TICK_KEY)
            if current is None:
                session.add(StoreCounter(key=TICK_KEY, value=tick_unit))
                session.flush()
                return True
            if current >= tick_unit:
                return False
            if not self._compare_and_set(session, TICK_KEY, current, tick_unit):
                raise _CasConflict(TICK_KEY)
            return True

        return self._run("try_claim_tick", work)

    def last_claimed_tick(self) -> int:
        return self._read_value(TICK_KEY)

    # -------- read path --------
    def _read_value(self, key: str) -> int:
        value = self._run(f"read {key}", lambda session: StoreCounter.read(session, key))
        return value or 0

    def list_by_type(self, lottery_type: str, limit: int, offset: int = 0) -> list[DrawRecord]:
        """Return up to ``limit`` records of ``lottery_type``, newest first.

        ``offset`` records are skipped from the newest end. The walk uses the
        ``(lottery_type, id)`` index, so its cost is proportional to
        ``offset + limit``.

        Raises
        ------
        ValueError
            If ``limit`` or ``offset`` is negative.
        RecordValidationError
            If a stored record of a registered type fails its schema.
        """

        if limit < 0:
            raise ValueError("limit must be non-negative")
        if offset < 0:
            raise ValueError("offset must be non-negative")
        if limit == 0:
            return []

        def work(session: Session) -> list[DrawRecord]:
            stmt = (
                select(DrawRecord)
                .where(DrawRecord.lottery_type == lottery_type)
                .order_by(DrawRecord.id.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(session.scalars(stmt))

        records = self._run("list_by_type", work)
        if self._registry is not None and lottery_type in self._registry:
            lottery = self._registry.get(lottery_type)
            for record in records:
                lottery.validate_outcome(record.draw, record_id=record.id)
                lottery.validate_guesses(record.guesses, record_id=record.id)
        return records

    def count_by_type(self, lottery_type: str) -> int:
        """Number of records committed for ``lottery_type``."""
        return self._read_value(type_counter_key(lottery_type))

    def count_by_score(self, score: float) -> int:
        """Number of records committed with the nonzero ``score``."""
        return self._read_value(score_counter_key(score))

    # -------- cool-down --------
    def cooldown_until(self) -> float:
        """Epoch seconds until which draws are paused, ``0.0`` when not paused."""
        return from_epoch_ms(self._read_value(COOLDOWN_KEY))

    def extend_cooldown(self, deadline: float) -> float:
        """Move the shared cool-down deadline forward to ``deadline``.

        An earlier deadline never replaces a later one. Returns the deadline in
        effect afterwards, in epoch seconds.
        """

        target = to_epoch_ms(deadline)

        def work(session: Session) -> int:
            current = self._read_or_create(session, COOLDOWN_KEY)
            if current >= target:
                return current
            if not self._compare_and_set(session, COOLDOWN_KEY, current, target):
                raise _CasConflict(COOLDOWN_KEY)
            return target

        return from_epoch_ms(self._run("extend_cooldown", work))

    # -------- maintenance --------
    def is_under_maintenance(self) -> bool:
        return self._read_value(MAINTENANCE_KEY) != 0

    def _set_maintenance(self, value: int) -> None:
        self._run("set maintenance", lambda session: self._put(session, MAINTENANCE_KEY, value))

    def reset(self) -> int:
        """Delete every record and return all counters to their baseline.

        The maintenance flag is raised first and in-flight commits get
        ``reset_grace_seconds`` to drain. Records are then deleted in batches
        of ``reset_batch_size``. If any step fails the flag stays set; see
        :meth:`recover_maintenance`.

        Returns
        -------
        int
            Number of records removed.
        """

        self._set_maintenance(self._now_ms())
        logger.info(
            f"Store reset started; draining writes for {self._reset_grace_seconds}s"
        )
        if self._reset_grace_seconds > 0:
            self._sleep(self._reset_grace_seconds)

        def delete_batch(session: Session) -> int:
            ids = list(
                session.scalars(
                    select(DrawRecord.id)
                    .order_by(DrawRecord.id)
                    .limit(self._reset_batch_size)
                )
            )
            if ids:
                session.execute(delete(DrawRecord).where(DrawRecord.id.in_(ids)))
            return len(ids)

        removed = 0
        while True:
            batch = self._run("reset: delete records", delete_batch)
            removed += batch
            if batch < self._reset_batch_size:
                break
            logger.debug(f"Store reset: {removed} records removed so far")

        def reset_counters(session: Session) -> None:
            session.execute(
                delete(StoreCounter).where(
                    or_(
                        StoreCounter.key.startswith("type:"),
                        StoreCounter.key.startswith("score:"),
                    )
                )
            )
            for key in (DRAW_ID_KEY, TICK_KEY, COOLDOWN_KEY):
                self._put(session, key, 0)

        self._run("reset: counters", reset_counters)
        self._set_maintenance(0)
        logger.info(f"Store reset finished; removed {removed} records")
        return removed

    def recover_maintenance(self, max_age_seconds: float = 0.0) -> bool:
        """Clear a maintenance flag left behind by an interrupted reset.

        Only a flag raised at least ``max_age_seconds`` ago is cleared, so a
        reset still running in another worker is left alone when a suitable
        age is given. Returns ``True`` when a stale flag was cleared.
        """

        threshold = self._now_ms() - to_epoch_ms(max_age_seconds)

        def work(session: Session) -> bool:
            flag = StoreCounter.read(session, MAINTENANCE_KEY)
            if not flag or flag > threshold:
                return False
            if not self._compare_and_set(session, MAINTENANCE_KEY, flag, 0):
                raise _CasConflict(MAINTENANCE_KEY)
            return True

        cleared = self._run("recover_maintenance", work)
        if cleared:
            logger.warning("Cleared a stale maintenance flag left by an interrupted reset")
        return cleared


__all__ = ["RecordStore"]
