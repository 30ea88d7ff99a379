from __future__ import annotations

import json
import unittest
from datetime import datetime, timezone

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from lotterysim.errors import (
    RecordValidationError,
    StoreMaintenanceError,
    TransientStoreError,
)
from lotterysim.lottery import DEFAULT_LOTTERY_REGISTRY, TotoOutcome
from lotterysim.models import Base, DrawRecord, StoreCounter
from lotterysim.store import RecordStore

NOW = 1_700_000_000.0
DRAW = TotoOutcome(numbers=[1, 2, 3, 4, 5, 6], additional=7)
JACKPOT_GUESS = TotoOutcome(numbers=[1, 2, 3, 4, 5, 6], additional=9)
LOSING_GUESS = TotoOutcome(numbers=[20, 21, 22, 23, 24, 25], additional=26)


class RecordStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        self.store = RecordStore(
            self.Session,
            registry=DEFAULT_LOTTERY_REGISTRY,
            reset_grace_seconds=0,
            reset_batch_size=2,
            clock=lambda: NOW,
            sleep=lambda _: None,
        )
        self.store.initialize()

    def tearDown(self) -> None:
        self.engine.dispose()

    def _commit(self, guess: TotoOutcome = LOSING_GUESS, score: float = 0.0) -> DrawRecord:
        return self.store.commit("toto", DRAW, [guess], score)


class CommitTests(RecordStoreTestCase):
    def test_ids_are_sequential_from_one(self) -> None:
        records = [self._commit() for _ in range(5)]
        self.assertEqual([r.id for r in records], [1, 2, 3, 4, 5])
        self.assertEqual(self.store.count_by_type("toto"), 5)

    def test_commit_assigns_timestamp(self) -> None:
        record = self._commit()
        self.assertEqual(record.timestamp, datetime.fromtimestamp(NOW, timezone.utc))
        stored = self.store.list_by_type("toto", 1)[0]
        self.assertEqual(stored.to_json()["timestamp"], "2023-11-14T22:13:20+00:00")

    def test_score_counters_only_track_prizes(self) -> None:
        self._commit(JACKPOT_GUESS, 1.0)
        self._commit(score=0.1)
        self._commit(score=0.1)
        self._commit(score=0.0)
        self.assertEqual(self.store.count_by_score(1.0), 1)
        self.assertEqual(self.store.count_by_score(1), 1)
        self.assertEqual(self.store.count_by_score(0.1), 2)
        self.assertEqual(self.store.count_by_score(0), 0)
        self.assertEqual(self.store.count_by_type("toto"), 4)

    def test_counters_are_partitioned_by_type(self) -> None:
        self._commit()
        self.store.commit("keno", {"picks": [3, 9]}, [{"picks": [3, 10]}], 0.0)
        self.assertEqual(self.store.count_by_type("toto"), 1)
        self.assertEqual(self.store.count_by_type("keno"), 1)
        self.assertEqual(self.store.count_by_type("missing"), 0)
        keno = self.store.list_by_type("keno", 10)
        self.assertEqual([r.id for r in keno], [2])
        self.assertEqual(keno[0].draw, {"picks": [3, 9]})

    def test_invalid_outcome_is_rejected_before_writing(self) -> None:
        with self.assertRaises(RecordValidationError):
            self.store.commit("toto", {"type": "toto", "numbers": [1, 2], "additional": 3}, [], 0.0)
        with self.assertRaises(RecordValidationError):
            self.store.commit("toto", DRAW, DRAW, 0.0)  # type: ignore[arg-type]
        self.assertEqual(self.store.count_by_type("toto"), 0)
        self.assertEqual(self._commit().id, 1)

    def test_first_commit_without_initialize(self) -> None:
        engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(engine)
        store = RecordStore(sessionmaker(bind=engine, future=True, expire_on_commit=False))
        record = store.commit("toto", DRAW, [LOSING_GUESS], 0.0)
        self.assertEqual(record.id, 1)
        engine.dispose()

    def test_record_to_json_round_trips(self) -> None:
        record = self._commit(JACKPOT_GUESS, 1.0)
        payload = json.loads(record.to_json_str())
        self.assertEqual(payload["id"], 1)
        self.assertEqual(payload["lottery_type"], "toto")
        self.assertEqual(payload["draw"], {"type": "toto", "numbers": [1, 2, 3, 4, 5, 6], "additional": 7})
        self.assertEqual(payload["score"], 1.0)


class ListByTypeTests(RecordStoreTestCase):
    def test_newest_first_with_offset_and_limit(self) -> None:
        for _ in range(7):
            self._commit()
        self.assertEqual([r.id for r in self.store.list_by_type("toto", 3)], [7, 6, 5])
        self.assertEqual([r.id for r in self.store.list_by_type("toto", 3, 3)], [4, 3, 2])
        self.assertEqual([r.id for r in self.store.list_by_type("toto", 3, 6)], [1])
        self.assertEqual(self.store.list_by_type("toto", 3, 7), [])
        self.assertEqual(self.store.list_by_type("toto", 0), [])

    def test_round_trip_preserves_outcomes_and_score(self) -> None:
        self._commit(JACKPOT_GUESS, 1.0)
        (record,) = self.store.list_by_type("toto", 1)
        self.assertEqual(TotoOutcome.model_validate(record.draw), DRAW)
        self.assertEqual([TotoOutcome.model_validate(g) for g in record.guesses], [JACKPOT_GUESS])
        self.assertEqual(record.score, 1.0)

    def test_negative_arguments_raise(self) -> None:
        with self.assertRaises(ValueError):
            self.store.list_by_type("toto", -1)
        with self.assertRaises(ValueError):
            self.store.list_by_type("toto", 1, -1)

    def test_corrupted_record_raises_validation_error(self) -> None:
        self._commit()
        with self.Session.begin() as session:
            session.add(
                DrawRecord(
                    id=99,
                    lottery_type="toto",
                    draw={"type": "toto", "numbers": [1, 2, 3], "additional": 4},
                    guesses=[],
                    score=0.0,
                )
            )
        with self.assertRaises(RecordValidationError) as ctx:
            self.store.list_by_type("toto", 10)
        self.assertEqual(ctx.exception.record_id, 99)
        # The store itself is untouched and keeps counting.
        self.assertEqual(self.store.count_by_type("toto"), 1)


class TickClaimTests(RecordStoreTestCase):
    def test_claim_once_per_tick(self) -> None:
        self.assertTrue(self.store.try_claim_tick(10))
        self.assertFalse(self.store.try_claim_tick(10))
        self.assertEqual(self.store.last_claimed_tick(), 10)

    def test_tick_lock_never_moves_backwards(self) -> None:
        self.assertTrue(self.store.try_claim_tick(10))
        self.assertFalse(self.store.try_claim_tick(9))
        self.assertTrue(self.store.try_claim_tick(11))
        self.assertEqual(self.store.last_claimed_tick(), 11)

    def test_claim_without_baseline_row(self) -> None:
        with self.Session.begin() as session:
            session.execute(StoreCounter.__table__.delete())
        self.assertTrue(self.store.try_claim_tick(3))
        self.assertFalse(self.store.try_claim_tick(3))


class CooldownTests(RecordStoreTestCase):
    def test_deadline_only_moves_forward(self) -> None:
        self.assertEqual(self.store.cooldown_until(), 0.0)
        self.assertEqual(self.store.extend_cooldown(100.5), 100.5)
        self.assertEqual(self.store.extend_cooldown(50.0), 100.5)
        self.assertEqual(self.store.cooldown_until(), 100.5)


class ResetTests(RecordStoreTestCase):
    def test_reset_clears_records_and_counters(self) -> None:
        self._commit(JACKPOT_GUESS, 1.0)
        for _ in range(4):
            self._commit(score=0.1)
        self.store.try_claim_tick(500)
        self.store.extend_cooldown(NOW + 30)

        removed = self.store.reset()

        self.assertEqual(removed, 5)
        self.assertEqual(self.store.count_by_type("toto"), 0)
        self.assertEqual(self.store.count_by_score(1.0), 0)
        self.assertEqual(self.store.count_by_score(0.1), 0)
        self.assertEqual(self.store.list_by_type("toto", 10), [])
        self.assertEqual(self.store.last_claimed_tick(), 0)
        self.assertEqual(self.store.cooldown_until(), 0.0)
        self.assertFalse(self.store.is_under_maintenance())
        with self.Session() as session:
            self.assertEqual(session.scalars(select(DrawRecord)).all(), [])

    def test_commit_after_reset_starts_from_baseline(self) -> None:
        self._commit()
        self._commit()
        self.store.reset()
        self.assertEqual(self._commit().id, 1)
        self.assertEqual(self.store.count_by_type("toto"), 1)

    def test_reset_on_empty_store(self) -> None:
        self.assertEqual(self.store.reset(), 0)


class MaintenanceTests(RecordStoreTestCase):
    def _interrupted_reset(self, clock) -> RecordStore:
        def interrupt(_seconds: float) -> None:
            raise RuntimeError("worker killed")

        store = RecordStore(
            self.Session,
            registry=DEFAULT_LOTTERY_REGISTRY,
            reset_grace_seconds=1.0,
            clock=clock,
            sleep=interrupt,
        )
        with self.assertRaises(RuntimeError):
            store.reset()
        return store

    def test_interrupted_reset_leaves_flag_and_blocks_commits(self) -> None:
        self._commit()
        self._interrupted_reset(lambda: NOW)
        self.assertTrue(self.store.is_under_maintenance())
        with self.assertRaises(StoreMaintenanceError):
            self._commit()
        self.assertEqual(self.store.count_by_type("toto"), 1)

    def test_recover_clears_only_stale_flags(self) -> None:
        self._interrupted_reset(lambda: NOW)
        self.assertFalse(self.store.recover_maintenance(max_age_seconds=60))
        self.assertTrue(self.store.is_under_maintenance())

        later = RecordStore(self.Session, clock=lambda: NOW + 120)
        self.assertTrue(later.recover_maintenance(max_age_seconds=60))
        self.assertFalse(self.store.is_under_maintenance())
        self.assertFalse(self.store.recover_maintenance())
        self.assertEqual(self._commit().id, 1)


class RetryBudgetTests(unittest.TestCase):
    def test_store_errors_surface_as_transient_after_retries(self) -> None:
        engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        # No tables: every statement fails with OperationalError.
        store = RecordStore(
            sessionmaker(bind=engine, future=True, expire_on_commit=False),
            max_retries=3,
            sleep=lambda _: None,
        )
        with self.assertRaises(TransientStoreError):
            store.try_claim_tick(1)
        engine.dispose()

    def test_invalid_arguments(self) -> None:
        with self.assertRaises(ValueError):
            RecordStore(sessionmaker(), max_retries=0)
        with self.assertRaises(ValueError):
            RecordStore(sessionmaker(), reset_batch_size=0)


if __name__ == "__main__":
    unittest.main()
