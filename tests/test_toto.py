from __future__ import annotations

import json
import unittest

from pydantic import ValidationError

from lotterysim.errors import RecordValidationError, UnknownLotteryType
from lotterysim.lottery import (
    DEFAULT_LOTTERY_REGISTRY,
    JACKPOT,
    LotteryRegistry,
    LotteryType,
    TOTO,
    TotoOutcome,
    draw_toto,
    quick_pick_toto,
    score_toto,
)
from lotterysim.lottery.toto import ADDITIONAL_FREQUENCY, MAIN_BALL_FREQUENCY

DRAW = TotoOutcome(numbers=[1, 2, 3, 4, 5, 6], additional=7)


def guess(numbers: list[int], additional: int = 49) -> TotoOutcome:
    return TotoOutcome(numbers=numbers, additional=additional)


class TotoDrawTests(unittest.TestCase):
    def assert_valid_outcome(self, outcome: TotoOutcome) -> None:
        self.assertEqual(len(outcome.numbers), 6)
        self.assertEqual(len(set(outcome.numbers)), 6)
        self.assertEqual(outcome.numbers, sorted(outcome.numbers))
        for n in outcome.numbers:
            self.assertTrue(1 <= n <= 49)
        self.assertTrue(1 <= outcome.additional <= 49)
        self.assertNotIn(outcome.additional, outcome.numbers)
        self.assertEqual(outcome.type, "toto")

    def test_draws_are_six_sorted_distinct_numbers_plus_additional(self) -> None:
        for _ in range(500):
            self.assert_valid_outcome(draw_toto())

    def test_quick_pick_has_the_same_shape(self) -> None:
        for _ in range(200):
            self.assert_valid_outcome(quick_pick_toto())

    def test_frequency_tables_cover_the_whole_pool(self) -> None:
        self.assertEqual(sorted(MAIN_BALL_FREQUENCY), list(range(1, 50)))
        self.assertEqual(sorted(ADDITIONAL_FREQUENCY), list(range(1, 50)))

    def test_play_scores_the_generated_guess(self) -> None:
        play = TOTO.play()
        self.assertEqual(play.score, score_toto(play.draw, play.guess))
        self.assertEqual(play.guesses, [play.guess])


class TotoScoreTests(unittest.TestCase):
    def test_prize_table(self) -> None:
        cases = [
            ([1, 2, 3, 4, 5, 6], 9, 1.0),
            ([1, 2, 3, 4, 5, 7], 10, 0.85),
            ([1, 2, 3, 4, 5, 8], 7, 0.7),
            ([1, 2, 3, 4, 7, 8], 10, 0.55),
            ([1, 2, 3, 4, 8, 9], 10, 0.4),
            ([1, 2, 3, 7, 8, 9], 10, 0.25),
            ([1, 2, 3, 8, 9, 10], 7, 0.1),
            ([1, 2, 7, 8, 9, 10], 11, 0.0),
            ([40, 41, 42, 43, 44, 45], 46, 0.0),
        ]
        for numbers, additional, expected in cases:
            with self.subTest(numbers=numbers):
                self.assertEqual(score_toto(DRAW, guess(numbers, additional)), expected)

    def test_guess_additional_value_never_upgrades_a_tier(self) -> None:
        # Three main matches and the same additional number is still group 7.
        self.assertEqual(score_toto(DRAW, guess([1, 2, 3, 20, 21, 22], 7)), 0.1)

    def test_jackpot_only_on_six_main_matches(self) -> None:
        fillers = [8, 9, 10, 11, 12, 13]
        for matches in range(7):
            for with_additional in (False, True):
                if matches == 6 and with_additional:
                    continue
                numbers = DRAW.numbers[:matches]
                extra = ([7] if with_additional else []) + fillers
                numbers = numbers + extra[: 6 - matches]
                score = score_toto(DRAW, guess(numbers, 40))
                with self.subTest(matches=matches, with_additional=with_additional):
                    self.assertEqual(score == JACKPOT, matches == 6)


class TotoSchemaTests(unittest.TestCase):
    def test_rejects_wrong_length(self) -> None:
        with self.assertRaises(ValidationError):
            TotoOutcome(numbers=[1, 2, 3], additional=7)

    def test_rejects_duplicates_and_out_of_range(self) -> None:
        with self.assertRaises(ValidationError):
            TotoOutcome(numbers=[1, 1, 2, 3, 4, 5], additional=7)
        with self.assertRaises(ValidationError):
            TotoOutcome(numbers=[0, 1, 2, 3, 4, 5], additional=7)
        with self.assertRaises(ValidationError):
            TotoOutcome(numbers=[1, 2, 3, 4, 5, 6], additional=50)

    def test_rejects_additional_repeating_a_main_number(self) -> None:
        with self.assertRaises(ValidationError):
            TotoOutcome(numbers=[1, 2, 3, 4, 5, 6], additional=6)

    def test_validate_outcome_accepts_mapping_and_json(self) -> None:
        payload = {"type": "toto", "numbers": [1, 2, 3, 4, 5, 6], "additional": 7}
        self.assertEqual(TOTO.validate_outcome(payload), DRAW)
        self.assertEqual(TOTO.validate_outcome(json.dumps(payload)), DRAW)
        self.assertIs(TOTO.validate_outcome(DRAW), DRAW)

    def test_validate_outcome_raises_typed_error(self) -> None:
        with self.assertRaises(RecordValidationError) as ctx:
            TOTO.validate_outcome({"type": "toto", "numbers": [1], "additional": 7}, record_id=12)
        self.assertEqual(ctx.exception.lottery_type, "toto")
        self.assertEqual(ctx.exception.record_id, 12)
        self.assertTrue(ctx.exception.details)

    def test_validate_guesses_requires_a_list(self) -> None:
        with self.assertRaises(RecordValidationError):
            TOTO.validate_guesses(DRAW.model_dump())  # type: ignore[arg-type]
        self.assertEqual(TOTO.validate_guesses([DRAW.model_dump()]), [DRAW])


class LotteryRegistryTests(unittest.TestCase):
    def test_default_registry_contains_toto(self) -> None:
        self.assertIn("toto", DEFAULT_LOTTERY_REGISTRY)
        self.assertIs(DEFAULT_LOTTERY_REGISTRY.get("toto"), TOTO)

    def test_custom_registry_registration(self) -> None:
        registry = LotteryRegistry()
        with self.assertRaises(UnknownLotteryType):
            registry.get("toto")
        registry.register(TOTO)
        with self.assertRaises(ValueError):
            registry.register(TOTO)

        quick = LotteryType(
            key="toto",
            schema=TotoOutcome,
            generator=draw_toto,
            scorer=score_toto,
            guesser=quick_pick_toto,
        )
        registry.register(quick, replace=True)
        self.assertIs(registry.get("toto"), quick)
        self.assertEqual([lottery.key for lottery in registry], ["toto"])
        self.assertEqual(len(registry), 1)
        self.assertEqual(list(registry.available_lotteries()), ["toto"])


if __name__ == "__main__":
    unittest.main()
