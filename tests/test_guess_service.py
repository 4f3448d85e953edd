from __future__ import annotations

import math
import unittest

from pwguess.core import estimate_guesses as package_estimate_guesses
from pwguess.core.error_dialect import (
    PwGuessError,
    error_payload_from_exception,
    format_error_text,
)
from pwguess.core.guess_service import build_reference_data, estimate_guesses, score_password
from pwguess.core.models import BruteforceMatch, ReferenceData, ScoringConfig

CONFIG = ScoringConfig(reference_year=2025)


class GuessServiceTests(unittest.TestCase):
    def test_common_password_is_cheap(self) -> None:
        result = estimate_guesses("password", config=CONFIG)
        self.assertEqual(result.guesses, 3.0)
        self.assertEqual([m.pattern for m in result.sequence], ["dictionary"])
        self.assertEqual(result.sequence[0].rank, 2)

    def test_results_are_deterministic(self) -> None:
        first = estimate_guesses("Tr0ub4dour&3", config=CONFIG)
        second = estimate_guesses("Tr0ub4dour&3", config=CONFIG)
        self.assertEqual(first, second)

    def test_package_level_entry_point(self) -> None:
        self.assertEqual(package_estimate_guesses("password", config=CONFIG).guesses, 3.0)

    def test_user_inputs_lower_the_estimate(self) -> None:
        plain = estimate_guesses("alice1984", config=CONFIG)
        personal = estimate_guesses("alice1984", user_inputs=["Alice"], config=CONFIG)
        self.assertLess(personal.guesses, plain.guesses)
        self.assertIn("user_inputs", [getattr(m, "dictionary_name", None) for m in personal.sequence])

    def test_extending_random_text_never_lowers_guesses(self) -> None:
        reference = ReferenceData(ranked_dictionaries={}, graphs={})
        value = "kX9#vQ2!mW"
        previous = 0.0
        for size in range(1, len(value) + 1):
            guesses = score_password(value[:size], reference, CONFIG).guesses
            self.assertGreaterEqual(guesses, previous)
            previous = guesses

    def test_empty_password(self) -> None:
        result = estimate_guesses("", config=CONFIG)
        self.assertEqual(result.guesses, 1.0)
        self.assertEqual(result.guesses_log10, 0.0)
        self.assertEqual(result.sequence, ())

    def test_long_input_tail_is_bruteforced(self) -> None:
        config = ScoringConfig(reference_year=2025, max_analysis_length=32)
        value = "a1b2" * 20
        result = estimate_guesses(value, config=config)
        tail = result.sequence[-1]
        self.assertIsInstance(tail, BruteforceMatch)
        self.assertEqual(tail.end, 79)
        self.assertGreaterEqual(32, tail.start)
        self.assertTrue(all(m.end < tail.start for m in result.sequence[:-1]))
        self.assertLessEqual(result.guesses, config.max_guesses)

    def test_long_input_tail_pays_the_sequence_penalty(self) -> None:
        config = ScoringConfig(reference_year=2025, max_analysis_length=32)
        result = estimate_guesses("a1b2" * 20, config=config)
        count = len(result.sequence)
        self.assertEqual(count, len(result.sequence_guesses))
        expected = math.factorial(count) * math.prod(result.sequence_guesses) + 10000 ** (count - 1)
        self.assertTrue(math.isclose(result.guesses, expected, rel_tol=1e-9))
        self.assertGreater(result.guesses, math.prod(result.sequence_guesses))

    def test_long_input_never_chains_bruteforce(self) -> None:
        reference = ReferenceData(ranked_dictionaries={}, graphs={})
        config = ScoringConfig(reference_year=2025, max_analysis_length=8)
        result = score_password("kX9#vQ2!mWz&", reference, config)
        self.assertEqual([(m.pattern, m.start, m.end) for m in result.sequence], [("bruteforce", 0, 11)])
        self.assertEqual(result.guesses, 95.0**12 + 1)

    def test_match_guesses_ignore_the_configured_cap(self) -> None:
        reference = ReferenceData(ranked_dictionaries={}, graphs={})
        result = score_password("kX9#vQ2!mW", reference, ScoringConfig(reference_year=2025, max_guesses=1e6))
        self.assertEqual(result.sequence_guesses, (1e6,))
        self.assertEqual(result.guesses, 1e6)
        self.assertEqual(result.sequence[0].guesses, 95.0**10)

    def test_entropy_bits_follow_guesses(self) -> None:
        result = estimate_guesses("password", config=CONFIG)
        self.assertTrue(math.isclose(result.entropy_bits, math.log2(3.0)))

    def test_meta_lines(self) -> None:
        lines = estimate_guesses("password", config=CONFIG).as_lines(show_meta=True)
        self.assertEqual(lines[0], "guesses=3\tlog10=0.477")
        self.assertEqual(lines[1], "[0,7]\tdictionary\t'password'\tguesses=2 word=password rank=2 dict=passwords")


class ContractTests(unittest.TestCase):
    def test_user_inputs_must_not_be_a_string(self) -> None:
        with self.assertRaises(PwGuessError) as ctx:
            estimate_guesses("x", user_inputs="alice")
        self.assertEqual(ctx.exception.code, "invalid_user_inputs")

    def test_password_must_be_text(self) -> None:
        with self.assertRaises(PwGuessError) as ctx:
            score_password(b"password", build_reference_data())
        self.assertEqual(ctx.exception.code, "invalid_password")

    def test_bad_graph_is_rejected(self) -> None:
        with self.assertRaises(PwGuessError) as ctx:
            build_reference_data(graphs={"broken": {}})
        self.assertEqual(ctx.exception.code, "invalid_graph")

    def test_contract_errors_are_value_errors(self) -> None:
        with self.assertRaises(ValueError):
            build_reference_data(dictionaries={"d": {"word": -1}})

    def test_error_formatting(self) -> None:
        err = PwGuessError("Invalid Rank", "rank must be >= 1")
        self.assertEqual(err.code, "invalid_rank")
        self.assertEqual(format_error_text(err), "invalid_rank: rank must be >= 1")
        self.assertEqual(format_error_text(ValueError("boom")), "invalid_input: boom")
        self.assertEqual(
            error_payload_from_exception(ValueError("")),
            {"error": {"code": "invalid_input", "message": "invalid input"}},
        )


class ScoringConfigTests(unittest.TestCase):
    def test_from_env_reads_overrides(self) -> None:
        config = ScoringConfig.from_env(
            {"PWGUESS_REFERENCE_YEAR": " 2000 ", "PWGUESS_MAX_L33T_SUBS": "8", "PWGUESS_MAX_ANALYSIS_LENGTH": "64"}
        )
        self.assertEqual(config.reference_year, 2000)
        self.assertEqual(config.max_l33t_substitutions, 8)
        self.assertEqual(config.max_analysis_length, 64)

    def test_from_env_defaults(self) -> None:
        self.assertEqual(ScoringConfig.from_env({}), ScoringConfig())

    def test_from_env_rejects_bad_values(self) -> None:
        with self.assertRaisesRegex(ValueError, "PWGUESS_REFERENCE_YEAR must be an integer"):
            ScoringConfig.from_env({"PWGUESS_REFERENCE_YEAR": "soon"})
        with self.assertRaisesRegex(ValueError, "max_l33t_substitutions must be > 0"):
            ScoringConfig.from_env({"PWGUESS_MAX_L33T_SUBS": "0"})

    def test_max_guesses_must_be_finite(self) -> None:
        with self.assertRaises(ValueError):
            ScoringConfig(max_guesses=math.inf)


if __name__ == "__main__":
    unittest.main()
