from __future__ import annotations

import math
import unittest

from pwguess.core.error_dialect import PwGuessError
from pwguess.core.keyboards import default_graphs, graph_stats
from pwguess.core.models import (
    BruteforceMatch,
    DictionaryMatch,
    Match,
    ScoringConfig,
    SequenceMatch,
    SpatialMatch,
)
from pwguess.core.scoring import (
    bruteforce_guesses,
    estimate_match_guesses,
    most_guessable_match_sequence,
    sequence_guesses,
    spatial_guesses,
)

PASSWORD = "0123456789"


def _word(start: int, end: int, rank: int) -> DictionaryMatch:
    token = PASSWORD[start : end + 1]
    return DictionaryMatch(token=token, start=start, end=end, matched_word=token, rank=rank, dictionary_name="d")


def _seq(token: str, ascending: bool = True) -> SequenceMatch:
    return SequenceMatch(
        token=token, start=0, end=len(token) - 1, sequence_name="x", sequence_space=26, ascending=ascending
    )


class EstimatorTests(unittest.TestCase):
    def test_sequence_guesses(self) -> None:
        self.assertEqual(sequence_guesses(_seq("ab")), 8)
        self.assertEqual(sequence_guesses(_seq("rst")), 78)
        self.assertEqual(sequence_guesses(_seq("cba", ascending=False)), 156)
        self.assertEqual(sequence_guesses(_seq("987", ascending=False)), 24)
        self.assertEqual(sequence_guesses(_seq("456")), 30)

    def test_spatial_guesses(self) -> None:
        starting, degree = graph_stats(default_graphs()["qwerty"])
        plain = SpatialMatch(
            token="zxcvbn",
            start=0,
            end=5,
            graph="qwerty",
            turns=1,
            shifted_count=0,
            starting_positions=starting,
            average_degree=degree,
        )
        self.assertTrue(math.isclose(spatial_guesses(plain), 5 * starting * degree))
        shifted = SpatialMatch(
            token="zxCvbN",
            start=0,
            end=5,
            graph="qwerty",
            turns=1,
            shifted_count=2,
            starting_positions=starting,
            average_degree=degree,
        )
        self.assertTrue(math.isclose(spatial_guesses(shifted), 5 * starting * degree * 21))
        all_shifted = SpatialMatch(
            token="ZXCVBN",
            start=0,
            end=5,
            graph="qwerty",
            turns=1,
            shifted_count=6,
            starting_positions=starting,
            average_degree=degree,
        )
        self.assertTrue(math.isclose(spatial_guesses(all_shifted), 5 * starting * degree * 2))

    def test_bruteforce_uses_character_space(self) -> None:
        self.assertEqual(bruteforce_guesses(BruteforceMatch(token="kX9#", start=0, end=3)), 95.0**4)
        self.assertEqual(bruteforce_guesses(BruteforceMatch(token="zz", start=0, end=1)), 676.0)
        self.assertEqual(bruteforce_guesses(BruteforceMatch(token=" ", start=0, end=0)), 100.0)

    def test_guesses_are_clamped(self) -> None:
        huge = BruteforceMatch(token="a" * 300, start=0, end=299)
        self.assertEqual(estimate_match_guesses(huge), 1e300)
        self.assertEqual(estimate_match_guesses(huge, max_guesses=1e20), 1e20)
        self.assertEqual(huge.guesses, 1e300)

    def test_unknown_pattern_is_rejected(self) -> None:
        with self.assertRaises(PwGuessError) as ctx:
            estimate_match_guesses(Match(token="a", start=0, end=0))
        self.assertEqual(ctx.exception.code, "unknown_pattern")

    def test_bad_spans_are_rejected(self) -> None:
        with self.assertRaises(PwGuessError) as ctx:
            BruteforceMatch(token="abc", start=0, end=1)
        self.assertEqual(ctx.exception.code, "invalid_span")
        with self.assertRaises(PwGuessError) as ctx:
            _word(0, 3, 0)
        self.assertEqual(ctx.exception.code, "invalid_rank")


class MostGuessableSequenceTests(unittest.TestCase):
    def test_empty_password(self) -> None:
        result = most_guessable_match_sequence("", [])
        self.assertEqual(result.guesses, 1.0)
        self.assertEqual(result.sequence, ())

    def test_no_matches_is_one_bruteforce(self) -> None:
        result = most_guessable_match_sequence(PASSWORD, [])
        self.assertEqual(len(result.sequence), 1)
        self.assertEqual(result.sequence[0].pattern, "bruteforce")
        self.assertEqual((result.sequence[0].start, result.sequence[0].end), (0, 9))
        self.assertEqual(result.guesses, 1e10 + 1)

    def test_infix_match_is_padded_with_bruteforce(self) -> None:
        result = most_guessable_match_sequence(PASSWORD, [_word(1, 4, 1)])
        self.assertEqual([m.pattern for m in result.sequence], ["bruteforce", "dictionary", "bruteforce"])
        self.assertEqual([(m.start, m.end) for m in result.sequence], [(0, 0), (1, 4), (5, 9)])
        self.assertEqual(result.sequence_guesses, (11.0, 50.0, 100000.0))
        self.assertEqual(result.guesses, 6 * 11 * 50 * 100000 + 10000**2)

    def test_cheaper_of_two_same_span_matches(self) -> None:
        result = most_guessable_match_sequence(PASSWORD, [_word(0, 9, 2), _word(0, 9, 1)])
        self.assertEqual(len(result.sequence), 1)
        self.assertEqual(result.sequence[0].rank, 1)
        self.assertEqual(result.guesses, 2.0)

    def test_covering_match_against_split(self) -> None:
        halves = [_word(0, 3, 2), _word(4, 9, 1)]
        cheap_cover = most_guessable_match_sequence(PASSWORD, [_word(0, 9, 3)] + halves)
        self.assertEqual([(m.start, m.end) for m in cheap_cover.sequence], [(0, 9)])
        costly_cover = most_guessable_match_sequence(PASSWORD, [_word(0, 9, 100000)] + halves)
        self.assertEqual([(m.start, m.end) for m in costly_cover.sequence], [(0, 3), (4, 9)])
        self.assertEqual(costly_cover.guesses, 2 * 50 * 50 + 10000)

    def test_additive_penalty_can_be_excluded(self) -> None:
        result = most_guessable_match_sequence(PASSWORD, [_word(0, 9, 5)], exclude_additive=True)
        self.assertEqual(result.guesses, 5.0)

    def test_sequence_covers_password_without_overlap(self) -> None:
        matches = [_word(0, 2, 7), _word(2, 5, 3), _word(6, 8, 9)]
        result = most_guessable_match_sequence(PASSWORD, matches)
        self.assertEqual(result.sequence[0].start, 0)
        self.assertEqual(result.sequence[-1].end, len(PASSWORD) - 1)
        for left, right in zip(result.sequence, result.sequence[1:]):
            self.assertEqual(left.end + 1, right.start)
            self.assertFalse(left.pattern == right.pattern == "bruteforce")

    def test_match_outside_password_is_rejected(self) -> None:
        with self.assertRaises(PwGuessError):
            most_guessable_match_sequence("0123", [_word(2, 6, 1)])

    def test_result_is_capped(self) -> None:
        config = ScoringConfig(max_guesses=1e6)
        result = most_guessable_match_sequence(PASSWORD, [], config)
        self.assertEqual(result.guesses, 1e6)


if __name__ == "__main__":
    unittest.main()
