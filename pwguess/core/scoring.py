from __future__ import annotations

import logging
import math
import re
import string
from typing import Callable, Dict, List, Optional, Sequence

from pwguess.core.error_dialect import PwGuessError, require
from pwguess.core.models import (
    DEFAULT_MAX_GUESSES,
    BruteforceMatch,
    DateMatch,
    DictionaryMatch,
    GuessEstimate,
    Match,
    RegexMatch,
    RepeatMatch,
    ScoringConfig,
    SequenceMatch,
    SpatialMatch,
)

_LOGGER = logging.getLogger(__name__)

MIN_GUESSES_BEFORE_GROWING_SEQUENCE = 10000
MIN_SUBMATCH_GUESSES_SINGLE_CHAR = 10
MIN_SUBMATCH_GUESSES_MULTI_CHAR = 50
MIN_YEAR_SPACE = 20
DAYS_PER_YEAR = 365
DATE_SEPARATOR_FACTOR = 4
OBVIOUS_SEQUENCE_STARTS = "aAzZ019"

_START_UPPER = re.compile(r"^[A-Z][^A-Z]+$")
_END_UPPER = re.compile(r"^[^A-Z]+[A-Z]$")
_ALL_UPPER = re.compile(r"^[^a-z]+$")
_ALL_LOWER = re.compile(r"^[^A-Z]+$")


def _clamp(value: float, ceiling: float) -> float:
    # ints may be far beyond float range; compare before converting
    if value >= ceiling:
        return ceiling
    return max(1.0, float(value))


def _binomial_variations(a: int, b: int) -> int:
    """Ways to place the rarer of two character kinds: sum of C(a + b, i) for i in 1..min(a, b)."""
    return sum(math.comb(a + b, i) for i in range(1, min(a, b) + 1))


def uppercase_variations(token: str) -> int:
    if _ALL_LOWER.match(token) or token.lower() == token:
        return 1
    # first letter, last letter or everything uppercased are the common capitalizations
    for regex in (_START_UPPER, _END_UPPER, _ALL_UPPER):
        if regex.match(token):
            return 2
    upper = sum(1 for ch in token if ch.isupper())
    lower = sum(1 for ch in token if ch.islower())
    return min(_binomial_variations(upper, lower), 2 ** (upper + lower))


def l33t_variations(match: DictionaryMatch) -> int:
    if not match.l33t_substitutions:
        return 1
    variations = 1
    lowered = match.token.lower()
    for subbed, unsubbed in match.l33t_substitutions:
        subbed_count = lowered.count(subbed)
        unsubbed_count = lowered.count(unsubbed)
        if subbed_count == 0 or unsubbed_count == 0:
            # fully substituted or fully plain: attacker tries it both ways
            variations *= 2
        else:
            variations *= _binomial_variations(unsubbed_count, subbed_count)
    return variations


def dictionary_guesses(match: DictionaryMatch) -> float:
    guesses = match.rank * uppercase_variations(match.token) * l33t_variations(match)
    if match.reversed:
        guesses *= 2
    return guesses


def spatial_guesses(match: SpatialMatch) -> float:
    length = len(match.token)
    turns = match.turns
    guesses = 0.0
    for i in range(2, length + 1):
        possible_turns = min(turns, i - 1)
        for j in range(1, possible_turns + 1):
            guesses += math.comb(i - 1, j - 1) * match.starting_positions * match.average_degree ** j
    if match.shifted_count:
        shifted = match.shifted_count
        unshifted = length - shifted
        if unshifted <= 0:
            guesses *= 2
        else:
            guesses *= _binomial_variations(shifted, unshifted)
    return guesses


def repeat_guesses(match: RepeatMatch) -> float:
    return match.base_guesses * match.repeat_count


def sequence_guesses(match: SequenceMatch) -> float:
    first = match.token[0]
    if first in OBVIOUS_SEQUENCE_STARTS:
        base = 4
    elif first.isdigit():
        base = 10
    else:
        base = 26
    if not match.ascending:
        base *= 2
    return base * len(match.token)


def regex_guesses(match: RegexMatch) -> float:
    if match.regex_name == "recent_year":
        return max(abs(int(match.token) - match.reference_year), MIN_YEAR_SPACE)
    raise PwGuessError("unknown_pattern", f"no guess estimate for regex {match.regex_name!r}")


def date_guesses(match: DateMatch) -> float:
    year_space = max(abs(match.year - match.reference_year), MIN_YEAR_SPACE)
    guesses = year_space * DAYS_PER_YEAR
    if match.separator:
        guesses *= DATE_SEPARATOR_FACTOR
    return guesses


def char_space(token: str) -> int:
    if not token:
        return 1
    has_lower = any(ch in string.ascii_lowercase for ch in token)
    has_upper = any(ch in string.ascii_uppercase for ch in token)
    has_digit = any(ch in string.digits for ch in token)
    has_symbol = any(ch in string.punctuation for ch in token)
    has_other = any(
        ch not in string.ascii_lowercase
        and ch not in string.ascii_uppercase
        and ch not in string.digits
        and ch not in string.punctuation
        for ch in token
    )

    space = 0
    if has_lower:
        space += 26
    if has_upper:
        space += 26
    if has_digit:
        space += 10
    if has_symbol:
        space += 33
    if has_other:
        # spaces and non-ASCII code points
        space += 100
    return max(space, 1)


def bruteforce_guesses(match: BruteforceMatch, max_guesses: float = DEFAULT_MAX_GUESSES) -> float:
    space = char_space(match.token)
    if space == 1:
        return 1.0
    if len(match.token) * math.log10(space) >= math.log10(max_guesses):
        return max_guesses
    return float(space) ** len(match.token)


_ESTIMATORS: Dict[str, Callable[..., float]] = {
    DictionaryMatch.pattern: dictionary_guesses,
    SpatialMatch.pattern: spatial_guesses,
    RepeatMatch.pattern: repeat_guesses,
    SequenceMatch.pattern: sequence_guesses,
    RegexMatch.pattern: regex_guesses,
    DateMatch.pattern: date_guesses,
}


def estimate_match_guesses(match: Match, max_guesses: float = DEFAULT_MAX_GUESSES) -> float:
    """Raw guesses for one match, clamped into [1, max_guesses]."""
    if isinstance(match, BruteforceMatch):
        return _clamp(bruteforce_guesses(match, max_guesses), max_guesses)
    estimator = _ESTIMATORS.get(match.pattern)
    if estimator is None:
        raise PwGuessError("unknown_pattern", f"no guess estimate for pattern {match.pattern!r}")
    return _clamp(estimator(match), max_guesses)


def _submatch_guesses(match: Match, password_length: int, max_guesses: float) -> float:
    guesses = estimate_match_guesses(match, max_guesses)
    if len(match.token) >= password_length:
        return guesses
    if len(match.token) == 1:
        floor = MIN_SUBMATCH_GUESSES_SINGLE_CHAR
    else:
        floor = MIN_SUBMATCH_GUESSES_MULTI_CHAR
    if isinstance(match, BruteforceMatch):
        # strictly above the floor so a real pattern of equal cost wins
        floor += 1
    return max(guesses, float(floor))


def _factorial(count: int, ceiling: float) -> float:
    if count > 170:
        return ceiling
    return _clamp(math.factorial(count), ceiling)


def _additive_penalty(count: int, ceiling: float) -> float:
    exponent = count - 1
    if exponent * math.log10(MIN_GUESSES_BEFORE_GROWING_SEQUENCE) >= math.log10(ceiling):
        return ceiling
    return float(MIN_GUESSES_BEFORE_GROWING_SEQUENCE) ** exponent


def combined_guesses(match_guesses: Sequence[float], max_guesses: float = DEFAULT_MAX_GUESSES) -> float:
    """Cost of a finished sequence: ``l! * product(guesses) + 10000 ** (l - 1)``, clamped."""
    count = len(match_guesses)
    if count == 0:
        return 1.0
    product = 1.0
    for guesses in match_guesses:
        product = min(product * guesses, max_guesses)
    total = min(_factorial(count, max_guesses) * product, max_guesses)
    return min(total + _additive_penalty(count, max_guesses), max_guesses)


def most_guessable_match_sequence(
    password: str,
    matches: Sequence[Match],
    config: Optional[ScoringConfig] = None,
    exclude_additive: bool = False,
) -> GuessEstimate:
    """Pick the non-overlapping, gap-free match sequence with the fewest total guesses.

    ``best[k][l]`` holds the cheapest explanation of ``password[:k + 1]`` that uses exactly ``l``
    matches. Its cost is ``l! * product(match guesses)``: the attacker does not know the order of
    the pieces. Unless ``exclude_additive`` is set, ``10000 ** (l - 1)`` is added so that growing
    the sequence always costs something, even when the extra pieces are trivially guessable.
    Gaps are filled with bruteforce matches, which never sit next to each other.
    """
    cfg = config or ScoringConfig()
    cap = cfg.max_guesses
    n = len(password)
    if n == 0:
        return GuessEstimate(password=password, guesses=1.0, sequence=(), sequence_guesses=())

    by_end: List[List[Match]] = [[] for _ in range(n)]
    for match in matches:
        require(match.end < n, "invalid_span", f"match span [{match.start}, {match.end}] exceeds password length {n}")
        by_end[match.end].append(match)
    for bucket in by_end:
        bucket.sort(key=lambda m: m.start)

    best_m: List[Dict[int, Match]] = [{} for _ in range(n)]
    best_pi: List[Dict[int, float]] = [{} for _ in range(n)]
    best_g: List[Dict[int, float]] = [{} for _ in range(n)]
    best_own: List[Dict[int, float]] = [{} for _ in range(n)]

    def update(match: Match, count: int, guesses: float) -> None:
        k = match.end
        pi = guesses
        if count > 1:
            pi = min(pi * best_pi[match.start - 1][count - 1], cap)
        g = min(_factorial(count, cap) * pi, cap)
        if not exclude_additive:
            g = min(g + _additive_penalty(count, cap), cap)
        for competing_count, competing_g in best_g[k].items():
            if competing_count > count:
                continue
            if competing_g <= g:
                return
        best_g[k][count] = g
        best_m[k][count] = match
        best_pi[k][count] = pi
        best_own[k][count] = guesses

    def bruteforce_update(k: int) -> None:
        head = BruteforceMatch(token=password[: k + 1], start=0, end=k)
        update(head, 1, _submatch_guesses(head, n, cap))
        for i in range(1, k + 1):
            previous = best_m[i - 1]
            if not previous:
                continue
            filler = BruteforceMatch(token=password[i : k + 1], start=i, end=k)
            filler_guesses = _submatch_guesses(filler, n, cap)
            for count, last in list(previous.items()):
                if isinstance(last, BruteforceMatch):
                    continue
                update(filler, count + 1, filler_guesses)

    for k in range(n):
        for match in by_end[k]:
            guesses = _submatch_guesses(match, n, cap)
            if match.start > 0:
                for count in list(best_m[match.start - 1].keys()):
                    update(match, count + 1, guesses)
            else:
                update(match, 1, guesses)
        bruteforce_update(k)

    final = best_g[n - 1]
    optimal_count = min(sorted(final), key=lambda count: final[count])

    sequence: List[Match] = []
    own_guesses: List[float] = []
    k = n - 1
    count = optimal_count
    while k >= 0:
        match = best_m[k][count]
        sequence.append(match)
        own_guesses.append(best_own[k][count])
        k = match.start - 1
        count -= 1
    sequence.reverse()
    own_guesses.reverse()

    _LOGGER.debug(
        "decomposed %d chars from %d candidates into %d matches",
        n,
        len(matches),
        len(sequence),
    )
    return GuessEstimate(
        password=password,
        guesses=final[optimal_count],
        sequence=tuple(sequence),
        sequence_guesses=tuple(own_guesses),
    )
