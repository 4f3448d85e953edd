from __future__ import annotations

import itertools
import logging
import re
import string
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from pwguess.core.keyboards import graph_stats, shifted_characters
from pwguess.core.models import (
    AdjacencyGraph,
    DateMatch,
    DictionaryMatch,
    Match,
    RankedDictionary,
    ReferenceData,
    RegexMatch,
    RepeatMatch,
    ScoringConfig,
    SequenceMatch,
    SpatialMatch,
)
from pwguess.core.scoring import most_guessable_match_sequence

_LOGGER = logging.getLogger(__name__)

L33T_TABLE: Dict[str, Tuple[str, ...]] = {
    "a": ("4", "@"),
    "b": ("8",),
    "c": ("(", "{", "[", "<"),
    "e": ("3",),
    "g": ("6", "9"),
    "i": ("1", "!", "|"),
    "l": ("1", "|", "7"),
    "o": ("0",),
    "s": ("$", "5"),
    "t": ("+", "7"),
    "x": ("%",),
    "z": ("2",),
}

REGEXEN: Dict[str, re.Pattern] = {
    "recent_year": re.compile(r"19[0-9]{2}|20[0-2][0-9]"),
}

SEQUENCES: Dict[str, str] = {
    "lower": string.ascii_lowercase,
    "upper": string.ascii_uppercase,
    "digits": string.digits,
}

DATE_MIN_YEAR = 1000
DATE_MAX_YEAR = 2050
# digit-window length -> (k, l) cut points giving token[:k], token[k:l], token[l:]
DATE_SPLITS: Dict[int, Tuple[Tuple[int, int], ...]] = {
    4: ((1, 2), (2, 3)),  # 1 1 91, 91 1 1
    5: ((1, 3), (2, 3)),  # 1 11 91, 11 1 91
    6: ((1, 2), (2, 4), (4, 5)),  # 1 1 1991, 11 11 91, 1991 1 1
    7: ((1, 3), (2, 3), (4, 5), (4, 6)),  # 1 11 1991, 11 1 1991, 1991 1 11, 1991 11 1
    8: ((2, 4), (4, 6)),  # 11 11 1991, 1991 11 11
}

_MAYBE_DATE_NO_SEPARATOR = re.compile(r"^[0-9]{4,8}$")
_MAYBE_DATE_WITH_SEPARATOR = re.compile(r"^([0-9]{1,4})([ /\\_.-])([0-9]{1,2})\2([0-9]{1,4})$")

_GREEDY_REPEAT = re.compile(r"(.+)\1+", re.DOTALL)
_LAZY_REPEAT = re.compile(r"(.+?)\1+", re.DOTALL)
_LAZY_ANCHORED_REPEAT = re.compile(r"^(.+?)\1+$", re.DOTALL)


def _sorted(matches: List[Match]) -> List[Match]:
    return sorted(matches, key=lambda m: (m.start, m.end))


# ---------------------------------------------------------------------------
# dictionary
# ---------------------------------------------------------------------------


def dictionary_match(password: str, ranked_dictionaries: Mapping[str, RankedDictionary]) -> List[Match]:
    n = len(password)
    out: List[Match] = []
    for name, ranked in ranked_dictionaries.items():
        if not ranked:
            continue
        longest = max(len(word) for word in ranked)
        for i in range(n):
            for j in range(i, min(n, i + longest)):
                token = password[i : j + 1]
                word = token.lower()
                rank = ranked.get(word)
                if rank is None:
                    continue
                out.append(
                    DictionaryMatch(
                        token=token,
                        start=i,
                        end=j,
                        matched_word=word,
                        rank=rank,
                        dictionary_name=name,
                    )
                )
    return _sorted(out)


def reverse_dictionary_match(password: str, ranked_dictionaries: Mapping[str, RankedDictionary]) -> List[Match]:
    n = len(password)
    out: List[Match] = []
    for match in dictionary_match(password[::-1], ranked_dictionaries):
        assert isinstance(match, DictionaryMatch)
        out.append(
            DictionaryMatch(
                token=match.token[::-1],
                start=n - 1 - match.end,
                end=n - 1 - match.start,
                matched_word=match.matched_word,
                rank=match.rank,
                dictionary_name=match.dictionary_name,
                reversed=True,
            )
        )
    return _sorted(out)


def relevant_l33t_subtable(password: str, table: Mapping[str, Sequence[str]] = L33T_TABLE) -> Dict[str, List[str]]:
    """Letters a l33t character present in ``password`` may stand for, keyed by that character."""
    present = set(password)
    out: Dict[str, List[str]] = {}
    for letter, subs in table.items():
        for sub in subs:
            if sub in present:
                out.setdefault(sub, []).append(letter)
    return out


def enumerate_l33t_subs(subtable: Mapping[str, Sequence[str]], limit: int) -> Iterator[Dict[str, str]]:
    """Every assignment of one letter per l33t character, at most ``limit`` of them."""
    chars = sorted(subtable)
    if not chars:
        return iter(())
    combos = itertools.product(*(subtable[ch] for ch in chars))
    return (dict(zip(chars, combo)) for combo in itertools.islice(combos, limit))


def l33t_match(
    password: str,
    ranked_dictionaries: Mapping[str, RankedDictionary],
    config: ScoringConfig,
) -> List[Match]:
    out: List[Match] = []
    seen = set()
    subtable = relevant_l33t_subtable(password)
    for sub in enumerate_l33t_subs(subtable, config.max_l33t_substitutions):
        subbed = "".join(sub.get(ch, ch) for ch in password)
        for match in dictionary_match(subbed, ranked_dictionaries):
            assert isinstance(match, DictionaryMatch)
            token = password[match.start : match.end + 1]
            if len(token) <= 1 or token.lower() == match.matched_word:
                continue
            match_sub = {k: v for k, v in sub.items() if k in token}
            key = (match.start, match.end, match.dictionary_name, match.matched_word, tuple(sorted(match_sub.items())))
            if key in seen:
                continue
            seen.add(key)
            out.append(
                DictionaryMatch(
                    token=token,
                    start=match.start,
                    end=match.end,
                    matched_word=match.matched_word,
                    rank=match.rank,
                    dictionary_name=match.dictionary_name,
                    l33t_substitutions=match_sub,
                )
            )
    return _sorted(out)


# ---------------------------------------------------------------------------
# spatial
# ---------------------------------------------------------------------------


def spatial_match(password: str, graphs: Mapping[str, AdjacencyGraph]) -> List[Match]:
    out: List[Match] = []
    for name, graph in graphs.items():
        out.extend(_spatial_match_helper(password, graph, name))
    return _sorted(out)


def _spatial_match_helper(password: str, graph: AdjacencyGraph, graph_name: str) -> List[Match]:
    n = len(password)
    starting_positions, average_degree = graph_stats(graph)
    shifted = shifted_characters(graph)
    out: List[Match] = []
    i = 0
    while i < n - 1:
        j = i + 1
        last_direction: Optional[int] = None
        turns = 0
        shifted_count = 1 if password[i] in shifted else 0
        while True:
            found = False
            if j < n:
                cur_char = password[j]
                for direction, adj in enumerate(graph.get(password[j - 1]) or ()):
                    if adj and cur_char in adj:
                        found = True
                        if adj.index(cur_char) == 1:
                            shifted_count += 1
                        # the first step counts as a turn too
                        if last_direction != direction:
                            turns += 1
                            last_direction = direction
                        break
            if found:
                j += 1
                continue
            if j - i > 2:
                out.append(
                    SpatialMatch(
                        token=password[i:j],
                        start=i,
                        end=j - 1,
                        graph=graph_name,
                        turns=turns,
                        shifted_count=shifted_count,
                        starting_positions=starting_positions,
                        average_degree=average_degree,
                    )
                )
            i = j
            break
    return out


# ---------------------------------------------------------------------------
# repeats and sequences
# ---------------------------------------------------------------------------


def repeat_match(password: str, reference: ReferenceData, config: ScoringConfig) -> List[Match]:
    out: List[Match] = []
    last_index = 0
    while last_index < len(password):
        greedy = _GREEDY_REPEAT.search(password, last_index)
        if greedy is None:
            break
        lazy = _LAZY_REPEAT.search(password, last_index)
        assert lazy is not None
        if len(greedy.group(0)) > len(lazy.group(0)):
            # greedy "aabaab" beats lazy "aa"; its base is the shortest unit tiling it ("aab")
            found = greedy
            anchored = _LAZY_ANCHORED_REPEAT.match(found.group(0))
            assert anchored is not None
            base_token = anchored.group(1)
        else:
            found = lazy
            base_token = found.group(1)
        token = found.group(0)
        start, end = found.start(), found.end() - 1
        base_analysis = most_guessable_match_sequence(base_token, omnimatch(base_token, reference, config), config)
        out.append(
            RepeatMatch(
                token=token,
                start=start,
                end=end,
                base_token=base_token,
                repeat_count=len(token) // len(base_token),
                base_guesses=base_analysis.guesses,
                base_matches=base_analysis.sequence,
            )
        )
        last_index = end + 1
    return out


def _sequence_name(ch: str) -> Optional[str]:
    for name, alphabet in SEQUENCES.items():
        if ch in alphabet:
            return name
    return None


def sequence_match(password: str) -> List[Match]:
    n = len(password)
    out: List[Match] = []
    i = 0
    while i < n - 1:
        name = _sequence_name(password[i])
        delta = ord(password[i + 1]) - ord(password[i])
        if name is None or abs(delta) != 1 or _sequence_name(password[i + 1]) != name:
            i += 1
            continue
        j = i + 1
        while (
            j + 1 < n
            and _sequence_name(password[j + 1]) == name
            and ord(password[j + 1]) - ord(password[j]) == delta
        ):
            j += 1
        if j - i >= 2:
            out.append(
                SequenceMatch(
                    token=password[i : j + 1],
                    start=i,
                    end=j,
                    sequence_name=name,
                    sequence_space=len(SEQUENCES[name]),
                    ascending=delta == 1,
                )
            )
        # a maximal run may start on the last character of the previous one ("abcba")
        i = j
    return out


# ---------------------------------------------------------------------------
# regex and dates
# ---------------------------------------------------------------------------


def regex_match(password: str, config: ScoringConfig) -> List[Match]:
    out: List[Match] = []
    for name, regex in REGEXEN.items():
        for found in regex.finditer(password):
            out.append(
                RegexMatch(
                    token=found.group(0),
                    start=found.start(),
                    end=found.end() - 1,
                    regex_name=name,
                    reference_year=config.reference_year,
                )
            )
    return _sorted(out)


def two_to_four_digit_year(year: int, reference_year: int) -> int:
    if year > 99:
        return year
    recent = (reference_year // 100) * 100 + year
    candidates = [y for y in (recent - 100, recent, recent + 100) if DATE_MIN_YEAR <= y <= DATE_MAX_YEAR]
    if not candidates:
        # reference year far outside the date range
        candidates = [recent]
    # closest to the reference year; the later year wins a tie
    return min(candidates, key=lambda y: (abs(y - reference_year), -y))


def _map_ints_to_dm(ints: Sequence[int]) -> Optional[Tuple[int, int]]:
    for day, month in (tuple(ints), tuple(reversed(ints))):
        if 1 <= day <= 31 and 1 <= month <= 12:
            return day, month
    return None


def map_ints_to_dmy(ints: Sequence[int], reference_year: int) -> Optional[Tuple[int, int, int]]:
    """(day, month, year) for three integers in token order, or None.

    Tries year-last (mdy, dmy) before year-first (ymd, ydm). The middle integer is always a day
    or a month.
    """
    if ints[1] > 31 or ints[1] <= 0:
        return None
    over_12 = 0
    over_31 = 0
    under_1 = 0
    for value in ints:
        if 99 < value < DATE_MIN_YEAR or value > DATE_MAX_YEAR:
            return None
        if value > 31:
            over_31 += 1
        if value > 12:
            over_12 += 1
        if value <= 0:
            under_1 += 1
    if over_31 >= 2 or over_12 == 3 or under_1 >= 2:
        return None

    year_splits = ((ints[2], ints[0:2]), (ints[0], ints[1:3]))
    for year, rest in year_splits:
        if DATE_MIN_YEAR <= year <= DATE_MAX_YEAR:
            dm = _map_ints_to_dm(rest)
            if dm is None:
                # a four-digit year whose remaining digits are not a day and month is not a date
                return None
            return dm[0], dm[1], year

    for year, rest in year_splits:
        dm = _map_ints_to_dm(rest)
        if dm is not None:
            return dm[0], dm[1], two_to_four_digit_year(year, reference_year)
    return None


def date_match(password: str, config: ScoringConfig) -> List[Match]:
    n = len(password)
    ref = config.reference_year
    matches: List[DateMatch] = []

    for i in range(n - 3):
        for j in range(i + 3, min(n, i + 8)):
            token = password[i : j + 1]
            if not _MAYBE_DATE_NO_SEPARATOR.match(token):
                continue
            candidates = []
            for k, l in DATE_SPLITS[len(token)]:
                dmy = map_ints_to_dmy((int(token[:k]), int(token[k:l]), int(token[l:])), ref)
                if dmy is not None:
                    candidates.append(dmy)
            if not candidates:
                continue
            # several splits of one window can be valid; keep the one nearest the reference year
            best = candidates[0]
            for candidate in candidates[1:]:
                if abs(candidate[2] - ref) < abs(best[2] - ref):
                    best = candidate
            day, month, year = best
            matches.append(
                DateMatch(
                    token=token,
                    start=i,
                    end=j,
                    year=year,
                    month=month,
                    day=day,
                    separator="",
                    reference_year=ref,
                )
            )

    for i in range(n - 5):
        for j in range(i + 5, min(n, i + 10)):
            token = password[i : j + 1]
            found = _MAYBE_DATE_WITH_SEPARATOR.match(token)
            if found is None:
                continue
            dmy = map_ints_to_dmy((int(found.group(1)), int(found.group(3)), int(found.group(4))), ref)
            if dmy is None:
                continue
            day, month, year = dmy
            matches.append(
                DateMatch(
                    token=token,
                    start=i,
                    end=j,
                    year=year,
                    month=month,
                    day=day,
                    separator=found.group(2),
                    reference_year=ref,
                )
            )

    # "1991" inside "1/1/1991" is not a separate date; overlapping dates both stay
    kept = [
        match
        for match in matches
        if not any(other is not match and other.start <= match.start and other.end >= match.end for other in matches)
    ]
    return _sorted(kept)


# ---------------------------------------------------------------------------
# omnimatch
# ---------------------------------------------------------------------------


def omnimatch(password: str, reference: ReferenceData, config: Optional[ScoringConfig] = None) -> List[Match]:
    cfg = config or ScoringConfig()
    dictionaries = reference.ranked_dictionaries
    matches: List[Match] = []
    matches.extend(dictionary_match(password, dictionaries))
    matches.extend(reverse_dictionary_match(password, dictionaries))
    matches.extend(l33t_match(password, dictionaries, cfg))
    matches.extend(spatial_match(password, reference.graphs))
    matches.extend(repeat_match(password, reference, cfg))
    matches.extend(sequence_match(password))
    matches.extend(regex_match(password, cfg))
    matches.extend(date_match(password, cfg))
    _LOGGER.debug("omnimatch found %d candidates over %d chars", len(matches), len(password))
    return _sorted(matches)
