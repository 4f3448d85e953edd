from __future__ import annotations

from dataclasses import dataclass
import datetime
import math
import os
from typing import ClassVar, Dict, Mapping, Optional, Sequence, Tuple

from pwguess.core.error_dialect import PwGuessError, require


DEFAULT_REFERENCE_YEAR = datetime.date.today().year
DEFAULT_MAX_L33T_SUBSTITUTIONS = 512
DEFAULT_MAX_GUESSES = 1e300
DEFAULT_MAX_ANALYSIS_LENGTH = 256

# char -> adjacency slots; each slot is None or "<unshifted><shifted>" (keypads use one char).
AdjacencyGraph = Mapping[str, Sequence[Optional[str]]]
RankedDictionary = Mapping[str, int]


def _parse_int(value: str, field_name: str) -> int:
    raw = value.strip()
    if not raw:
        raise ValueError(f"{field_name} must be a non-empty integer")
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{field_name} must be an integer") from exc


@dataclass(frozen=True)
class ScoringConfig:
    reference_year: int = DEFAULT_REFERENCE_YEAR
    max_l33t_substitutions: int = DEFAULT_MAX_L33T_SUBSTITUTIONS
    max_guesses: float = DEFAULT_MAX_GUESSES
    max_analysis_length: int = DEFAULT_MAX_ANALYSIS_LENGTH

    def __post_init__(self) -> None:
        if self.max_l33t_substitutions < 1:
            raise ValueError("max_l33t_substitutions must be > 0")
        if not (1.0 < self.max_guesses < math.inf):
            raise ValueError("max_guesses must be a finite number > 1")
        if self.max_analysis_length < 1:
            raise ValueError("max_analysis_length must be > 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ScoringConfig":
        env = os.environ if environ is None else environ
        return cls(
            reference_year=_parse_int(
                env.get("PWGUESS_REFERENCE_YEAR", str(DEFAULT_REFERENCE_YEAR)),
                "PWGUESS_REFERENCE_YEAR",
            ),
            max_l33t_substitutions=_parse_int(
                env.get("PWGUESS_MAX_L33T_SUBS", str(DEFAULT_MAX_L33T_SUBSTITUTIONS)),
                "PWGUESS_MAX_L33T_SUBS",
            ),
            max_analysis_length=_parse_int(
                env.get("PWGUESS_MAX_ANALYSIS_LENGTH", str(DEFAULT_MAX_ANALYSIS_LENGTH)),
                "PWGUESS_MAX_ANALYSIS_LENGTH",
            ),
        )


@dataclass(frozen=True)
class ReferenceData:
    """Read-only tables every matcher receives explicitly."""

    ranked_dictionaries: Mapping[str, RankedDictionary]
    graphs: Mapping[str, AdjacencyGraph]


@dataclass(frozen=True)
class Match:
    token: str
    start: int
    end: int

    pattern: ClassVar[str] = ""

    def __post_init__(self) -> None:
        require(0 <= self.start <= self.end, "invalid_span", f"bad match span [{self.start}, {self.end}]")
        require(
            len(self.token) == self.end - self.start + 1,
            "invalid_span",
            f"token length {len(self.token)} does not fit span [{self.start}, {self.end}]",
        )

    @property
    def guesses(self) -> float:
        """Raw estimate for this match alone, clamped at the default cap of 1e300.

        It ignores ``ScoringConfig.max_guesses`` and submatch floors; the values the
        decomposition actually used are in ``GuessEstimate.sequence_guesses``.
        """
        from pwguess.core.scoring import estimate_match_guesses

        return estimate_match_guesses(self)


@dataclass(frozen=True)
class DictionaryMatch(Match):
    matched_word: str
    rank: int
    dictionary_name: str
    reversed: bool = False
    # (l33t character, letter) pairs, sorted; a mapping is accepted and converted
    l33t_substitutions: Tuple[Tuple[str, str], ...] = ()

    pattern: ClassVar[str] = "dictionary"

    def __post_init__(self) -> None:
        super().__post_init__()
        require(self.rank >= 1, "invalid_rank", f"rank must be >= 1, got {self.rank}")
        subs = self.l33t_substitutions
        pairs = subs.items() if isinstance(subs, Mapping) else subs
        object.__setattr__(self, "l33t_substitutions", tuple(sorted((str(k), str(v)) for k, v in pairs)))

    @property
    def l33t(self) -> bool:
        return bool(self.l33t_substitutions)

    @property
    def substitution_map(self) -> Dict[str, str]:
        """A fresh dict copy of the substitutions; editing it does not touch the match."""
        return dict(self.l33t_substitutions)

    @property
    def sub_display(self) -> str:
        return ", ".join(f"{k} -> {v}" for k, v in self.l33t_substitutions)


@dataclass(frozen=True)
class SpatialMatch(Match):
    graph: str
    turns: int
    shifted_count: int
    starting_positions: int
    average_degree: float

    pattern: ClassVar[str] = "spatial"


@dataclass(frozen=True)
class RepeatMatch(Match):
    base_token: str
    repeat_count: int
    base_guesses: float
    base_matches: Tuple[Match, ...] = ()

    pattern: ClassVar[str] = "repeat"

    def __post_init__(self) -> None:
        super().__post_init__()
        require(self.repeat_count >= 2, "invalid_repeat", "repeat_count must be >= 2")
        require(
            len(self.base_token) * self.repeat_count == len(self.token),
            "invalid_repeat",
            "base_token does not tile the repeated token",
        )


@dataclass(frozen=True)
class SequenceMatch(Match):
    sequence_name: str
    sequence_space: int
    ascending: bool

    pattern: ClassVar[str] = "sequence"


@dataclass(frozen=True)
class RegexMatch(Match):
    regex_name: str
    reference_year: int = DEFAULT_REFERENCE_YEAR

    pattern: ClassVar[str] = "regex"


@dataclass(frozen=True)
class DateMatch(Match):
    year: int
    month: int
    day: int
    separator: str = ""
    reference_year: int = DEFAULT_REFERENCE_YEAR

    pattern: ClassVar[str] = "date"


@dataclass(frozen=True)
class BruteforceMatch(Match):
    pattern: ClassVar[str] = "bruteforce"


@dataclass(frozen=True)
class GuessEstimate:
    password: str
    guesses: float
    sequence: Tuple[Match, ...]
    sequence_guesses: Tuple[float, ...] = ()

    @property
    def guesses_log10(self) -> float:
        return math.log10(self.guesses)

    @property
    def entropy_bits(self) -> float:
        return math.log2(self.guesses)

    def as_lines(self, show_meta: bool = False) -> Tuple[str, ...]:
        head = f"guesses={_format_guesses(self.guesses)}\tlog10={self.guesses_log10:.3f}"
        if not show_meta:
            return (head,)
        lines = [head]
        for idx, match in enumerate(self.sequence):
            match_guesses = self.sequence_guesses[idx] if idx < len(self.sequence_guesses) else match.guesses
            lines.append(
                f"[{match.start},{match.end}]\t{match.pattern}\t{match.token!r}\t"
                f"guesses={_format_guesses(match_guesses)}{_describe(match)}"
            )
        return tuple(lines)


def _format_guesses(value: float) -> str:
    if value < 1e15 and float(value).is_integer():
        return str(int(value))
    return f"{value:.4g}"


def _describe(match: Match) -> str:
    if isinstance(match, DictionaryMatch):
        meta = f" word={match.matched_word} rank={match.rank} dict={match.dictionary_name}"
        if match.reversed:
            meta += " reversed"
        if match.l33t:
            meta += f" l33t=[{match.sub_display}]"
        return meta
    if isinstance(match, SpatialMatch):
        return f" graph={match.graph} turns={match.turns} shifted={match.shifted_count}"
    if isinstance(match, RepeatMatch):
        return f" base={match.base_token!r} x{match.repeat_count}"
    if isinstance(match, SequenceMatch):
        direction = "asc" if match.ascending else "desc"
        return f" seq={match.sequence_name} {direction}"
    if isinstance(match, RegexMatch):
        return f" regex={match.regex_name}"
    if isinstance(match, DateMatch):
        return f" date={match.year:04d}-{match.month:02d}-{match.day:02d} sep={match.separator!r}"
    if isinstance(match, BruteforceMatch):
        return ""
    raise PwGuessError("unknown_pattern", f"no description for pattern {match.pattern!r}")
