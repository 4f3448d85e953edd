from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from pwguess.core.error_dialect import PwGuessError, require
from pwguess.core.frequency import Wordlist, build_ranked_dictionaries, default_dictionaries
from pwguess.core.keyboards import default_graphs, graph_stats
from pwguess.core.matching import omnimatch
from pwguess.core.models import (
    AdjacencyGraph,
    BruteforceMatch,
    GuessEstimate,
    ReferenceData,
    ScoringConfig,
)
from pwguess.core.scoring import combined_guesses, estimate_match_guesses, most_guessable_match_sequence

_LOGGER = logging.getLogger(__name__)


def build_reference_data(
    dictionaries: Optional[Mapping[str, Wordlist]] = None,
    graphs: Optional[Mapping[str, AdjacencyGraph]] = None,
    user_inputs: Sequence[str] = (),
) -> ReferenceData:
    """Validate and rank caller tables once so they can be reused across passwords."""
    if isinstance(user_inputs, str):
        raise PwGuessError("invalid_user_inputs", "user_inputs must be a sequence of strings, not a string")
    dictionaries = default_dictionaries() if dictionaries is None else dictionaries
    graphs = default_graphs() if graphs is None else graphs
    for name, graph in graphs.items():
        require(isinstance(name, str) and bool(name), "invalid_graph", "graph names must be non-empty strings")
        graph_stats(graph)
    return ReferenceData(
        ranked_dictionaries=build_ranked_dictionaries(dictionaries, user_inputs),
        graphs=dict(graphs),
    )


def score_password(
    password: str,
    reference: ReferenceData,
    config: Optional[ScoringConfig] = None,
) -> GuessEstimate:
    if not isinstance(password, str):
        raise PwGuessError("invalid_password", f"password must be a string, got {type(password).__name__}")
    cfg = config or ScoringConfig()
    window = cfg.max_analysis_length
    if len(password) <= window:
        return most_guessable_match_sequence(password, omnimatch(password, reference, cfg), cfg)

    # Keep long inputs bounded: decompose the leading window, the rest is one bruteforce run.
    _LOGGER.debug("input of %d chars exceeds analysis window of %d", len(password), window)
    head = password[:window]
    head_estimate = most_guessable_match_sequence(head, omnimatch(head, reference, cfg), cfg)
    sequence = list(head_estimate.sequence)
    match_guesses = list(head_estimate.sequence_guesses)
    tail_start = window
    if isinstance(sequence[-1], BruteforceMatch):
        # two bruteforce runs never sit next to each other; grow the last one instead
        tail_start = sequence.pop().start
        match_guesses.pop()
    tail = BruteforceMatch(token=password[tail_start:], start=tail_start, end=len(password) - 1)
    sequence.append(tail)
    match_guesses.append(estimate_match_guesses(tail, cfg.max_guesses))
    return GuessEstimate(
        password=password,
        guesses=combined_guesses(match_guesses, cfg.max_guesses),
        sequence=tuple(sequence),
        sequence_guesses=tuple(match_guesses),
    )


def estimate_guesses(
    password: str,
    user_inputs: Sequence[str] = (),
    dictionaries: Optional[Mapping[str, Wordlist]] = None,
    graphs: Optional[Mapping[str, AdjacencyGraph]] = None,
    config: Optional[ScoringConfig] = None,
) -> GuessEstimate:
    reference = build_reference_data(dictionaries, graphs, user_inputs)
    return score_password(password, reference, config)
