#!/usr/bin/env python3
from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
import os
import sys
from pathlib import Path

from pwguess.core.error_dialect import error_payload_from_exception, format_error_text
from pwguess.core.frequency import default_dictionaries, load_wordlist
from pwguess.core.guess_service import estimate_guesses
from pwguess.core.models import GuessEstimate, ScoringConfig


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Estimate attacker guesses for a password (reads stdin if omitted)")
    parser.add_argument(
        "password",
        nargs="?",
        default=None,
        help="password to score (prefer stdin to keep it out of shell history)",
    )
    parser.add_argument(
        "-u",
        "--user-input",
        action="append",
        default=[],
        help="word tied to the account (name, email, site); repeatable, ranked in the order given",
    )
    parser.add_argument(
        "--wordlist",
        action="append",
        default=[],
        help="extra frequency list, one word per line, most common first; repeatable",
    )
    parser.add_argument(
        "--no-default-wordlist",
        action="store_true",
        help="do not use the built-in common password list",
    )
    parser.add_argument(
        "--reference-year",
        type=int,
        default=None,
        help="year used to rank dates (default: PWGUESS_REFERENCE_YEAR or the current year)",
    )
    parser.add_argument("--show-meta", "--meta", action="store_true", help="print the winning match sequence")
    parser.add_argument("--json", action="store_true", help="emit a JSON document instead of text lines")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging to stderr (PWGUESS_DEBUG=1)")
    return parser.parse_args(argv)


def _read_password(args: argparse.Namespace) -> str:
    if args.password is not None:
        return args.password
    # Strip trailing newlines that can appear with echo/pipes
    return sys.stdin.read().rstrip("\r\n")


def _build_dictionaries(args: argparse.Namespace) -> dict:
    dictionaries = {} if args.no_default_wordlist else dict(default_dictionaries())
    for path in args.wordlist:
        name = Path(path).stem or "wordlist"
        if name in dictionaries:
            raise ValueError(f"duplicate wordlist name: {name}")
        dictionaries[name] = load_wordlist(path)
    return dictionaries


def _as_json(result: GuessEstimate) -> dict[str, object]:
    sequence = []
    for match, guesses in zip(result.sequence, result.sequence_guesses):
        row: dict[str, object] = {
            "pattern": match.pattern,
            "token": match.token,
            "i": match.start,
            "j": match.end,
            "guesses": guesses,
        }
        for key, value in vars(match).items():
            if key in ("token", "start", "end", "base_matches"):
                continue
            row[key] = dict(value) if key == "l33t_substitutions" else value
        sequence.append(row)
    return {
        "guesses": result.guesses,
        "guesses_log10": result.guesses_log10,
        "entropy_bits": result.entropy_bits,
        "sequence": sequence,
    }


def _configure_logging(verbose: bool) -> None:
    if verbose or os.environ.get("PWGUESS_DEBUG", "").strip().lower() in ("1", "true", "yes", "on"):
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        config = ScoringConfig.from_env()
        if args.reference_year is not None:
            config = replace(config, reference_year=args.reference_year)
        result = estimate_guesses(
            _read_password(args),
            user_inputs=args.user_input,
            dictionaries=_build_dictionaries(args),
            config=config,
        )
    except ValueError as exc:
        if args.json:
            print(json.dumps(error_payload_from_exception(exc)), file=sys.stderr)
        else:
            print(format_error_text(exc), file=sys.stderr)
        return 2
    if args.json:
        print(json.dumps(_as_json(result), ensure_ascii=True))
        return 0
    for line in result.as_lines(show_meta=args.show_meta):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
