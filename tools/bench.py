from __future__ import annotations

import argparse
import secrets
import string
import sys
import time
from pathlib import Path

# Allow running as `python tools/bench.py` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pwguess.core.guess_service import build_reference_data, score_password
from pwguess.core.models import ScoringConfig

_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*-_."
_PATTERNED = (
    "password1",
    "P@ssw0rd2019",
    "qwertyuiop",
    "12/20/1991",
    "abcabcabcabc",
    "correcthorsebatterystaple",
    "zxcvbn!2024",
)


def _random_passwords(count: int, length: int) -> list[str]:
    return ["".join(secrets.choice(_ALPHABET) for _ in range(length)) for _ in range(count)]


def _bench(label: str, passwords: list[str]) -> None:
    reference = build_reference_data()
    config = ScoringConfig()
    t0 = time.perf_counter()
    total_matches = 0
    for password in passwords:
        total_matches += len(score_password(password, reference, config).sequence)
    dt = time.perf_counter() - t0
    rate = (len(passwords) / dt) if dt > 0 else 0.0
    print(f"[{label}] count={len(passwords)} matches={total_matches} seconds={dt:.4f} rate={rate:.1f}/s")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="pwguess scoring throughput benchmark (stdlib-only).")
    parser.add_argument("--random", type=int, default=0, help="Number of random passwords to score.")
    parser.add_argument("--length", type=int, default=16, help="Length of random passwords.")
    parser.add_argument("--patterned", type=int, default=0, help="Rounds over the built-in patterned samples.")
    args = parser.parse_args(argv)

    if args.random <= 0 and args.patterned <= 0:
        parser.error("Set --random and/or --patterned to a value > 0")

    if args.random > 0:
        _bench("random", _random_passwords(args.random, args.length))
    if args.patterned > 0:
        _bench("patterned", list(_PATTERNED) * args.patterned)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
