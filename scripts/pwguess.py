#!/usr/bin/env python3
from __future__ import annotations

import sys
from pathlib import Path


def _checkout_root() -> None:
    here = Path(__file__).resolve().parent
    root = here.parent
    if not (root / "pwguess" / "core").is_dir():
        raise RuntimeError("expected scripts/pwguess.py inside a pwguess checkout")
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_checkout_root()

from pwguess.cli.guess_cli import main


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
