"""Pattern matching and minimum-guess decomposition for password strength estimation."""

from __future__ import annotations


def estimate_guesses(password, user_inputs=(), dictionaries=None, graphs=None, config=None):
    from pwguess.core.guess_service import estimate_guesses as _estimate_guesses

    return _estimate_guesses(password, user_inputs, dictionaries, graphs, config)


__all__ = ["estimate_guesses"]
