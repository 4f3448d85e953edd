from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorDetail:
    code: str
    message: str


class PwGuessError(ValueError):
    """Caller contract violation (bad reference data, impossible span, unknown pattern).

    These can only come from a bug in the estimator or in the code feeding it, so they are
    raised immediately instead of being folded into a score.
    """

    def __init__(self, code: str, message: str) -> None:
        self.code = _normalize_code(code)
        self.message = message.strip() or "unspecified error"
        super().__init__(self.message)

    def as_detail(self) -> ErrorDetail:
        return ErrorDetail(code=self.code, message=self.message)


def _normalize_code(code: str) -> str:
    lowered = code.strip().lower()
    out = []
    for ch in lowered:
        if ch.isalnum() or ch == "_":
            out.append(ch)
        elif ch in ("-", " ", "."):
            out.append("_")
    return "".join(out).strip("_") or "contract_violation"


def require(condition: bool, code: str, message: str) -> None:
    if not condition:
        raise PwGuessError(code, message)


def error_detail_from_exception(
    exc: BaseException,
    *,
    default_code: str = "invalid_input",
    default_message: str = "invalid input",
) -> ErrorDetail:
    if isinstance(exc, PwGuessError):
        return exc.as_detail()
    message = str(exc).strip() or default_message
    return ErrorDetail(code=_normalize_code(default_code), message=message)


def error_payload_from_exception(
    exc: BaseException,
    *,
    default_code: str = "invalid_input",
    default_message: str = "invalid input",
) -> dict[str, object]:
    detail = error_detail_from_exception(exc, default_code=default_code, default_message=default_message)
    return {"error": {"code": detail.code, "message": detail.message}}


def format_error_text(
    exc: BaseException,
    *,
    default_code: str = "invalid_input",
    default_message: str = "invalid input",
) -> str:
    detail = error_detail_from_exception(exc, default_code=default_code, default_message=default_message)
    return f"{detail.code}: {detail.message}"
