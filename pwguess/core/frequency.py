from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Mapping, Sequence, Union

from pwguess.core.error_dialect import PwGuessError, require
from pwguess.core.models import RankedDictionary

USER_INPUTS_DICTIONARY = "user_inputs"
DEFAULT_DICTIONARY = "passwords"

# Built-in fallback list, most common first. Rank is the 1-based position.
COMMON_PASSWORDS: tuple[str, ...] = (
    "123456",
    "password",
    "12345678",
    "qwerty",
    "123456789",
    "12345",
    "1234",
    "111111",
    "1234567",
    "dragon",
    "123123",
    "baseball",
    "abc123",
    "football",
    "monkey",
    "letmein",
    "shadow",
    "master",
    "696969",
    "michael",
    "mustang",
    "666666",
    "qwertyuiop",
    "123321",
    "1234567890",
    "superman",
    "654321",
    "1qaz2wsx",
    "7777777",
    "qazwsx",
    "jordan",
    "jennifer",
    "123qwe",
    "121212",
    "killer",
    "trustno1",
    "hunter",
    "harley",
    "zxcvbnm",
    "asdfgh",
    "buster",
    "andrew",
    "batman",
    "soccer",
    "tigger",
    "charlie",
    "robert",
    "sunshine",
    "iloveyou",
    "ranger",
    "hockey",
    "computer",
    "starwars",
    "pepper",
    "klaster",
    "112233",
    "zxcvbn",
    "freedom",
    "princess",
    "maggie",
    "pass",
    "ginger",
    "11111111",
    "131313",
    "love",
    "cheese",
    "159753",
    "summer",
    "chelsea",
    "dallas",
    "matrix",
    "yankees",
    "6969",
    "corvette",
    "austin",
    "access",
    "thunder",
    "merlin",
    "secret",
    "diamond",
    "hello",
    "hammer",
    "1234qwer",
    "silver",
    "gfhjkm",
    "internet",
    "samantha",
    "golfer",
    "scooter",
    "test",
    "orange",
    "cookie",
    "q1w2e3r4t5",
    "maverick",
    "sparky",
    "phoenix",
    "mickey",
    "bigdog",
    "snoopy",
    "guitar",
    "whatever",
    "chicken",
    "camaro",
    "mercedes",
    "peanut",
    "ferrari",
    "falcon",
    "cowboy",
    "welcome",
    "samsung",
    "steelers",
    "smokey",
    "dakota",
    "arsenal",
    "boomer",
    "eagles",
    "tigers",
    "marina",
    "nascar",
    "booboo",
    "gateway",
    "yellow",
    "porsche",
    "monster",
    "spider",
    "diablo",
    "hannah",
    "bulldog",
    "junior",
    "london",
    "purple",
    "compaq",
    "lakers",
    "iceman",
    "qwer1234",
    "cowboys",
    "money",
    "banana",
    "ncc1701",
    "boston",
    "tennis",
    "q1w2e3r4",
    "coffee",
    "scooby",
    "123654",
    "nikita",
    "yamaha",
    "mother",
    "barney",
    "brandy",
    "chester",
    "oliver",
    "player",
    "forever",
    "rangers",
    "midnight",
    "admin",
    "administrator",
    "root",
    "guest",
    "changeme",
    "default",
    "passw0rd",
    "asdf",
    "login",
    "system",
    "server",
    "security",
    "private",
    "public",
    "backup",
    "manager",
    "service",
    "operator",
)

Wordlist = Union[Sequence[str], Mapping[str, int]]


def build_ranked_dict(words: Iterable[str]) -> Dict[str, int]:
    """Rank by position (1 = most common). A repeated word keeps its first rank."""
    ranked: Dict[str, int] = {}
    for idx, word in enumerate(words, 1):
        if not isinstance(word, str):
            raise PwGuessError("invalid_wordlist", f"wordlist entry {idx} is not a string")
        lowered = word.lower()
        if lowered:
            ranked.setdefault(lowered, idx)
    return ranked


def _checked_ranked_dict(name: str, ranks: Mapping[str, int]) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for word, rank in ranks.items():
        require(isinstance(word, str) and bool(word), "invalid_wordlist", f"{name}: empty or non-string word")
        require(
            isinstance(rank, int) and not isinstance(rank, bool) and rank >= 1,
            "invalid_rank",
            f"{name}: rank for {word!r} must be an integer >= 1, got {rank!r}",
        )
        lowered = word.lower()
        prev = out.get(lowered)
        if prev is None or rank < prev:
            out[lowered] = rank
    return out


def build_ranked_dictionaries(
    dictionaries: Mapping[str, Wordlist],
    user_inputs: Sequence[str] = (),
) -> Dict[str, RankedDictionary]:
    ranked: Dict[str, RankedDictionary] = {}
    for name, words in dictionaries.items():
        require(name != USER_INPUTS_DICTIONARY, "invalid_wordlist", f"{name!r} is reserved for user inputs")
        if isinstance(words, Mapping):
            ranked[name] = _checked_ranked_dict(name, words)
        elif isinstance(words, str):
            raise PwGuessError("invalid_wordlist", f"{name}: expected a word list, got a string")
        else:
            ranked[name] = build_ranked_dict(words)
    ranked[USER_INPUTS_DICTIONARY] = build_ranked_dict(user_inputs)
    return ranked


def default_dictionaries() -> Dict[str, Wordlist]:
    return {DEFAULT_DICTIONARY: COMMON_PASSWORDS}


MAX_WORDLIST_FILE_BYTES = 32 * 1024 * 1024


def load_wordlist(path: str) -> list[str]:
    """Read one word per line, most common first. Blank lines and ``#`` comments are skipped."""
    p = Path(path).expanduser()
    try:
        st = p.stat()
    except FileNotFoundError as exc:
        raise ValueError(f"wordlist file not found: {p}") from exc
    except OSError as exc:
        raise ValueError(f"unable to stat wordlist file '{p}': {exc}") from exc

    if not p.is_file():
        raise ValueError(f"wordlist path is not a file: {p}")
    if st.st_size > MAX_WORDLIST_FILE_BYTES:
        raise ValueError(f"wordlist file too large: {p} ({st.st_size} bytes)")

    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise ValueError(f"unable to read wordlist file '{p}': {exc}") from exc

    words: list[str] = []
    for raw_line in text.splitlines():
        # Tolerate UTF-8 BOM if present at file start.
        w = raw_line.strip().lstrip("\ufeff")
        if not w or w.startswith("#"):
            continue
        words.append(w)
    if not words:
        raise ValueError(f"wordlist file is empty: {p}")
    return words
