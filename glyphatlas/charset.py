from __future__ import annotations

import re
from pathlib import Path
from typing import Set

from .errors import ConfigError, OutputError

MAX_CODEPOINT = 0x10FFFF

_TOKEN_SPLIT = re.compile(r"[\s,]+")


def _parse_codepoint(text: str, origin: str) -> int:
    if text[:2].upper() == "U+":
        text = text[2:]
    try:
        value = int(text, 16)
    except ValueError:
        raise ConfigError(f"{origin}: invalid code point {text!r}") from None
    if value < 0 or value > MAX_CODEPOINT:
        raise ConfigError(f"{origin}: code point {text!r} is out of range")
    return value


def parse_charset(text: str, *, source: str = "<charset>") -> frozenset[int]:
    """
    Parse a character set description. Tokens are hexadecimal code points
    (``41`` or ``U+0041``) or inclusive ranges (``20-7E``); ``#`` starts a
    comment.
    """

    codepoints: Set[int] = set()
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.split("#", 1)[0]
        origin = f"{source}:{number}"
        for token in _TOKEN_SPLIT.split(line.strip()):
            if not token:
                continue
            if "-" in token:
                lo_text, hi_text = token.split("-", 1)
                lo = _parse_codepoint(lo_text, origin)
                hi = _parse_codepoint(hi_text, origin)
                if hi < lo:
                    raise ConfigError(f"{origin}: reversed range {token!r}")
                codepoints.update(range(lo, hi + 1))
            else:
                codepoints.add(_parse_codepoint(token, origin))
    return frozenset(codepoints)


def read_charset(path: Path) -> frozenset[int]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise OutputError(f"cannot read character set {path}: {exc}") from exc
    return parse_charset(text, source=str(path))
