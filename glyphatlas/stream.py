"""
Reader for the line protocol emitted by the external glyph rasterizer.

Each record is a newline-terminated list of fields separated by single
spaces; the first field names the record type:

    metrics <ascender> <descender> <height>
    char <codepoint> <glyph-index>
    glyph <w> <h> <cx> <cy> <advance> <name> <hex-bitmap>

Glyph records carry no explicit index: the n-th glyph record is glyph n.
Any malformed record aborts the whole parse.
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import List, Sequence

from .errors import ProtocolError, RasterizerError
from .fonts import MAX_GLYPH_SIZE, Font, Glyph, Metrics, bitmap_from_gray

_SIGNED_RE = re.compile(rb"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(rb"[0-9]+")

INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1
UINT32_MAX = (1 << 32) - 1

_FIELD_COUNTS = {b"metrics": 3, b"char": 2, b"glyph": 7}


def _text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def _int32(value: bytes, line: int, what: str, tag: str) -> int:
    if not _SIGNED_RE.fullmatch(value):
        raise ProtocolError(line, f"invalid {what} {_text(value)!r}", tag=tag)
    number = int(value)
    if not INT32_MIN <= number <= INT32_MAX:
        raise ProtocolError(line, f"{what} {_text(value)!r} is out of range", tag=tag)
    return number


def _uint32(value: bytes, line: int, what: str, tag: str) -> int:
    if not _UNSIGNED_RE.fullmatch(value):
        raise ProtocolError(line, f"invalid {what} {_text(value)!r}", tag=tag)
    number = int(value)
    if number > UINT32_MAX:
        raise ProtocolError(line, f"{what} {_text(value)!r} is out of range", tag=tag)
    return number


def _parse_glyph(fields: Sequence[bytes], line: int) -> Glyph:
    width, height, cx, cy, advance = (_int32(f, line, "glyph field", "glyph") for f in fields[:5])
    name = _text(fields[5])
    if width < 0 or height < 0:
        raise ProtocolError(line, f"negative glyph size: {width}x{height}", tag="glyph")
    glyph = Glyph(size=(width, height), center=(cx, cy), advance=advance, name=name)
    if not glyph.has_bitmap:
        return glyph
    if width > MAX_GLYPH_SIZE or height > MAX_GLYPH_SIZE:
        raise ProtocolError(line, f"glyph size too large: {width}x{height}", tag="glyph")
    data_field = fields[6]
    expected = width * height * 2
    if len(data_field) != expected:
        raise ProtocolError(
            line,
            f"glyph {name!r} data is {len(data_field)} characters, expected {expected}",
            tag="glyph",
        )
    try:
        data = bytes.fromhex(data_field.decode("ascii"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise ProtocolError(line, f"glyph {name!r} has invalid data field: {exc}", tag="glyph") from exc
    # fromhex skips whitespace, so the decoded length is checked as well
    if len(data) != width * height:
        raise ProtocolError(line, f"glyph {name!r} has invalid data field", tag="glyph")
    glyph.bitmap = bitmap_from_gray(width, height, data)
    return glyph


def iter_records(data: bytes):
    """Yield ``(line_number, fields)`` for every record in ``data``."""

    lines: List[bytes] = data.split(b"\n")
    if lines and lines[-1] == b"":
        lines.pop()
    for number, line in enumerate(lines, start=1):
        yield number, line.split(b" ")


def parse_glyph_stream(data: bytes) -> Font:
    font = Font()
    for number, fields in iter_records(data):
        tag, args = fields[0], fields[1:]
        expected = _FIELD_COUNTS.get(tag)
        if expected is None:
            raise ProtocolError(number, f"unknown record: {_text(tag)!r}", tag=_text(tag))
        if len(args) != expected:
            raise ProtocolError(
                number,
                f"{tag.decode()} has {len(args)} fields, expect {expected}",
                tag=tag.decode(),
            )
        if tag == b"metrics":
            ascender, descender, height = (_int32(f, number, "metric", "metrics") for f in args)
            font.metrics = Metrics(ascender=ascender, descender=descender, height=height)
        elif tag == b"char":
            codepoint = _uint32(args[0], number, "character", "char")
            font.charmap[codepoint] = _uint32(args[1], number, "glyph", "char")
        else:
            font.glyphs.append(_parse_glyph(args, number))
    return font


def rasterize_font(
    command: Sequence[str],
    font_path: Path,
    size: int,
    *,
    mono: bool = False,
) -> Font:
    """Run the rasterizer on ``font_path`` and parse everything it prints."""

    argv = [*command, "rasterize", f"-font={font_path}", f"-size={size}"]
    if mono:
        argv.append("-mono")
    try:
        result = subprocess.run(argv, stdout=subprocess.PIPE, check=False)
    except OSError as exc:
        raise RasterizerError(f"cannot run rasterizer {command[0]!r}: {exc}") from exc
    if result.returncode != 0:
        raise RasterizerError(
            f"rasterizer exited with status {result.returncode} for {font_path}",
            returncode=result.returncode,
        )
    return parse_glyph_stream(result.stdout)
