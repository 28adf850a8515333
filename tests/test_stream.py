from __future__ import annotations

import sys
import textwrap

import pytest

from glyphatlas.errors import ProtocolError, RasterizerError
from glyphatlas.fonts import Metrics, format_glyph_stream
from glyphatlas.stream import parse_glyph_stream, rasterize_font


def test_scenario_stream(scenario_stream):
    font = parse_glyph_stream(scenario_stream)

    assert font.metrics == Metrics(ascender=10, descender=-2, height=12)
    assert font.charmap == {65: 1}
    assert len(font.glyphs) == 2

    notdef, a = font.glyphs
    assert notdef.name == ".notdef"
    assert notdef.size == (0, 0)
    assert notdef.bitmap is None
    assert a.name == "A"
    assert a.size == (4, 4)
    assert a.advance == 5
    assert a.gray_bytes() == b"\xff" * 16
    assert a.bitmap.mode == "RGBA"
    assert a.bitmap.getpixel((3, 3)) == (255, 255, 255, 255)


def test_bitmap_is_row_major():
    font = parse_glyph_stream(b"glyph 2 1 1 -3 4 x 0080\n")
    glyph = font.glyphs[0]
    assert glyph.center == (1, -3)
    assert glyph.bitmap.getpixel((0, 0)) == (0, 0, 0, 0)
    assert glyph.bitmap.getpixel((1, 0)) == (255, 255, 255, 0x80)
    assert glyph.gray_bytes() == b"\x00\x80"


def test_empty_stream():
    font = parse_glyph_stream(b"")
    assert font.metrics is None
    assert font.charmap == {}
    assert font.glyphs == []


def test_last_record_without_newline():
    font = parse_glyph_stream(b"char 66 0\nchar 67 0")
    assert font.charmap == {66: 0, 67: 0}


def test_duplicate_char_last_write_wins():
    font = parse_glyph_stream(b"char 65 1\nchar 65 2\n")
    assert font.charmap == {65: 2}


def test_last_metrics_wins():
    font = parse_glyph_stream(b"metrics 1 2 3\nmetrics 4 -5 6\n")
    assert font.metrics == Metrics(4, -5, 6)


def test_zero_dimension_ignores_bitmap_field():
    font = parse_glyph_stream(b"glyph 3 0 0 0 4 space zzzz\n")
    glyph = font.glyphs[0]
    assert glyph.size == (3, 0)
    assert glyph.bitmap is None
    assert not glyph.has_bitmap


@pytest.mark.parametrize(
    "stream, fragment",
    [
        (b"bogus 1 2\n", "unknown record"),
        (b"\n", "unknown record"),
        (b"metrics 1 2\n", "metrics has 2 fields, expect 3"),
        (b"char 65\n", "char has 1 fields, expect 2"),
        (b"glyph 1 1 0 0 1 a\n", "glyph has 6 fields, expect 7"),
        (b"metrics 1 x 3\n", "invalid metric"),
        (b"char -65 1\n", "invalid character"),
        (b"char 65 4294967296\n", "out of range"),
        (b"metrics 2147483648 0 0\n", "out of range"),
        (b"glyph 2 2 0 0 1 a ffffff\n", "data is 6 characters, expected 8"),
        (b"glyph 1 1 0 0 1 a zz\n", "invalid data field"),
        (b"glyph 16385 1 0 0 1 big " + b"00" * 16385 + b"\n", "glyph size too large"),
        (b"glyph -1 2 0 0 1 neg \n", "negative glyph size"),
    ],
)
def test_malformed_records(stream, fragment):
    with pytest.raises(ProtocolError) as info:
        parse_glyph_stream(stream)
    assert fragment in str(info.value)
    assert info.value.phase == "parse"


def test_error_reports_line_number():
    stream = b"metrics 1 2 3\nchar 65 0\nglyph 1 1 0 0 1 a 0g\n"
    with pytest.raises(ProtocolError) as info:
        parse_glyph_stream(stream)
    assert info.value.line == 3
    assert info.value.tag == "glyph"
    assert str(info.value).startswith("line 3:")


def test_round_trip_is_idempotent(scenario_stream):
    stream = scenario_stream + b"char 32 0\nglyph 3 2 -1 7 4 b 0102030405ff\n"
    font = parse_glyph_stream(stream)
    again = parse_glyph_stream(format_glyph_stream(font))

    assert again.metrics == font.metrics
    assert again.charmap == font.charmap
    assert [g.size for g in again.glyphs] == [g.size for g in font.glyphs]
    assert [g.center for g in again.glyphs] == [g.center for g in font.glyphs]
    assert [g.advance for g in again.glyphs] == [g.advance for g in font.glyphs]
    assert [g.name for g in again.glyphs] == [g.name for g in font.glyphs]
    assert [g.gray_bytes() for g in again.glyphs] == [g.gray_bytes() for g in font.glyphs]
    assert format_glyph_stream(again) == format_glyph_stream(font)


def _write_script(tmp_path, body: str):
    script = tmp_path / "raster.py"
    script.write_text(textwrap.dedent(body), encoding="utf-8")
    return (sys.executable, str(script))


def test_rasterize_font_runs_subprocess(tmp_path, scenario_stream):
    command = _write_script(
        tmp_path,
        f"""
        import sys
        assert sys.argv[1:4] == ["rasterize", "-font=demo.ttf", "-size=12"], sys.argv
        assert sys.argv[4:] == ["-mono"], sys.argv
        sys.stdout.buffer.write({scenario_stream!r})
        """,
    )
    font = rasterize_font(command, "demo.ttf", 12, mono=True)
    assert font.charmap == {65: 1}
    assert len(font.glyphs) == 2


def test_rasterize_font_failure(tmp_path):
    command = _write_script(
        tmp_path,
        """
        import sys
        sys.exit(3)
        """,
    )
    with pytest.raises(RasterizerError) as info:
        rasterize_font(command, "demo.ttf", 12)
    assert info.value.returncode == 3


def test_rasterize_font_missing_tool(tmp_path):
    with pytest.raises(RasterizerError):
        rasterize_font((str(tmp_path / "no-such-rasterizer"),), "demo.ttf", 12)


@pytest.mark.parametrize(
    "stream, tag",
    [
        (b"metrics 1 x 3\n", "metrics"),
        (b"char 65 4294967296\n", "char"),
        (b"char 1 0\nchar -1 0\n", "char"),
        (b"glyph 1 1 0 0 +x a 00\n", "glyph"),
    ],
)
def test_integer_errors_name_their_record(stream, tag):
    with pytest.raises(ProtocolError) as info:
        parse_glyph_stream(stream)
    assert info.value.tag == tag
