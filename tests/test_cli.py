from __future__ import annotations

import shlex
import sys
import textwrap

import numpy as np
import pytest
from PIL import Image

from glyphatlas.asset import FONT_HEADER
from glyphatlas.cli import build_options, main, parse_args, parse_texture_size
from glyphatlas.errors import ConfigError
from glyphatlas.pipeline import Options, page_path, run
from glyphatlas.texture import SizedFormat

STREAM = (
    b"metrics 10 -2 12\n"
    b"char 32 1\n"
    b"char 65 2\n"
    b"char 66 3\n"
    b"char 67 4\n"
    b"glyph 0 0 0 0 4 .notdef \n"
    b"glyph 0 0 0 0 3 space \n"
    b"glyph 4 4 0 4 5 A " + b"ff" * 16 + b"\n"
    b"glyph 3 5 0 5 4 B " + b"80" * 15 + b"\n"
    b"glyph 6 2 0 2 7 C " + b"40" * 12 + b"\n"
)


@pytest.fixture
def rasterizer(tmp_path):
    script = tmp_path / "fake_raster.py"
    script.write_text(
        textwrap.dedent(
            f"""
            import sys
            if sys.argv[1] != "rasterize":
                sys.exit(2)
            sys.stdout.buffer.write({STREAM!r})
            """
        ),
        encoding="utf-8",
    )
    return f'"{sys.executable}" "{script}"'


@pytest.mark.parametrize(
    "text, expected",
    [("64:32", (64, 32)), ("1:1", (1, 1))],
)
def test_parse_texture_size(text, expected):
    assert parse_texture_size(text) == expected


@pytest.mark.parametrize("text", ["64", "64x32", "-1:4", "a:4", "4:", "0:16", "16:0"])
def test_parse_texture_size_rejects(text):
    with pytest.raises(ConfigError):
        parse_texture_size(text)


def _options(argv):
    return build_options(parse_args(argv))


def test_build_options_defaults():
    options = _options(["--font", "a.ttf", "--size", "12", "--rasterizer", "raster -v"])
    assert options.size == 12
    assert options.rasterizer == ("raster", "-v")
    assert options.charset is None
    assert options.texture_size is None


@pytest.mark.parametrize(
    "argv, fragment",
    [
        (["--size", "12"], "--font"),
        (["--font", "a.ttf"], "--size"),
        (["--font", "a.ttf", "--size", "3"], "invalid size 3"),
        (["--font", "a.ttf", "--size", "16385"], "invalid size"),
        (["--font", "a.ttf", "--size", "12", "--texture-size", "8:8"], "--texture-size"),
        (["--font", "a.ttf", "--size", "12", "--out-data", "x.bin"], "--format"),
        (["--font", "a.ttf", "--size", "12", "--format", "i.16"], "does not support"),
        (["--font", "a.ttf", "--size", "12", "stray"], "unexpected argument"),
    ],
)
def test_build_options_rejects(argv, fragment):
    with pytest.raises(ConfigError) as info:
        _options(argv)
    assert fragment in str(info.value)


def test_main_reports_config_error(capsys):
    assert main(["--font", "a.ttf"]) == 1
    assert "Error (config)" in capsys.readouterr().err


def test_main_reports_rasterizer_failure(tmp_path, capsys):
    missing = tmp_path / "missing-tool"
    assert main(["--font", "a.ttf", "--size", "12", "--rasterizer", str(missing)]) == 1
    assert "Error (rasterize)" in capsys.readouterr().err


def test_end_to_end_single_atlas(tmp_path, rasterizer, capsys):
    charset = tmp_path / "chars.txt"
    charset.write_text("41 43\n", encoding="utf-8")
    out = tmp_path / "out"
    status = main(
        [
            "--font", "demo.ttf",
            "--size", "12",
            "--rasterizer", rasterizer,
            "--charset", str(charset),
            "--format", "i.8",
            "--out-grid", str(out / "grid.png"),
            "--out-texture", str(out / "atlas.png"),
            "--out-data", str(out / "font.bin"),
            "--out-fallback", str(out / "fallback.bin"),
            "--out-placements", str(out / "placements.txt"),
        ]
    )
    assert status == 0
    assert "[+] Texture written to" in capsys.readouterr().out

    atlas = Image.open(out / "atlas.png")
    assert atlas.width * atlas.height >= 4 * 4 + 6 * 2
    assert Image.open(out / "grid.png").size == (3 * 11 + 1, 9 + 1)

    blob = (out / "font.bin").read_bytes()
    header = FONT_HEADER.unpack_from(blob)
    assert header[0] == b"FONT"
    assert header[-3:] == (2, 3, 1)

    log = (out / "placements.txt").read_text(encoding="utf-8").splitlines()
    assert log[0].startswith("page 0 size=")
    assert "unplaced" in log[1]
    assert "chars=U+0041" in log[2]
    assert (out / "fallback.bin").read_bytes()[:4] == b"FBFT"


def test_end_to_end_pages(tmp_path, rasterizer):
    texture = tmp_path / "atlas.png"
    status = main(
        [
            "--font", "demo.ttf",
            "--size", "12",
            "--rasterizer", rasterizer,
            "--texture-size", "6:5",
            "--out-texture", str(texture),
            "--quiet",
        ]
    )
    assert status == 0
    combined = Image.open(texture)
    assert combined.width == 6
    pages = combined.height // 5
    assert combined.height == 5 * pages and pages >= 2
    for page in range(pages):
        page_image = Image.open(page_path(texture, page))
        assert page_image.size == (6, 5)
        expected = np.asarray(combined.crop((0, page * 5, 6, (page + 1) * 5)))
        assert np.array_equal(np.asarray(page_image), expected)


def test_run_rejects_inconsistent_options(tmp_path):
    options = Options(font=tmp_path / "a.ttf", size=12, out_data=tmp_path / "x.bin")
    with pytest.raises(ConfigError):
        run(options)


def test_run_without_outputs_only_parses(tmp_path, rasterizer):
    options = Options(
        font=tmp_path / "a.ttf",
        size=12,
        rasterizer=tuple(shlex.split(rasterizer)),
        texture_format=SizedFormat("i", 4),
        quiet=True,
    )
    font = run(options)
    assert len(font.glyphs) == 5
    assert all(g.placement is None for g in font.glyphs)
    assert font.textures == []
