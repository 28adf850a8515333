"""
Glyph atlas building blocks: rasterizer stream parsing, subsetting, atlas
packing and asset writing.
"""

from .asset import make_fallback_font, make_font_asset
from .atlas import pack
from .charset import parse_charset, read_charset
from .errors import (
    AssetError,
    ConfigError,
    GlyphAtlasError,
    OutputError,
    PackingError,
    ProtocolError,
    QuantizeError,
    RasterizerError,
)
from .fonts import MAX_GLYPH_SIZE, Font, Glyph, Metrics, Placement, format_glyph_stream
from .grid import render_grid
from .packing import PackingOracle, ShelfPacker
from .stream import parse_glyph_stream, rasterize_font
from .subset import subset
from .texture import SizedFormat, encode_texels, quantize_glyph

__all__ = [
    "make_fallback_font",
    "make_font_asset",
    "pack",
    "parse_charset",
    "read_charset",
    "AssetError",
    "ConfigError",
    "GlyphAtlasError",
    "OutputError",
    "PackingError",
    "ProtocolError",
    "QuantizeError",
    "RasterizerError",
    "MAX_GLYPH_SIZE",
    "Font",
    "Glyph",
    "Metrics",
    "Placement",
    "format_glyph_stream",
    "render_grid",
    "PackingOracle",
    "ShelfPacker",
    "parse_glyph_stream",
    "rasterize_font",
    "subset",
    "SizedFormat",
    "encode_texels",
    "quantize_glyph",
]
