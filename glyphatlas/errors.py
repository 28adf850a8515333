from __future__ import annotations


class GlyphAtlasError(RuntimeError):
    """Base class for every fatal error raised while building an atlas."""

    phase = "run"


class ProtocolError(GlyphAtlasError):
    """Malformed record in the rasterizer's glyph stream."""

    phase = "parse"

    def __init__(self, line: int, message: str, *, tag: str | None = None) -> None:
        super().__init__(f"line {line}: {message}")
        self.line = line
        self.tag = tag


class ConfigError(GlyphAtlasError):
    phase = "config"


class RasterizerError(GlyphAtlasError):
    phase = "rasterize"

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class QuantizeError(GlyphAtlasError):
    phase = "quantize"


class PackingError(GlyphAtlasError):
    phase = "pack"


class AssetError(GlyphAtlasError):
    phase = "serialize"


class OutputError(GlyphAtlasError):
    phase = "write"
