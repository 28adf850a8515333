"""
Sized texture formats of the target GPU, plus the quantizer that squeezes
glyph bitmaps into them and the encoder that emits raw texel data.

Bitmaps stay 8-bit RGBA images after quantization; only the set of values
each channel can take shrinks, so packing and previews keep working on
the same images. Images carry straight alpha while texels are computed
from premultiplied values, so a glyph of coverage y encodes as (y, y, y, y).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
from PIL import Image

from .errors import ConfigError, QuantizeError
from .fonts import Glyph

# Hardware format and size codes, as stored in the font asset header.
FORMAT_CODES: Dict[str, int] = {"rgba": 0, "ia": 3, "i": 4}
SIZE_CODES: Dict[int, int] = {4: 0, 8: 1, 16: 2, 32: 3}

# Bits per channel: (color/intensity, alpha). Alpha of 0 means alpha follows intensity.
CHANNEL_BITS: Dict[Tuple[str, int], Tuple[int, int]] = {
    ("rgba", 16): (5, 1),
    ("rgba", 32): (8, 8),
    ("ia", 4): (3, 1),
    ("ia", 8): (4, 4),
    ("ia", 16): (8, 8),
    ("i", 4): (4, 0),
    ("i", 8): (8, 0),
}

DITHER_MODES = ("none", "ordered")

_BAYER4 = (
    np.array(
        [
            [0, 8, 2, 10],
            [12, 4, 14, 6],
            [3, 11, 1, 9],
            [15, 7, 13, 5],
        ],
        dtype=np.float64,
    )
    + 0.5
) / 16.0


@dataclass(frozen=True)
class SizedFormat:
    format: str
    size: int

    @classmethod
    def parse(cls, text: str) -> "SizedFormat":
        name, sep, size_text = text.partition(".")
        if not sep:
            raise ConfigError(f"invalid texture format {text!r}, expected FORMAT.SIZE")
        try:
            size = int(size_text)
        except ValueError:
            raise ConfigError(f"invalid texture format size {size_text!r}") from None
        fmt = cls(name.lower(), size)
        if fmt.format not in FORMAT_CODES:
            raise ConfigError(f"unknown texture format {name!r}")
        if (fmt.format, fmt.size) not in CHANNEL_BITS:
            raise ConfigError(f"texture format {fmt} does not support size {size}")
        return fmt

    @property
    def bits(self) -> Tuple[int, int]:
        try:
            return CHANNEL_BITS[(self.format, self.size)]
        except KeyError:
            raise QuantizeError(f"unsupported texture format {self}") from None

    def __str__(self) -> str:
        return f"{self.format}.{self.size}"


def _thresholds(shape: Tuple[int, int], dither: str) -> np.ndarray | float:
    if dither == "none":
        return 0.5
    if dither == "ordered":
        height, width = shape
        reps = ((height + 3) // 4, (width + 3) // 4)
        return np.tile(_BAYER4, reps)[:height, :width]
    raise QuantizeError(f"unknown dither mode {dither!r}")


def _levels(values: np.ndarray, bits: int, threshold: np.ndarray | float) -> np.ndarray:
    top = (1 << bits) - 1
    levels = np.floor(values.astype(np.float64) * top / 255.0 + threshold)
    return np.clip(levels, 0, top).astype(np.uint32)


def _expand(levels: np.ndarray, bits: int) -> np.ndarray:
    top = (1 << bits) - 1
    return ((levels * 255 + top // 2) // top).astype(np.uint8)


def _intensity(premultiplied: np.ndarray) -> np.ndarray:
    rgb = premultiplied[:, :, :3].astype(np.uint32)
    return ((rgb.sum(axis=2) + 1) // 3).astype(np.uint8)


def premultiply(image: Image.Image) -> np.ndarray:
    """Pixels of ``image`` as premultiplied RGBA, the form texels are stored in."""

    pixels = np.asarray(image.convert("RGBA"), dtype=np.uint32)
    alpha = pixels[:, :, 3:4]
    rgb = (pixels[:, :, :3] * alpha + 127) // 255
    return np.concatenate([rgb, alpha], axis=2).astype(np.uint8)


def _unpremultiply(rgb: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    rgb = rgb.astype(np.uint32)
    a = alpha.astype(np.uint32)[:, :, np.newaxis]
    straight = (rgb * 255 + a // 2) // np.maximum(a, 1)
    straight = np.where(a > 0, np.minimum(straight, 255), 0)
    return straight.astype(np.uint8)


def texel_levels(image: Image.Image, fmt: SizedFormat, dither: str = "none") -> Dict[str, np.ndarray]:
    """Quantized premultiplied channel levels of ``image``, keyed ``r/g/b/a`` or ``i/a``."""

    pixels = premultiply(image)
    threshold = _thresholds(pixels.shape[:2], dither)
    color_bits, alpha_bits = fmt.bits
    if fmt.format == "rgba":
        return {
            "r": _levels(pixels[:, :, 0], color_bits, threshold),
            "g": _levels(pixels[:, :, 1], color_bits, threshold),
            "b": _levels(pixels[:, :, 2], color_bits, threshold),
            "a": _levels(pixels[:, :, 3], alpha_bits, threshold),
        }
    intensity = _levels(_intensity(pixels), color_bits, threshold)
    if alpha_bits == 0:
        return {"i": intensity}
    return {"i": intensity, "a": _levels(pixels[:, :, 3], alpha_bits, threshold)}


def quantize_image(image: Image.Image, fmt: SizedFormat, dither: str = "none") -> Image.Image:
    color_bits, alpha_bits = fmt.bits
    levels = texel_levels(image, fmt, dither)
    if fmt.format == "rgba":
        rgb = np.stack([_expand(levels[key], color_bits) for key in "rgb"], axis=2)
        alpha = _expand(levels["a"], alpha_bits)
    else:
        gray = _expand(levels["i"], color_bits)
        alpha = _expand(levels["a"], alpha_bits) if "a" in levels else gray
        rgb = np.stack([gray, gray, gray], axis=2)
    straight = _unpremultiply(rgb, alpha)
    return Image.fromarray(np.ascontiguousarray(np.concatenate([straight, alpha[:, :, np.newaxis]], axis=2)))


def quantize_glyph(glyph: Glyph, fmt: SizedFormat, dither: str = "none") -> None:
    """Rewrite the glyph bitmap in place; glyphs without a bitmap are left alone."""

    if glyph.bitmap is None or not glyph.has_bitmap:
        return
    try:
        glyph.bitmap = quantize_image(glyph.bitmap, fmt, dither)
    except QuantizeError as exc:
        raise QuantizeError(f"glyph {glyph.name!r}: {exc}") from exc


def _pack_nibbles(values: np.ndarray) -> bytes:
    flat = values.reshape(-1).astype(np.uint8)
    if flat.size % 2:
        flat = np.append(flat, np.uint8(0))
    return ((flat[0::2] << 4) | flat[1::2]).astype(np.uint8).tobytes()


def encode_texels(image: Image.Image, fmt: SizedFormat) -> bytes:
    """Encode ``image`` as premultiplied big-endian texels, row-major, 4-bit texels high nibble first."""

    key = (fmt.format, fmt.size)
    if key == ("rgba", 32):
        return premultiply(image).tobytes()
    levels = texel_levels(image, fmt)
    if key == ("rgba", 16):
        packed = (levels["r"] << 11) | (levels["g"] << 6) | (levels["b"] << 1) | levels["a"]
        return packed.astype(">u2").tobytes()
    if key == ("ia", 16):
        return np.stack([levels["i"], levels["a"]], axis=2).astype(np.uint8).tobytes()
    if key == ("ia", 8):
        return ((levels["i"] << 4) | levels["a"]).astype(np.uint8).tobytes()
    if key == ("ia", 4):
        return _pack_nibbles((levels["i"] << 1) | levels["a"])
    if key == ("i", 8):
        return levels["i"].astype(np.uint8).tobytes()
    if key == ("i", 4):
        return _pack_nibbles(levels["i"])
    raise QuantizeError(f"unsupported texture format {fmt}")
