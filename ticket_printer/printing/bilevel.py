"""
Bi-level conversion for thermal printing.

Turns any image Pillow can decode into a 1-bit Bitmap using a luminance
threshold. The invert flag flips the black/white decision itself, for printers
that treat a set bit as "no dot".
"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass
from typing import Iterator, Union

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError

ImageSource = Union[Image.Image, str, "os.PathLike[str]", bytes]

DEFAULT_THRESHOLD = 0.5

_PREMULTIPLIED = {"La": "LA", "RGBa": "RGBA"}


@dataclass(frozen=True)
class Bitmap:
    """
    Row-major W×H grid of black/white pixels.

    `pixels` holds one byte per pixel: 1 for black (dot), 0 for white.
    """

    width: int
    height: int
    pixels: bytes

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("bitmap dimensions must be non-negative")
        if len(self.pixels) != self.width * self.height:
            raise ValueError(f"expected {self.width * self.height} pixels, got {len(self.pixels)}")

    def is_black(self, x: int, y: int) -> bool:
        return self.pixels[y * self.width + x] == 1

    def row(self, y: int) -> bytes:
        start = y * self.width
        return self.pixels[start : start + self.width]

    def rows(self) -> Iterator[bytes]:
        """Yield rows top to bottom."""
        for y in range(self.height):
            yield self.row(y)

    @classmethod
    def from_rows(cls, rows: list[list[bool]]) -> "Bitmap":
        height = len(rows)
        width = len(rows[0]) if rows else 0
        flat = bytearray()
        for r in rows:
            if len(r) != width:
                raise ValueError("all rows must have the same width")
            flat.extend(1 if v else 0 for v in r)
        return cls(width, height, bytes(flat))


def load_image(source: ImageSource) -> Image.Image:
    """
    Return a decoded Pillow image for a Pillow image, a path, or encoded bytes.

    Raises:
        DecodeError if the data cannot be identified or read as an image.
    """
    if isinstance(source, Image.Image):
        return source
    try:
        if isinstance(source, (bytes, bytearray)):
            img = Image.open(io.BytesIO(source))
        else:
            img = Image.open(os.fspath(source))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"cannot decode image: {e}") from e
    return img


def _to_luminance(img: Image.Image) -> Image.Image:
    """
    Grayscale ('L') view of the image, with transparency flattened over white.

    Integer modes ('I;16*', 'I') are read as 16-bit samples (0..65535) and float
    mode 'F' as 0.0..1.0; both are scaled to 0..255 rather than clipped.
    """
    if img.mode.startswith("I;16") or img.mode == "I":
        if img.mode != "I":
            img = img.convert("I")
        return img.point(lambda v: v * (1 / 257)).convert("L")
    if img.mode == "F":
        return img.point(lambda v: v * 255).convert("L")
    if img.mode in _PREMULTIPLIED:
        img = img.convert(_PREMULTIPLIED[img.mode])
    if img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        img = Image.alpha_composite(background, rgba)
    return img.convert("L")


def convert(source: ImageSource, threshold: float = DEFAULT_THRESHOLD, invert: bool = False) -> Bitmap:
    """
    Convert an image to a Bitmap.

    A pixel is black when its normalized luminance is below `threshold`; with
    `invert` set it is black when luminance is at or above `threshold`.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    gray = _to_luminance(load_image(source))
    table = []
    for level in range(256):
        dark = (level / 255.0) < threshold
        table.append(1 if dark != invert else 0)
    mask = gray.point(table)
    return Bitmap(gray.width, gray.height, mask.tobytes())


__all__ = ["DEFAULT_THRESHOLD", "Bitmap", "ImageSource", "convert", "load_image"]
