"""
Raster encoding for thermal printers.

Packs a Bitmap into the line-oriented raster format: a header declaring the
density mode and bytes-per-line, followed by one fixed-size line per pixel row.
Bit 7 of each byte is the leftmost pixel of its group of eight; unused bits in
the last byte of a line are always 0 (white).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .bilevel import Bitmap
from .errors import EncodeError

MAX_BYTES_PER_LINE = 0xFFFF


def bytes_per_line(width: int) -> int:
    return (width + 7) // 8


@dataclass(frozen=True)
class RasterHeader:
    density: int
    bytes_per_line: int
    height: int

    def encode(self) -> bytes:
        """Density selector, then bytes-per-line low byte, then high byte."""
        return bytes([self.density]) + self.bytes_per_line.to_bytes(2, "little")


def _pack_row(row: bytes, nbytes: int) -> bytes:
    out = bytearray(nbytes)
    for x, value in enumerate(row):
        if value:
            out[x >> 3] |= 0x80 >> (x & 7)
    return bytes(out)


def encode(bitmap: Bitmap, density: int = 0, max_width: Optional[int] = None) -> Tuple[RasterHeader, List[bytes]]:
    """
    Encode a bitmap into (header, lines).

    Raises:
        EncodeError if the density selector does not fit one byte, the bitmap is
        wider than `max_width` dots, or the line width exceeds 16 bits.
    """
    if not 0 <= density <= 0xFF:
        raise EncodeError(f"density selector out of range: {density}")
    if max_width is not None and bitmap.width > max_width:
        raise EncodeError(f"bitmap width {bitmap.width} exceeds printer width {max_width}")

    nbytes = bytes_per_line(bitmap.width) if bitmap.height else 0
    if nbytes > MAX_BYTES_PER_LINE:
        raise EncodeError(f"line of {nbytes} bytes cannot be addressed")

    lines = [_pack_row(row, nbytes) for row in bitmap.rows()] if nbytes else []
    return RasterHeader(density=density, bytes_per_line=nbytes, height=len(lines)), lines


def decode_lines(lines: Sequence[bytes], width: int, height: Optional[int] = None) -> Bitmap:
    """
    Unpack raster lines back into a Bitmap of the given pixel width.

    Used to verify encodings and to preview jobs; trailing padding bits are ignored.
    Degenerate bitmaps encode to no lines at all, so pass `height` to restore a
    zero-width bitmap's row count; otherwise it is the number of lines.
    """
    if not lines and height:
        if width:
            raise EncodeError(f"no raster lines for a {width}x{height} bitmap")
        return Bitmap(0, height, b"")
    if height is not None and height != len(lines):
        raise EncodeError(f"expected {height} raster lines, got {len(lines)}")
    nbytes = bytes_per_line(width)
    pixels = bytearray()
    for y, line in enumerate(lines):
        if len(line) != nbytes:
            raise EncodeError(f"line {y} has {len(line)} bytes, expected {nbytes}")
        for x in range(width):
            pixels.append(1 if line[x >> 3] & (0x80 >> (x & 7)) else 0)
    return Bitmap(width, len(lines) if width else 0, bytes(pixels))


__all__ = ["MAX_BYTES_PER_LINE", "RasterHeader", "bytes_per_line", "decode_lines", "encode"]
