"""
Command framing: wraps encoded raster lines in a printer profile's control sequences.

The framer only concatenates already-encoded bytes with protocol bytes taken
from a PrinterProfile; it never looks at pixel values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .errors import EncodeError
from .profiles import PrinterProfile
from .raster import RasterHeader


class FrameOptions(BaseModel):
    """Per-job framing options."""

    model_config = ConfigDict(frozen=True)

    align: Literal["left", "center", "right"] = Field(default="left", description="Horizontal placement of the image")
    feed_lines: int = Field(default=3, ge=0, le=255, description="Blank lines fed after the image")
    cut: bool = Field(default=True, description="Cut the paper after the job")


@dataclass(frozen=True)
class PrintJob:
    """A complete, self-terminating byte stream for one printed image."""

    data: bytes
    width: int
    height: int
    profile: str

    def __len__(self) -> int:
        return len(self.data)


def _bands(lines: Sequence[bytes], band_height: Optional[int]):
    if band_height is None:
        yield lines
        return
    for start in range(0, len(lines), band_height):
        yield lines[start : start + band_height]


def frame(
    header: RasterHeader,
    lines: Sequence[bytes],
    options: FrameOptions,
    profile: PrinterProfile,
    *,
    width: Optional[int] = None,
) -> PrintJob:
    """
    Build a PrintJob from an encoded raster.

    Order: initialize, alignment (unless left), raster command + header + lines
    (repeated per band when the profile caps rows per command), line feeds,
    optional cut, end sequence.

    Raises:
        EncodeError if the header disagrees with the line set.
    """
    for y, line in enumerate(lines):
        if len(line) != header.bytes_per_line:
            raise EncodeError(f"raster line {y} has {len(line)} bytes, header declares {header.bytes_per_line}")
    if header.height != len(lines):
        raise EncodeError(f"header declares {header.height} rows, got {len(lines)}")

    out = bytearray(profile.initialize)
    if options.align != "left":
        out += profile.align(options.align)

    if lines:
        prefix = profile.raster_command + header.encode()
        for band in _bands(lines, profile.band_height):
            out += prefix
            if profile.raster_includes_height:
                out += len(band).to_bytes(2, "little")
            for line in band:
                out += line

    out += profile.line_feed * options.feed_lines
    if options.cut:
        out += profile.cut
    out += profile.end

    if width is None:
        width = header.bytes_per_line * 8
    return PrintJob(data=bytes(out), width=width, height=len(lines), profile=profile.name)


__all__ = ["FrameOptions", "PrintJob", "frame"]
