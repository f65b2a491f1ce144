"""
Diagnostic test page rendering for Ticket Printer.

Produces a grayscale Pillow image exercising what usually goes wrong when a new
printer model or profile is configured:
- a border touching every edge (width and alignment)
- one-pixel stripes (bit order within each byte)
- a checkerboard (line length and row order)
- a grey ramp (threshold choice and polarity)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import datetime
from typing import List, Optional

from PIL import Image, ImageDraw, ImageFont


def _measure_text(font: ImageFont.FreeTypeFont | ImageFont.ImageFont, text: str) -> tuple[int, int]:
    """
    Text measurement across Pillow font types.
    Tries getbbox() first, then getmask() as fallback.
    Returns (width, height).
    """
    try:
        bbox = font.getbbox(text)
        return int(bbox[2] - bbox[0]), int(bbox[3] - bbox[1])
    except AttributeError:
        mask = font.getmask(text)
        return int(mask.size[0]), int(mask.size[1])


def resolve_font(
    config: Optional[Mapping[str, object]],
    font_size: int,
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """
    Resolve a TTF font to use for captions, preferring:
    1) config["font_path"] when provided
    2) TICKETPRINTER_FONT_PATH environment variable
    3) A list of common system font paths (DejaVu, FreeSans, Liberation)
    Falls back to PIL's default font if none are found.
    """
    candidates: List[str] = []
    if config:
        val = config.get("font_path")
        if isinstance(val, str) and val.strip():
            candidates.append(val.strip())

    env_path = os.environ.get("TICKETPRINTER_FONT_PATH")
    if env_path and env_path not in candidates:
        candidates.append(env_path)

    for pth in (
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ):
        if pth not in candidates:
            candidates.append(pth)

    for pth in candidates:
        try:
            return ImageFont.truetype(pth, font_size)
        except OSError:
            continue
    return ImageFont.load_default()


def render_test_page(
    width: int,
    title: str = "Ticket Printer Test Page",
    config: Optional[Mapping[str, object]] = None,
) -> Image.Image:
    """
    Render the diagnostic page at exactly `width` dots wide (mode 'L', 0=black).
    """
    if width < 16:
        raise ValueError("test page needs at least 16 dots of width")

    font = resolve_font(config, max(14, width // 20))
    stamp = datetime.now().strftime("%Y-%m-%d %H:%M")
    lines = [title, stamp]
    text_h = sum(_measure_text(font, ln)[1] + 6 for ln in lines)

    block = 8
    stripes_h = 24
    checker_h = block * 4
    ramp_h = 32
    margin = 8
    height = margin + text_h + margin + stripes_h + margin + checker_h + margin + ramp_h + margin

    img = Image.new("L", (width, height), 255)
    d = ImageDraw.Draw(img)
    d.rectangle([0, 0, width - 1, height - 1], outline=0, width=1)

    y = margin
    for ln in lines:
        tw, th = _measure_text(font, ln)
        d.text(((width - tw) // 2, y), ln, fill=0, font=font)
        y += th + 6
    y += margin

    # 1px vertical stripes: alternating bits, 0xAA per byte once packed
    for x in range(0, width, 2):
        d.line([(x, y), (x, y + stripes_h - 1)], fill=0)
    y += stripes_h + margin

    for row in range(checker_h // block):
        for col in range((width + block - 1) // block):
            if (row + col) % 2 == 0:
                x0 = col * block
                d.rectangle([x0, y + row * block, min(x0 + block, width) - 1, y + (row + 1) * block - 1], fill=0)
    y += checker_h + margin

    for x in range(width):
        level = int(255 * x / (width - 1))
        d.line([(x, y), (x, y + ramp_h - 1)], fill=level)

    return img


__all__ = ["render_test_page", "resolve_font"]
