"""
Printer model profiles: the command opcode table as data.

Every protocol byte the framer emits comes from a PrinterProfile, so a new
printer model needs a new profile entry (built in here, or loaded from JSON),
never new framing code.

Byte fields accept raw bytes or hex strings such as "1b 40", which keeps
profiles readable in JSON files.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Optional

from escpos.constants import CTL_LF, ESC, GS, HW_INIT, PAPER_FULL_CUT
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

DEFAULT_MODEL = "escpos"

_BYTE_FIELDS = (
    "initialize",
    "align_left",
    "align_center",
    "align_right",
    "raster_command",
    "line_feed",
    "cut",
    "end",
)


class PrinterProfile(BaseModel):
    """Command set and geometry of one printer model."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Model identifier, e.g. 'escpos'")
    initialize: bytes = Field(description="Sent first in every job")
    align_left: bytes
    align_center: bytes
    align_right: bytes
    raster_command: bytes = Field(description="Opcode preceding the raster header")
    density: int = Field(default=0, ge=0, le=255, description="Density-mode selector byte")
    raster_includes_height: bool = Field(
        default=True,
        description="Append the band's row count (16-bit little-endian) after the header",
    )
    band_height: Optional[int] = Field(
        default=None,
        ge=1,
        le=0xFFFF,
        description="Maximum rows per raster command; None sends the image as one block",
    )
    line_feed: bytes
    cut: bytes
    end: bytes = Field(description="Sent last in every job")
    max_width: int = Field(default=512, ge=1, description="Addressable width in dots")

    @field_validator(*_BYTE_FIELDS, mode="before")
    @classmethod
    def _parse_hex(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return bytes.fromhex(v)
            except ValueError as e:
                raise ValueError(f"invalid hex byte string: {v!r}") from e
        if isinstance(v, list):
            return bytes(v)
        return v

    @field_serializer(*_BYTE_FIELDS, when_used="json")
    def _dump_hex(self, v: bytes) -> str:
        return v.hex(" ")

    def align(self, value: str) -> bytes:
        """Alignment sequence for 'left', 'center' or 'right'."""
        try:
            return {"left": self.align_left, "center": self.align_center, "right": self.align_right}[value]
        except KeyError:
            raise ValueError(f"unknown alignment: {value}") from None


_ESCPOS_COMMANDS: Dict[str, Any] = {
    "initialize": HW_INIT,
    "align_left": ESC + b"a\x00",
    "align_center": ESC + b"a\x01",
    "align_right": ESC + b"a\x02",
    "raster_command": GS + b"v0",
    "line_feed": CTL_LF,
    "cut": PAPER_FULL_CUT,
    "end": HW_INIT,
}

BUILTIN_PROFILES: Dict[str, PrinterProfile] = {
    # 80mm ESC/POS receipt printers; GS v 0 blocks are capped at 255 rows
    "escpos": PrinterProfile(name="escpos", band_height=255, max_width=512, **_ESCPOS_COMMANDS),
    "escpos-58mm": PrinterProfile(name="escpos-58mm", band_height=255, max_width=384, **_ESCPOS_COMMANDS),
    # Firmware that stalls on large raster blocks: one GS v 0 per row
    "escpos-line": PrinterProfile(name="escpos-line", band_height=1, max_width=512, **_ESCPOS_COMMANDS),
}


def load_profiles(path: str | Path) -> Dict[str, PrinterProfile]:
    """
    Load custom profiles from a JSON object mapping model name -> profile fields.

    A profile may set "base" to a known model name and override only some fields.

    Raises:
        json.JSONDecodeError for malformed JSON, pydantic.ValidationError for bad fields,
        KeyError for an unknown base model, OSError for I/O errors.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, Mapping):
        raise ValueError("profiles file must contain a JSON object")

    loaded: Dict[str, PrinterProfile] = {}
    for name, fields in raw.items():
        data = dict(fields)
        base_name = data.pop("base", None)
        if base_name is not None:
            base = get_profile(base_name, loaded)
            merged = base.model_dump()
            merged.update(data)
            data = merged
        data["name"] = name
        loaded[name] = PrinterProfile.model_validate(data)
    return loaded


def get_profile(name: Optional[str] = None, extra: Optional[Mapping[str, PrinterProfile]] = None) -> PrinterProfile:
    """
    Resolve a profile by name, preferring `extra` over the built-in table.

    Raises:
        KeyError naming the known models when `name` is not found.
    """
    key = name or DEFAULT_MODEL
    if extra and key in extra:
        return extra[key]
    if key in BUILTIN_PROFILES:
        return BUILTIN_PROFILES[key]
    known = sorted(set(BUILTIN_PROFILES) | set(extra or {}))
    raise KeyError(f"unknown printer model {key!r}; known models: {', '.join(known)}")


__all__ = ["BUILTIN_PROFILES", "DEFAULT_MODEL", "PrinterProfile", "get_profile", "load_profiles"]
