"""
Config utilities for Ticket Printer.

Responsibilities:
- Resolve the config path with environment and XDG support
- Provide JSON load/save helpers for the printer config
- Merge defaults, the config file, and environment overrides into validated settings
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def default_config_path() -> str:
    """
    Resolve the default config path using:
    1) $XDG_CONFIG_HOME/ticketprinter/config.json
    2) ~/.config/ticketprinter/config.json
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return str(Path(xdg) / "ticketprinter" / "config.json")
    return str(Path.home() / ".config" / "ticketprinter" / "config.json")


def get_config_path() -> str:
    """
    Return the config path honoring TICKETPRINTER_CONFIG_PATH override.
    """
    return os.environ.get("TICKETPRINTER_CONFIG_PATH", default_config_path())


def load_config(path: Optional[str] = None) -> Optional[dict[str, Any]]:
    """
    Load the JSON config if it exists; return None if missing.

    Raises:
        json.JSONDecodeError if the file exists but contains invalid JSON.
        OSError for I/O errors other than missing file.
    """
    cfg_path = Path(path or get_config_path())
    if not cfg_path.exists():
        return None
    with cfg_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def save_config(data: dict[str, Any], path: Optional[str] = None) -> None:
    """
    Save the JSON config, creating parent directories as needed.

    Writes atomically by using a temporary file and os.replace().
    Raises OSError on I/O failures.
    """
    cfg_path = Path(path or get_config_path())
    cfg_dir = cfg_path.parent
    cfg_dir.mkdir(parents=True, exist_ok=True)

    tmp_path = cfg_path.with_suffix(cfg_path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, cfg_path)


class PrinterSettings(BaseModel):
    """Effective printer settings after defaults, file, and environment are merged."""

    printer_name: Optional[str] = Field(default=None, description="CUPS queue name passed to `lp -d`")
    device_path: Optional[str] = Field(default=None, description="Raw device node, e.g. /dev/usb/lp0")
    printer_model: str = Field(default="escpos", description="Profile name from the opcode table")
    profiles_path: Optional[str] = Field(default=None, description="JSON file with custom printer profiles")
    threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    invert: bool = False
    align: Literal["left", "center", "right"] = "center"
    feed_lines: int = Field(default=3, ge=0, le=255)
    cut: bool = True
    retry_attempts: int = Field(default=3, ge=1, le=20)
    retry_delay_seconds: float = Field(default=2.0, ge=0.0, le=60.0)
    queue_command: List[str] = Field(default_factory=lambda: ["lp", "-o", "raw"])
    queue_timeout_seconds: float = Field(default=30.0, gt=0.0)

    @field_validator("printer_name", "device_path", "profiles_path")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("queue_command")
    @classmethod
    def _non_empty_command(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("queue_command must not be empty")
        return v


# Environment variable -> settings key
ENV_OVERRIDES = {
    "PRINTER_NAME": "printer_name",
    "TICKETPRINTER_DEVICE": "device_path",
    "TICKETPRINTER_MODEL": "printer_model",
    "TICKETPRINTER_PROFILES_PATH": "profiles_path",
}


def get_settings(config: Optional[Mapping[str, Any]] = None) -> PrinterSettings:
    """
    Build PrinterSettings from a config mapping (defaults to the saved config file)
    with environment variables taking precedence.

    Raises:
        pydantic.ValidationError for out-of-range or malformed values.
    """
    data: dict[str, Any] = dict(config) if config is not None else dict(load_config() or {})
    for env_name, key in ENV_OVERRIDES.items():
        val = os.environ.get(env_name)
        if val:
            data[key] = val
    return PrinterSettings.model_validate(data)


__all__ = [
    "ENV_OVERRIDES",
    "PrinterSettings",
    "default_config_path",
    "get_config_path",
    "get_settings",
    "load_config",
    "save_config",
]
