"""
Core utilities for Ticket Printer.

This package groups helpers shared by the printing pipeline:
- config: config path resolution, JSON load/save, validated printer settings
- logging: job-id aware logging filter/formatter and root logger config

Exports are explicit to keep static analyzers (e.g., Pyright) happy.
"""

from .config import (
    ENV_OVERRIDES,
    PrinterSettings,
    default_config_path,
    get_config_path,
    get_settings,
    load_config,
    save_config,
)
from .logging import (
    JobIdFilter,
    JsonFormatter,
    configure_logging,
    current_job_id,
    job_context,
)

__all__ = [
    # config
    "ENV_OVERRIDES",
    "PrinterSettings",
    "default_config_path",
    "get_config_path",
    "get_settings",
    "load_config",
    "save_config",
    # logging
    "JobIdFilter",
    "JsonFormatter",
    "configure_logging",
    "current_job_id",
    "job_context",
]
