"""
Core utilities for Ticket Printer.

- config: config path resolution, JSON load/save, effective settings
- logging: request ID aware logging filters/formatters and root logger config
"""

from .config import (
    DEFAULTS,
    default_config_path,
    get_config_path,
    load_config,
    load_settings,
    save_config,
)
from .logging import (
    JsonFormatter,
    RequestIdFilter,
    configure_logging,
)

__all__ = [
    # config
    "DEFAULTS",
    "default_config_path",
    "get_config_path",
    "load_config",
    "load_settings",
    "save_config",
    # logging
    "configure_logging",
    "RequestIdFilter",
    "JsonFormatter",
]
