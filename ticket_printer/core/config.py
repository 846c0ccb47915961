"""
Config utilities for Ticket Printer.

Responsibilities:
- Resolve the config path with environment and XDG support
- Provide JSON load/save helpers for the service config
- Merge defaults, the config file and environment overrides into settings
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "printer": "",
    "host": "127.0.0.1",
    "port": 3003,
    "line_width": 32,
    "backend": "cups",
    "max_queue_depth": 0,
    "print_timeout_seconds": 0,
    "font_size": 12,
    "render_timeout_seconds": 30,
    # ESC/POS connection (backend == "escpos")
    "printer_type": "usb",
    "usb_vendor_id": "0x04b8",
    "usb_product_id": "0x0e28",
    "network_ip": "",
    "network_port": 9100,
    "serial_port": "",
    "serial_baudrate": 19200,
    "printer_profile": None,
    "receipt_width": 576,
    "cut_feed_lines": 2,
}

# env var -> (settings key, converter)
ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "TICKETPRINTER_PRINTER": ("printer", str),
    "TICKETPRINTER_HOST": ("host", str),
    "TICKETPRINTER_PORT": ("port", int),
    "TICKETPRINTER_LINE_WIDTH": ("line_width", int),
    "TICKETPRINTER_BACKEND": ("backend", str),
}


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
    cfg_path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = cfg_path.with_suffix(cfg_path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, cfg_path)


def _apply_env_overrides(settings: dict[str, Any]) -> None:
    for env_name, (key, convert) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            settings[key] = convert(raw)
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", env_name, raw)


def load_settings(path: Optional[str] = None, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """
    Return effective settings: DEFAULTS <- config file <- environment <- overrides.

    A missing file is normal. An unreadable or invalid file is logged and
    ignored so the service still starts with safe defaults.
    """
    settings = dict(DEFAULTS)
    try:
        file_cfg = load_config(path)
    except (OSError, ValueError) as e:
        logger.warning("Could not load config file, using defaults: %s", e)
        file_cfg = None
    if file_cfg:
        settings.update(file_cfg)
        logger.info("Loaded config from %s", path or get_config_path())

    _apply_env_overrides(settings)
    if overrides:
        settings.update(overrides)

    for key in ("port", "line_width", "max_queue_depth", "font_size"):
        try:
            settings[key] = int(settings[key])
        except (TypeError, ValueError):
            logger.warning("Invalid %s=%r in config; using default %r", key, settings[key], DEFAULTS[key])
            settings[key] = DEFAULTS[key]
    if settings["line_width"] <= 0:
        settings["line_width"] = DEFAULTS["line_width"]
    settings["printer"] = str(settings.get("printer") or "").strip()
    settings["backend"] = str(settings.get("backend") or DEFAULTS["backend"]).strip().lower()
    return settings


__all__ = [
    "DEFAULTS",
    "default_config_path",
    "get_config_path",
    "load_config",
    "load_settings",
    "save_config",
]
