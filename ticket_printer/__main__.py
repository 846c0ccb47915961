"""
Command line entry point: run the Ticket Printer HTTP service.

    python -m ticket_printer --port 3003 --printer ImpresoraTicket
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import Any, Dict, List, Optional

from ticket_printer import create_app
from ticket_printer.core.config import get_config_path, load_config, save_config

logger = logging.getLogger("ticket_printer")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Local HTTP print service for 80mm thermal printers")
    parser.add_argument("--config", help="Path to config.json (overrides TICKETPRINTER_CONFIG_PATH)")
    parser.add_argument("--host", help="Address to listen on (default 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port to listen on (default 3003)")
    parser.add_argument("--printer", help="Default printer name")
    parser.add_argument("--backend", choices=["cups", "escpos"], help="Print backend")
    parser.add_argument("--line-width", type=int, dest="line_width", help="Characters per line in text mode")
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Write the given options into the config file and exit",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.config:
        os.environ["TICKETPRINTER_CONFIG_PATH"] = args.config

    overrides: Dict[str, Any] = {
        key: getattr(args, key)
        for key in ("host", "port", "printer", "backend", "line_width")
        if getattr(args, key) is not None
    }
    if args.save_config:
        path = get_config_path()
        data = load_config(path) or {}
        data.update(overrides)
        save_config(data, path)
        print(f"Saved config to {path}")
        return 0

    app = create_app(settings_overrides=overrides)
    settings = app.config["TICKETPRINTER_SETTINGS"]
    service = app.extensions["print_service"]

    host, port = settings["host"], settings["port"]
    logger.info("Ticket Printer listening on http://%s:%s", host, port)
    logger.info("Default printer: %s", settings["printer"] or "system default")
    logger.info("Endpoints: POST /print, POST /print-text, POST /test-print, GET /printers, GET /health")
    try:
        for printer in service.executor.list_printers():
            logger.info("Detected printer: %s (%s)%s", printer.name, printer.status, " [default]" if printer.is_default else "")
    except Exception as e:
        logger.warning("Could not list printers at startup: %s", e)

    try:
        app.run(host=host, port=port, debug=False, threaded=True)
    finally:
        service.shutdown(timeout=5)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
