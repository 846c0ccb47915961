"""
Ticket Printer package

Local HTTP print service for 80mm thermal receipt printers. This module
provides the application factory:
- Configures logging (ticket_printer.core.logging)
- Creates a Flask app with CORS enabled for browser-based POS frontends
- Creates one PrintService per app and starts its worker
- Registers the print and health blueprints
"""

from __future__ import annotations

import os
import uuid
from typing import Any, Optional

from flask import Flask, g, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

__version__ = "1.0.0"


def _set_request_id() -> None:
    """
    Assign a request ID for logging if not set by a filter elsewhere.
    """
    g.request_id = getattr(g, "request_id", uuid.uuid4().hex)


def _json_http_error(e: HTTPException):
    return jsonify({"error": e.name, "details": e.description}), e.code


def create_app(
    config_overrides: Optional[dict] = None,
    settings_overrides: Optional[dict[str, Any]] = None,
    print_service=None,
    start_service: bool = True,
) -> Flask:
    """
    Application factory.

    Parameters:
    - config_overrides: values to inject into app.config after defaults
    - settings_overrides: values merged over the loaded service settings
      (printer, port, line_width, backend, ...)
    - print_service: an existing PrintService to use instead of building one
    - start_service: if True, starts the print worker (and pre-creates the
      render surface)

    Returns:
    - Flask app instance
    """
    from ticket_printer.core.config import load_settings
    from ticket_printer.core.logging import configure_logging
    from ticket_printer.printing import PrintService
    from ticket_printer.web import api_bp, health_bp

    configure_logging()
    settings = load_settings(overrides=settings_overrides)

    app = Flask("ticket_printer")
    app.config["MAX_CONTENT_LENGTH"] = int(os.environ.get("TICKETPRINTER_MAX_CONTENT_LENGTH", 10 * 1024 * 1024))
    app.config["JSON_SORT_KEYS"] = False
    app.config["TICKETPRINTER_SETTINGS"] = settings
    app.url_map.strict_slashes = False

    CORS(app)

    @app.before_request
    def _before_request():
        _set_request_id()

    @app.after_request
    def _after_request(response):
        response.headers.setdefault("X-Request-ID", getattr(g, "request_id", "-"))
        return response

    app.register_error_handler(HTTPException, _json_http_error)

    app.register_blueprint(api_bp)
    app.register_blueprint(health_bp)

    service = print_service or PrintService(settings)
    if start_service:
        service.start()
    app.extensions["print_service"] = service
    app.logger.info(
        "Ticket Printer app created (backend=%s, printer=%s)",
        settings.get("backend"),
        settings.get("printer") or "system default",
    )

    if config_overrides:
        app.config.update(config_overrides)

    return app


__all__ = ["__version__", "create_app"]
