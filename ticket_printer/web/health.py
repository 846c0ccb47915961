from __future__ import annotations

"""
Health and discovery endpoints for Ticket Printer.

- GET /health   : service metadata plus queue/worker status
- GET /printers : printers known to the print backend and the default
"""

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify

from ticket_printer import __version__
from ticket_printer.printing import PrintError

health_bp = Blueprint("health", __name__)

SERVICE_NAME = "Ticket Printer"


@health_bp.get("/health")
def health():
    settings: Dict[str, Any] = current_app.config.get("TICKETPRINTER_SETTINGS", {})
    service = current_app.extensions["print_service"]
    queue = service.status()
    status: Dict[str, Any] = {
        "status": "ok" if queue["worker_alive"] else "degraded",
        "service": SERVICE_NAME,
        "version": __version__,
        "port": settings.get("port"),
        "printer": service.default_printer or "",
        "backend": settings.get("backend"),
        "queue": queue,
    }
    if not queue["worker_alive"]:
        status["reason"] = "worker_not_running"
    return status, 200


@health_bp.get("/printers")
def printers():
    service = current_app.extensions["print_service"]
    try:
        found = service.executor.list_printers()
    except PrintError as e:
        current_app.logger.error("Could not list printers: %s", e)
        return jsonify({"error": "Could not list printers", "details": e.reason}), 500
    default = service.default_printer or next((p.name for p in found if p.is_default), None)
    return {"printers": [p.to_dict() for p in found], "default": default}
