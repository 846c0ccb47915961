from __future__ import annotations

"""
Print endpoints for Ticket Printer.

Endpoints:
- POST /print       : Print markup ({content, printer?, copies?, silent?, mode?})
- POST /print-text  : Print plain text in a monospace block
- POST /test-print  : Print the built-in test ticket

Each request becomes one job on the shared PrintService queue; the handler
waits for the job's completion so the response reports the real outcome.
"""

import html
from datetime import datetime
from typing import Any, Optional

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from ticket_printer.printing import (
    LoadError,
    PrintError,
    PrintService,
    QueueFullError,
    ServiceStoppedError,
    monospace_block,
    text_to_thermal,
)
from . import schemas

api_bp = Blueprint("api", __name__)

MISSING_CONTENT = "No content provided to print"


def _json_error(msg: str, code: int = 400, details: Optional[str] = None):
    body = schemas.ErrorResponse(error=msg, details=details).model_dump(exclude_none=True)
    return jsonify(body), code


def _service() -> PrintService:
    return current_app.extensions["print_service"]


def _settings() -> dict[str, Any]:
    return current_app.config.get("TICKETPRINTER_SETTINGS", {})


def _parse(model):
    """
    Validate the JSON body against `model`.
    Returns (instance, None) or (None, error_response).
    """
    if not request.is_json:
        return None, _json_error("Expected application/json body", 415)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, _json_error(MISSING_CONTENT, 400)
    try:
        return model.model_validate(data), None
    except ValidationError as e:
        errors = e.errors()
        if any(err.get("loc", ())[:1] == ("content",) for err in errors):
            return None, _json_error(MISSING_CONTENT, 400)
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()))
        msg = first.get("msg") or str(e)
        return None, _json_error("Invalid print request", 400, f"{field}: {msg}" if field else msg)


def _print(document: str, printer: Optional[str], copies: int, silent: bool):
    service = _service()
    try:
        job = service.new_job(document, printer=printer, copies=copies, silent=silent)
        future = service.submit(job)
    except (QueueFullError, ServiceStoppedError) as e:
        current_app.logger.warning("Print rejected: %s", e)
        return _json_error("Print service unavailable", 503, str(e))
    except ValueError as e:
        return _json_error("Invalid print request", 400, str(e))

    try:
        result = future.result()
    except LoadError as e:
        current_app.logger.error("Job %s could not be loaded: %s", job.id, e)
        return _json_error("Error loading print content", 500, str(e))
    except PrintError as e:
        current_app.logger.error("Job %s failed to print: %s", job.id, e)
        return _json_error("Error printing", 500, e.reason)
    except ServiceStoppedError as e:
        return _json_error("Print service unavailable", 503, str(e))
    except Exception as e:
        current_app.logger.exception("Job %s failed unexpectedly", job.id)
        return _json_error("Error processing print job", 500, str(e))

    current_app.logger.info("Print sent to %s (job %s)", result.printer or "default printer", job.id)
    resp = schemas.PrintResponse(
        printer=result.printer,
        job=job.id,
        page_length_mm=round(result.page_length_microns / 1000, 1),
    )
    return jsonify(resp.model_dump())


@api_bp.post("/print")
def print_markup():
    req, err = _parse(schemas.PrintRequest)
    if err:
        return err
    document = req.content
    if req.mode == "thermal":
        line_width = int(_settings().get("line_width", 32))
        document = monospace_block(text_to_thermal(req.content, line_width))
    return _print(document, req.printer, req.copies, req.silent)


@api_bp.post("/print-text")
def print_text():
    req, err = _parse(schemas.PrintTextRequest)
    if err:
        return err
    return _print(monospace_block(req.content), req.printer, req.copies, True)


def build_test_ticket(printer: Optional[str], when: Optional[datetime] = None) -> str:
    stamp = (when or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    return f"""
<div style="text-align: center">
  <div style="font-size: 18px; font-weight: bold">PRINT TEST</div>
  <hr>
  <div>Ticket Printer</div>
  <div>Printer: {html.escape(printer or "system default")}</div>
  <div>Date: {stamp}</div>
  <hr>
  <div style="font-size: 12px">If you can read this,</div>
  <div style="font-size: 12px">the printer is set up correctly.</div>
  <div>================================</div>
</div>
"""


@api_bp.post("/test-print")
def test_print():
    data = request.get_json(silent=True) if request.is_json else None
    try:
        req = schemas.DiagnosticPrintRequest.model_validate(data or {})
    except ValidationError as e:
        return _json_error("Invalid print request", 400, str(e.errors()[0].get("msg")))
    target = _service().resolve_printer(req.printer)
    return _print(build_test_ticket(target), target, 1, True)
