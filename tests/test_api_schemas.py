import pytest
from pydantic import ValidationError

from ticket_printer.web.schemas import (
    DiagnosticPrintRequest,
    ErrorResponse,
    PrintRequest,
    PrintResponse,
    PrintTextRequest,
)


def test_print_request_defaults():
    req = PrintRequest.model_validate({"content": "<p>Hi</p>"})
    assert req.printer is None
    assert req.copies == 1
    assert req.silent is True
    assert req.mode == "html"


def test_blank_printer_means_default():
    assert PrintRequest.model_validate({"content": "x", "printer": "   "}).printer is None
    assert PrintTextRequest.model_validate({"content": "x", "printer": " Bar "}).printer == "Bar"
    assert DiagnosticPrintRequest.model_validate({}).printer is None


@pytest.mark.parametrize("payload", [{}, {"content": ""}, {"content": None}])
def test_content_is_required(payload):
    with pytest.raises(ValidationError):
        PrintRequest.model_validate(payload)


@pytest.mark.parametrize("copies", [0, -1, 100])
def test_copies_bounds(copies):
    with pytest.raises(ValidationError):
        PrintRequest.model_validate({"content": "x", "copies": copies})


def test_unknown_mode_rejected():
    with pytest.raises(ValidationError):
        PrintRequest.model_validate({"content": "x", "mode": "pdf"})
    assert PrintRequest.model_validate({"content": "x", "mode": "thermal"}).mode == "thermal"


def test_responses_dump():
    body = PrintResponse(printer="Ticket", job="abc", page_length_mm=50.0).model_dump()
    assert body == {
        "success": True,
        "message": "Print job sent",
        "printer": "Ticket",
        "job": "abc",
        "page_length_mm": 50.0,
    }
    assert ErrorResponse(error="Error printing").model_dump(exclude_none=True) == {"error": "Error printing"}
