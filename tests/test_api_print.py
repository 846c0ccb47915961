import json
from datetime import datetime

import pytest

from ticket_printer import __version__, create_app
from ticket_printer.printing import LoadError, PrintError, PrintExecutor, PrintService
from ticket_printer.web import api
from ticket_printer.web.api import MISSING_CONTENT, build_test_ticket

SETTINGS = {"printer": "Ticket", "backend": "cups", "port": 3003, "line_width": 32}


@pytest.fixture
def service(fake_backend, fake_surfaces):
    svc = PrintService(
        SETTINGS,
        surfaces=fake_surfaces,
        executor=PrintExecutor(fake_backend),
    )
    yield svc
    svc.shutdown(5)


@pytest.fixture
def client(service):
    app = create_app(settings_overrides=SETTINGS, print_service=service)
    app.config.update(TESTING=True)
    return app.test_client()


def _post(client, path, payload):
    return client.post(path, data=json.dumps(payload), headers={"Content-Type": "application/json"})


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.get_json()
    assert body["status"] == "ok"
    assert body["service"] == "Ticket Printer"
    assert body["version"] == __version__
    assert body["port"] == 3003
    assert body["printer"] == "Ticket"
    assert body["queue"]["worker_alive"] is True
    assert body["queue"]["pending"] == 0
    assert r.headers.get("X-Request-ID")


def test_health_degraded_when_worker_stopped(client, service):
    service.shutdown(5)
    body = client.get("/health").get_json()
    assert body["status"] == "degraded"
    assert body["reason"] == "worker_not_running"


def test_cors_headers(client):
    r = client.get("/health", headers={"Origin": "http://pos.local"})
    assert r.headers.get("Access-Control-Allow-Origin") in ("*", "http://pos.local")


def test_printers(client):
    r = client.get("/printers")
    assert r.status_code == 200
    body = r.get_json()
    assert body["default"] == "Ticket"
    assert body["printers"] == [
        {"name": "Ticket", "isDefault": True, "status": "idle"},
        {"name": "Office", "isDefault": False, "status": "disabled"},
    ]


def test_printers_failure(client, fake_backend):
    fake_backend.list_error = PrintError("lpstat command not found; is CUPS installed?")
    r = client.get("/printers")
    assert r.status_code == 500
    assert r.get_json()["details"].startswith("lpstat command not found")


@pytest.mark.parametrize("payload", [{}, {"content": ""}, {"printer": "Ticket"}, {"content": None}])
def test_print_requires_content(client, fake_backend, payload):
    r = _post(client, "/print", payload)
    assert r.status_code == 400
    assert r.get_json()["error"] == MISSING_CONTENT
    assert fake_backend.calls == []


def test_print_requires_json(client, fake_backend):
    r = client.post("/print", data="content=hi", headers={"Content-Type": "application/x-www-form-urlencoded"})
    assert r.status_code == 415
    assert fake_backend.calls == []


def test_print_rejects_bad_copies(client, fake_backend):
    r = _post(client, "/print", {"content": "<p>x</p>", "copies": 0})
    assert r.status_code == 400
    assert r.get_json()["error"] == "Invalid print request"
    assert "copies" in r.get_json()["details"]
    assert fake_backend.calls == []


def test_print_success_uses_default_printer(client, fake_backend):
    r = _post(client, "/print", {"content": "<h2>RECEIPT</h2><p>Coffee $3.50</p>"})
    assert r.status_code == 200, r.get_data(as_text=True)
    body = r.get_json()
    assert body["success"] is True
    assert body["message"] == "Print job sent"
    assert body["printer"] == "Ticket"
    assert body["page_length_mm"] == 50.0
    assert body["job"]

    assert len(fake_backend.calls) == 1
    call = fake_backend.calls[0]
    assert call["printer"] == "Ticket"
    assert call["copies"] == 1
    assert call["silent"] is True
    assert "<p>Coffee $3.50</p>" in call["document"]
    assert "width: 80mm" in call["document"]
    assert call["height"] == 60


def test_print_with_explicit_options(client, fake_backend):
    r = _post(client, "/print", {"content": "<p>x</p>", "printer": "Kitchen", "copies": 2, "silent": False})
    assert r.status_code == 200
    assert r.get_json()["printer"] == "Kitchen"
    assert fake_backend.calls[0]["printer"] == "Kitchen"
    assert fake_backend.calls[0]["copies"] == 2
    assert fake_backend.calls[0]["silent"] is False


def test_print_failure_reports_reason(client, fake_backend):
    fake_backend.print_error = PrintError("Printer offline")
    r = _post(client, "/print", {"content": "<p>x</p>"})
    assert r.status_code == 500
    assert r.get_json() == {"error": "Error printing", "details": "Printer offline"}


def test_print_load_failure_then_recovery(client, service, fake_backend):
    surface = service.surfaces.get_surface()
    surface.fail_with = LoadError("could not load document: net::ERR_ABORTED")
    r = _post(client, "/print", {"content": "<p>before</p>"})
    assert r.status_code == 500
    assert r.get_json()["error"] == "Error loading print content"
    assert fake_backend.calls == []

    r = _post(client, "/print", {"content": "<p>after</p>"})
    assert r.status_code == 200
    assert len(fake_backend.calls) == 1
    assert service.surfaces.created == 1
    assert service.surfaces.get_surface() is surface


def test_print_thermal_mode_formats_text(client, fake_backend, monkeypatch):
    seen = []

    def fake_text_to_thermal(raw, width):
        seen.append((raw, width))
        return "RECEIPT\n\n\n\n"

    monkeypatch.setattr(api, "text_to_thermal", fake_text_to_thermal)
    r = _post(client, "/print", {"content": "<h1>receipt</h1>", "mode": "thermal"})
    assert r.status_code == 200
    assert seen == [("<h1>receipt</h1>", 32)]
    assert len(fake_backend.calls) == 1


def test_print_text_escapes_content(client, service, monkeypatch):
    documents = []
    new_job = service.new_job

    def spy(document, **kwargs):
        documents.append(document)
        return new_job(document, **kwargs)

    monkeypatch.setattr(service, "new_job", spy)
    r = _post(client, "/print-text", {"content": "<b>Total</b>   $5.00"})
    assert r.status_code == 200
    assert len(documents) == 1
    assert documents[0].startswith("<pre")
    assert "&lt;b&gt;Total&lt;/b&gt;   $5.00" in documents[0]


def test_print_text_requires_content(client):
    r = _post(client, "/print-text", {"content": ""})
    assert r.status_code == 400
    assert r.get_json()["error"] == MISSING_CONTENT


def test_stopped_service_is_unavailable(client, service, fake_backend):
    service.shutdown(5)
    r = _post(client, "/print", {"content": "<p>x</p>"})
    assert r.status_code == 503
    assert fake_backend.calls == []


def test_test_print(client, fake_backend):
    r = _post(client, "/test-print", {})
    assert r.status_code == 200
    assert r.get_json()["printer"] == "Ticket"
    assert len(fake_backend.calls) == 1


def test_test_print_without_body(client, fake_backend):
    r = client.post("/test-print")
    assert r.status_code == 200
    assert len(fake_backend.calls) == 1


def test_test_ticket_content():
    html = build_test_ticket("<Bar>", when=datetime(2024, 1, 2, 3, 4, 5))
    assert "PRINT TEST" in html
    assert "Printer: &lt;Bar&gt;" in html
    assert "2024-01-02 03:04:05" in html
    assert "system default" in build_test_ticket(None)


def test_unknown_route_is_json(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.get_json()["error"] == "Not Found"
