# Ensure the repository root is on sys.path so `ticket_printer` can be imported in tests.

import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


def _ensure_repo_root_on_syspath() -> None:
    # This file lives at: <repo_root>/tests/conftest.py
    here = Path(__file__).resolve()
    repo_root = here.parent.parent
    repo_str = str(repo_root)
    if repo_str not in sys.path:
        sys.path.insert(0, repo_str)


_ensure_repo_root_on_syspath()

from PIL import Image  # noqa: E402

from ticket_printer.printing import PrintBackend, PrinterInfo  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Point the service at an empty config dir and clear env overrides."""
    monkeypatch.setenv("TICKETPRINTER_CONFIG_PATH", str(tmp_path / "config.json"))
    for name in (
        "TICKETPRINTER_PRINTER",
        "TICKETPRINTER_HOST",
        "TICKETPRINTER_PORT",
        "TICKETPRINTER_LINE_WIDTH",
        "TICKETPRINTER_BACKEND",
        "TICKETPRINTER_JSON_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeBackend(PrintBackend):
    """Records print calls instead of talking to a printer."""

    name = "fake"

    def __init__(self, printers: Optional[List[PrinterInfo]] = None, print_error: Optional[Exception] = None):
        self.printers = printers if printers is not None else [
            PrinterInfo(name="Ticket", is_default=True, status="idle"),
            PrinterInfo(name="Office", is_default=False, status="disabled"),
        ]
        self.print_error = print_error
        self.list_error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def list_printers(self):
        if self.list_error is not None:
            raise self.list_error
        return list(self.printers)

    def default_printer(self):
        return next((p.name for p in self.printers if p.is_default), None)

    def print_page(self, surface, printer, copies, silent, page_length_microns):
        with self._lock:
            self.calls.append(
                {
                    "document": getattr(surface, "document", None),
                    "height": getattr(surface, "content_height_px", None),
                    "printer": printer,
                    "copies": copies,
                    "silent": silent,
                    "page_length_microns": page_length_microns,
                }
            )
        if self.print_error is not None:
            raise self.print_error
        return f"job-{len(self.calls)}"


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


class FakeSurface:
    """
    In-memory render surface for SurfaceManager(factory=FakeSurface).
    Each <p> adds 20px to a 40px base; `fail_with` fails the next load once.
    """

    def __init__(self, config=None):
        self.config = dict(config or {})
        self.alive = True
        self.document: Optional[str] = None
        self.content_height_px = 0
        self.fail_with: Optional[Exception] = None
        self.loads = 0

    def load(self, document):
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error
        self.document = document
        self.content_height_px = 40 + 20 * document.count("<p")
        self.loads += 1

    def rasterize(self):
        return Image.new("L", (604, 2 * self.content_height_px), 255)

    def pdf(self, page_length_microns):
        return b"%PDF-1.4\n% ticket\n"

    def close(self):
        self.alive = False


@pytest.fixture
def fake_surfaces():
    from ticket_printer.printing import SurfaceManager

    return SurfaceManager({"font_size": 12}, factory=FakeSurface)
