"""
Render surface for 80mm tickets.

A RenderSurface is one headless Chromium page (Playwright) kept alive for the
life of the service. Each job replaces the page content with a document
composed into the 80mm ticket template, waits for the load event and reads
the rendered content extent back from the page. The same page then produces
the printable output: a PDF sized to the ticket for CUPS, or a raster for
ESC/POS printers.

Playwright's sync objects belong to the thread that created them, so a
surface must be created, loaded and closed on one thread (the print worker).
"""

from __future__ import annotations

import html
import io
import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, Optional

from PIL import Image, UnidentifiedImageError
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from .errors import LoadError

logger = logging.getLogger(__name__)

DPI = 96
MM_PER_INCH = 25.4
PAPER_WIDTH_MM = 80
DEFAULT_FONT_SIZE = 12
DEFAULT_RENDER_TIMEOUT = 30
VIEWPORT_HEIGHT = 400
# Device pixels per CSS pixel for rasters; ESC/POS heads are ~203 DPI.
RASTER_SCALE = 2

BROWSER_ARGS = (
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-sandbox",
)

# Rendered extent of the body including its padding, in CSS pixels.
MEASURE_SCRIPT = """() => {
  const body = document.body;
  if (!body) { return 0; }
  return Math.ceil(Math.max(body.scrollHeight, body.getBoundingClientRect().height));
}"""

TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    @page {{ size: 80mm auto; margin: 0; }}
    @media print {{
      html, body {{ width: 80mm; margin: 0; padding: 0; }}
    }}
    body {{
      font-family: 'Courier New', monospace;
      font-size: {font_size}px;
      width: 80mm;
      padding: 2mm;
      display: flex;
      flex-direction: column;
      align-items: center;
      -webkit-print-color-adjust: exact;
      print-color-adjust: exact;
    }}
    body > * {{ width: 100%; max-width: 76mm; margin: 0 auto; text-align: center; }}
    table {{ width: 100%; text-align: left; }}
    img {{ max-width: 100%; }}
  </style>
</head>
<body>
{content}
</body>
</html>"""


def mm_to_px(mm: float) -> int:
    return int(round(mm / MM_PER_INCH * DPI))


def compose_document(content: str, font_size: int = DEFAULT_FONT_SIZE) -> str:
    """
    Wrap caller content in the 80mm ticket template (fixed width, no
    margins, exact color reproduction).
    """
    if not isinstance(content, str):
        raise LoadError(f"document must be text, got {type(content).__name__}")
    return TEMPLATE.format(font_size=int(font_size), content=content)


def monospace_block(text: str, font_size: int = DEFAULT_FONT_SIZE) -> str:
    """Wrap plain text in a <pre> block; the text is escaped, not interpreted."""
    return (
        f'<pre style="font-family: monospace; font-size: {int(font_size)}px; margin: 0; '
        f'text-align: left; white-space: pre-wrap;">{html.escape(text)}</pre>'
    )


class RenderSurface:
    """
    Off-screen Chromium page for one 80mm ticket at a time.

    load() replaces the page content and returns once the load event has
    fired; `content_height_px` is then valid until the next load(). pdf() and
    rasterize() turn the loaded page into printable output. close() destroys
    the page, the browser and the Playwright driver.
    """

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        self.config = dict(config or {})
        self.width_px = mm_to_px(PAPER_WIDTH_MM)
        self.timeout_ms = float(self.config.get("render_timeout_seconds") or DEFAULT_RENDER_TIMEOUT) * 1000
        self._content_height_px: Optional[int] = None
        self._closed = False
        self.loads = 0

        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=True, args=list(BROWSER_ARGS))
            self._page = self._browser.new_page(
                viewport={"width": self.width_px, "height": VIEWPORT_HEIGHT},
                device_scale_factor=RASTER_SCALE,
            )
        except Exception:
            self._playwright.stop()
            raise

    @property
    def alive(self) -> bool:
        return not self._closed and self._browser.is_connected() and not self._page.is_closed()

    @property
    def loaded(self) -> bool:
        return self._content_height_px is not None

    @property
    def content_height_px(self) -> int:
        if self._content_height_px is None:
            raise LoadError("surface has no loaded document")
        return self._content_height_px

    def load(self, document: str) -> None:
        """
        Load a complete document, replacing whatever was loaded before.

        Raises LoadError if the page fails or times out while loading; the
        surface stays usable for the next load.
        """
        if not self.alive:
            raise LoadError("render surface has been destroyed")
        if not isinstance(document, str):
            raise LoadError(f"document must be text, got {type(document).__name__}")
        self._content_height_px = None
        try:
            self._page.set_content(document, wait_until="load", timeout=self.timeout_ms)
            height = int(self._page.evaluate(MEASURE_SCRIPT))
        except PlaywrightTimeoutError as e:
            raise LoadError(f"document did not finish loading within {self.timeout_ms / 1000:g}s") from e
        except PlaywrightError as e:
            raise LoadError(f"could not load document: {e}") from e
        self._content_height_px = max(0, height)
        self.loads += 1
        logger.debug("Surface loaded: %dpx tall", self._content_height_px)

    def pdf(self, page_length_microns: int) -> bytes:
        """The loaded page as a single PDF page, 80mm wide and `page_length_microns` long."""
        if not self.loaded:
            raise LoadError("surface has no loaded document")
        try:
            return self._page.pdf(
                width=f"{PAPER_WIDTH_MM}mm",
                height=f"{page_length_microns / 1000:.1f}mm",
                print_background=True,
                margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
            )
        except PlaywrightError as e:
            raise LoadError(f"could not render PDF: {e}") from e

    def rasterize(self) -> Image.Image:
        """The loaded content as a grayscale image, RASTER_SCALE device pixels per CSS pixel."""
        clip = {"x": 0, "y": 0, "width": self.width_px, "height": max(1, self.content_height_px)}
        try:
            png = self._page.screenshot(full_page=True, clip=clip, type="png", timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise LoadError(f"could not rasterize page: {e}") from e
        try:
            img = Image.open(io.BytesIO(png))
            img.load()
        except (Image.DecompressionBombError, UnidentifiedImageError, OSError) as e:
            raise LoadError(f"could not decode rendered page: {e}") from e
        return img.convert("L")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._content_height_px = None
        for step in (self._page.close, self._browser.close, self._playwright.stop):
            try:
                step()
            except PlaywrightError:
                logger.debug("Ignoring error while closing render surface", exc_info=True)


class SurfaceManager:
    """
    Owns the single reusable RenderSurface.

    get_surface() is idempotent: it returns the live surface or lazily creates
    a new one when none exists or the previous one was destroyed.
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        factory: Optional[Callable[[Mapping[str, Any]], RenderSurface]] = None,
    ):
        self.config = dict(config or {})
        self._factory = factory or RenderSurface
        self._surface: Optional[RenderSurface] = None
        self._lock = threading.Lock()
        self.created = 0

    def get_surface(self) -> RenderSurface:
        """Raises LoadError when a new surface cannot be started."""
        with self._lock:
            if self._surface is None or not self._surface.alive:
                if self._surface is not None:
                    logger.warning("Render surface was destroyed; creating a new one")
                    self._surface.close()
                    self._surface = None
                try:
                    self._surface = self._factory(self.config)
                except PlaywrightError as e:
                    raise LoadError(f"could not start render surface: {e}") from e
                self.created += 1
                logger.info("Render surface created (#%d)", self.created)
            return self._surface

    def load_document(self, surface: RenderSurface, content: str) -> None:
        """
        Compose `content` into the ticket template and load it onto `surface`.
        Returns once loading has finished; raises LoadError on failure.
        """
        surface.load(compose_document(content, int(self.config.get("font_size") or DEFAULT_FONT_SIZE)))

    def discard(self) -> None:
        """Destroy the current surface; the next get_surface() recreates it."""
        with self._lock:
            if self._surface is not None:
                self._surface.close()
                self._surface = None

    close = discard


__all__ = [
    "DPI",
    "PAPER_WIDTH_MM",
    "RASTER_SCALE",
    "RenderSurface",
    "SurfaceManager",
    "TEMPLATE",
    "compose_document",
    "mm_to_px",
    "monospace_block",
]
