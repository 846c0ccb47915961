"""
Printing subsystem for Ticket Printer.

- markup / thermal: markup normalization and fixed-width ticket formatting
- surface: the reusable headless-browser 80mm page and its manager
- height: page length from rendered content
- executor: platform print backends (CUPS `lp`, ESC/POS) and discovery
- service: the FIFO job queue bound to the single render surface
"""

from .errors import LoadError, PrintError, PrintServiceError, QueueFullError, ServiceStoppedError
from .executor import CupsBackend, EscposBackend, PrintBackend, PrintExecutor, PrinterInfo, PrintResult, get_backend
from .height import estimate_height, page_length_for
from .markup import normalize
from .service import Job, PrintService
from .surface import RenderSurface, SurfaceManager, compose_document, monospace_block
from .thermal import format_thermal, text_to_thermal


__all__ = [
    "CupsBackend",
    "EscposBackend",
    "Job",
    "LoadError",
    "PrintBackend",
    "PrintError",
    "PrintExecutor",
    "PrintResult",
    "PrintService",
    "PrintServiceError",
    "PrinterInfo",
    "QueueFullError",
    "RenderSurface",
    "ServiceStoppedError",
    "SurfaceManager",
    "compose_document",
    "estimate_height",
    "format_thermal",
    "get_backend",
    "monospace_block",
    "normalize",
    "page_length_for",
    "text_to_thermal",
]
