"""
Print execution against the platform print subsystem.

Backends:
- CupsBackend: loaded page -> ticket-sized PDF in a temporary dir -> `lp`
  (macOS/Linux), printer discovery via `lpstat`
- EscposBackend: loaded page -> raster -> python-escpos USB/Network/Serial printer

PrintExecutor is the seam the queue talks to: it prints the loaded surface
and normalizes every failure into PrintError.
"""

from __future__ import annotations

import logging
import re
import subprocess
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from PIL import Image

from .errors import LoadError, PrintError
from .height import PAGE_WIDTH_MICRONS

logger = logging.getLogger(__name__)

_REQUEST_ID_RE = re.compile(r"request id is (\S+)")


@dataclass
class PrinterInfo:
    """System printer metadata."""

    name: str
    is_default: bool = False
    status: str = "unknown"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "isDefault": self.is_default, "status": self.status}


@dataclass
class PrintResult:
    printer: Optional[str]
    copies: int
    page_length_microns: int
    reference: Optional[str] = None


class PrintBackend(ABC):
    """Platform print service used by PrintExecutor."""

    name = "abstract"

    @abstractmethod
    def list_printers(self) -> List[PrinterInfo]:
        raise NotImplementedError

    @abstractmethod
    def default_printer(self) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def print_page(
        self,
        surface,
        printer: Optional[str],
        copies: int,
        silent: bool,
        page_length_microns: int,
    ) -> Optional[str]:
        """Print the page loaded on `surface`; return a backend job reference if there is one."""
        raise NotImplementedError


def _run(cmd: List[str], timeout: Optional[float] = None) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)


class CupsBackend(PrintBackend):
    """CUPS via the `lp` / `lpstat` command line tools."""

    name = "cups"

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or None

    def list_printers(self) -> List[PrinterInfo]:
        try:
            proc = _run(["lpstat", "-p"], timeout=self.timeout)
        except FileNotFoundError as e:
            raise PrintError("lpstat command not found; is CUPS installed?") from e
        except subprocess.TimeoutExpired as e:
            raise PrintError("lpstat timed out") from e
        if proc.returncode != 0:
            if "no destinations" in (proc.stderr or "").lower():
                return []
            raise PrintError((proc.stderr or "").strip() or f"lpstat exited with status {proc.returncode}")

        default = self.default_printer()
        printers: List[PrinterInfo] = []
        for line in proc.stdout.splitlines():
            if not line.startswith("printer "):
                continue
            parts = line.split()
            if len(parts) < 2:
                continue
            name = parts[1]
            if "disabled" in line:
                status = "disabled"
            elif "now printing" in line:
                status = "printing"
            elif " is idle" in line:
                status = "idle"
            else:
                status = "unknown"
            printers.append(PrinterInfo(name=name, is_default=(name == default), status=status))
        return printers

    def default_printer(self) -> Optional[str]:
        try:
            proc = _run(["lpstat", "-d"], timeout=self.timeout)
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return None
        # sample: "system default destination: EPSON_TM_T20"
        text = (proc.stdout or "").strip()
        if proc.returncode != 0 or "destination:" not in text:
            return None
        return text.split(":", 1)[1].strip() or None

    def build_command(self, path: str, printer: Optional[str], copies: int, page_length_microns: int) -> List[str]:
        media = f"Custom.{PAGE_WIDTH_MICRONS / 1000:g}x{page_length_microns / 1000:.1f}mm"
        cmd = ["lp"]
        if printer:
            cmd += ["-d", printer]
        cmd += ["-n", str(copies), "-o", f"media={media}", "-o", "fit-to-page", "-t", "ticket", path]
        return cmd

    def print_page(self, surface, printer, copies, silent, page_length_microns):
        if not silent:
            logger.debug("Non-silent job on headless CUPS backend; no dialog to show")
        with tempfile.TemporaryDirectory(prefix="ticketprinter-") as tmp:
            path = Path(tmp) / "ticket.pdf"
            path.write_bytes(surface.pdf(page_length_microns))
            cmd = self.build_command(str(path), printer, copies, page_length_microns)
            logger.info("Running: %s", " ".join(cmd))
            try:
                proc = _run(cmd, timeout=self.timeout)
            except FileNotFoundError as e:
                raise PrintError("lp command not found; is CUPS installed?") from e
            except subprocess.TimeoutExpired as e:
                raise PrintError(f"print command timed out after {self.timeout}s") from e

        if proc.returncode != 0:
            reason = (proc.stderr or "").strip() or f"lp exited with status {proc.returncode}"
            raise PrintError(reason)
        m = _REQUEST_ID_RE.search(proc.stdout or "")
        return m.group(1) if m else None


class EscposBackend(PrintBackend):
    """
    Direct ESC/POS printing with python-escpos. The configured connection is
    the only device; the printer name is a label for logs and discovery.
    """

    name = "escpos"

    def __init__(self, config: Mapping[str, Any]):
        self.config = dict(config)

    def _device_name(self) -> str:
        return str(self.config.get("printer") or f"escpos-{str(self.config.get('printer_type', 'usb')).lower()}")

    def list_printers(self) -> List[PrinterInfo]:
        return [PrinterInfo(name=self._device_name(), is_default=True, status="unknown")]

    def default_printer(self) -> Optional[str]:
        return self._device_name()

    def connect(self):
        """
        Create and return an ESC/POS printer instance based on the config.
        Supports USB, Network, and Serial with optional 'printer_profile'.
        """
        config = self.config
        profile = config.get("printer_profile") or None
        ptype = str(config.get("printer_type", "usb")).lower()

        if ptype == "usb":
            from escpos.printer import Usb

            vendor = int(str(config.get("usb_vendor_id", "0x04b8")), 16)
            product = int(str(config.get("usb_product_id", "0x0e28")), 16)
            return Usb(vendor, product, profile=profile) if profile else Usb(vendor, product)
        if ptype == "network":
            from escpos.printer import Network

            ip = str(config.get("network_ip", ""))
            port = int(str(config.get("network_port", "9100")))
            return Network(ip, port, profile=profile) if profile else Network(ip, port)
        if ptype == "serial":
            from escpos.printer import Serial

            port = str(config.get("serial_port", ""))
            baud = int(str(config.get("serial_baudrate", "19200")))
            return Serial(port, baudrate=baud, profile=profile) if profile else Serial(port, baudrate=baud)
        raise PrintError(f"Unsupported printer type: {ptype}")

    def print_page(self, surface, printer, copies, silent, page_length_microns):
        image = surface.rasterize()
        width = int(self.config.get("receipt_width", 576))
        if image.width != width:
            height = max(1, int(round(image.height * width / image.width)))
            image = image.resize((width, height), Image.LANCZOS)
        feed = int(self.config.get("cut_feed_lines", 2))

        p = self.connect()
        try:
            for n in range(1, copies + 1):
                p.image(image)
                if feed > 0:
                    p.text("\n" * feed)
                p.cut()
                logger.info("Printed copy %d/%d on %s", n, copies, printer or self._device_name())
        finally:
            try:
                p.close()
            except Exception:
                logger.debug("Ignoring error while closing ESC/POS connection", exc_info=True)
        return None


def get_backend(config: Mapping[str, Any]) -> PrintBackend:
    backend = str(config.get("backend", "cups")).lower()
    if backend == "cups":
        timeout = float(config.get("print_timeout_seconds") or 0)
        return CupsBackend(timeout=timeout if timeout > 0 else None)
    if backend == "escpos":
        return EscposBackend(config)
    raise ValueError(f"Unsupported print backend: {backend}")


class PrintExecutor:
    """Issues the platform print call for the job bound to the render surface."""

    def __init__(self, backend: PrintBackend):
        self.backend = backend

    def list_printers(self) -> List[PrinterInfo]:
        return self.backend.list_printers()

    def default_printer(self) -> Optional[str]:
        return self.backend.default_printer()

    def execute(
        self,
        surface,
        printer_target: Optional[str],
        copies: int,
        silent: bool,
        page_length_microns: int,
    ) -> PrintResult:
        """
        Print the loaded surface. Returns a PrintResult on success. Raises
        LoadError when the page cannot be turned into printable output and
        PrintError with a human readable reason for any other failure. The
        surface is left intact for reuse.
        """
        try:
            reference = self.backend.print_page(surface, printer_target, copies, silent, page_length_microns)
        except (LoadError, PrintError):
            raise
        except Exception as e:
            raise PrintError(str(e) or type(e).__name__) from e
        return PrintResult(
            printer=printer_target,
            copies=copies,
            page_length_microns=page_length_microns,
            reference=reference,
        )


__all__ = [
    "CupsBackend",
    "EscposBackend",
    "PrintBackend",
    "PrintExecutor",
    "PrintResult",
    "PrinterInfo",
    "get_backend",
]
