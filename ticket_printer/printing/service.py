"""
Print job queue and orchestration for Ticket Printer.

This module owns:
- The Job record and its single-resolution completion future
- PrintService: a FIFO of pending jobs, the `busy` flag, and one worker
  thread that binds each job in turn to the shared render surface and runs
  load -> measure -> print

It is Flask-agnostic; the web layer only calls submit()/status().
Any number of threads may submit; only the worker ever touches the surface,
so at most one job is bound to it at any instant.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Mapping, Optional

from .errors import LoadError, PrintError, QueueFullError, ServiceStoppedError
from .executor import PrintExecutor, PrintResult, get_backend
from .height import estimate_height
from .surface import SurfaceManager

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Job:
    """A unit of print work. The document never changes after creation."""

    document: str
    printer: Optional[str] = None
    copies: int = 1
    silent: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: str = field(default_factory=_utc_now_iso)
    completion: "Future[PrintResult]" = field(default_factory=Future, compare=False, repr=False)

    def __post_init__(self) -> None:
        if int(self.copies) < 1:
            raise ValueError("copies must be a positive integer")


class PrintService:
    """
    Serializes print jobs against a single reusable render surface.

    Lifecycle: start() launches the worker, which pre-creates the surface.
    submit() may be called from any thread. shutdown() stops the worker and
    rejects every job still pending. One instance per process.
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        surfaces: Optional[SurfaceManager] = None,
        executor: Optional[PrintExecutor] = None,
    ):
        self.config = dict(config or {})
        self.surfaces = surfaces or SurfaceManager(self.config)
        self.executor = executor or PrintExecutor(get_backend(self.config))
        self.default_printer = str(self.config.get("printer") or "").strip() or None
        self.max_queue_depth = int(self.config.get("max_queue_depth") or 0)

        self._pending: Deque[Job] = deque()
        self._cond = threading.Condition()
        self._busy = False
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self.completed = 0
        self.failed = 0

    # Lifecycle

    def start(self, warmup_timeout: Optional[float] = None) -> "PrintService":
        """
        Start the worker and wait for it to pre-create the render surface
        (idempotent). The surface is created on the worker thread, which is the
        only thread that ever uses it.
        """
        with self._cond:
            if self._running and self._thread and self._thread.is_alive():
                return self
            self._running = True
        self._ready.clear()
        t = threading.Thread(target=self._worker, daemon=True, name="ticket-printer-worker")
        t.start()
        self._thread = t
        if not self._ready.wait(warmup_timeout):
            logger.warning("Render surface still starting after %ss", warmup_timeout)
        logger.info("Print service started")
        return self

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Stop admitting jobs. The in-flight job (if any) finishes; pending jobs
        are rejected with ServiceStoppedError.
        """
        with self._cond:
            self._running = False
            dropped = list(self._pending)
            self._pending.clear()
            self._cond.notify_all()
        for job in dropped:
            self._reject(job, ServiceStoppedError("print service stopped before the job was printed"))
        if self._thread is not None:
            self._thread.join(timeout)
        else:
            self.surfaces.close()
        logger.info("Print service stopped (%d pending job(s) rejected)", len(dropped))

    # Submission

    def resolve_printer(self, printer: Optional[str] = None) -> Optional[str]:
        """Requested printer, else the configured default, else the OS default."""
        name = (printer or "").strip()
        if name:
            return name
        if self.default_printer:
            return self.default_printer
        try:
            return self.executor.default_printer()
        except Exception:
            logger.debug("Could not determine the system default printer", exc_info=True)
            return None

    def new_job(self, document: str, printer: Optional[str] = None, copies: int = 1, silent: bool = True) -> Job:
        return Job(document=document, printer=self.resolve_printer(printer), copies=int(copies), silent=bool(silent))

    def submit(self, job: Job) -> "Future[PrintResult]":
        """
        Append `job` to the queue and return its completion future at once.

        Raises ServiceStoppedError if the service is not running and
        QueueFullError when max_queue_depth is set and reached.
        """
        with self._cond:
            if not self._running:
                raise ServiceStoppedError("print service is not running")
            if self.max_queue_depth and len(self._pending) >= self.max_queue_depth:
                raise QueueFullError(f"print queue is full ({self.max_queue_depth} pending)")
            self._pending.append(job)
            depth = len(self._pending)
            self._cond.notify()
        logger.info("Job %s queued printer=%s copies=%d pending=%d", job.id, job.printer, job.copies, depth)
        return job.completion

    def print_document(
        self,
        document: str,
        printer: Optional[str] = None,
        copies: int = 1,
        silent: bool = True,
        timeout: Optional[float] = None,
    ) -> PrintResult:
        """Submit a document and block until it is printed; raises on failure."""
        job = self.new_job(document, printer=printer, copies=copies, silent=silent)
        return self.submit(job).result(timeout)

    # Introspection

    @property
    def busy(self) -> bool:
        return self._busy

    def status(self) -> Dict[str, Any]:
        with self._cond:
            pending = len(self._pending)
            busy = self._busy
        return {
            "worker_alive": bool(self._thread) and self._thread.is_alive(),  # type: ignore[union-attr]
            "busy": busy,
            "pending": pending,
            "completed": self.completed,
            "failed": self.failed,
            "max_queue_depth": self.max_queue_depth or None,
        }

    # Worker

    def _admit(self) -> Optional[Job]:
        """Block until a job is pending; pop it and mark the service busy."""
        with self._cond:
            while self._running and not self._pending:
                self._cond.wait()
            if not self._running:
                return None
            job = self._pending.popleft()
            self._busy = True
            return job

    def _release(self) -> None:
        with self._cond:
            self._busy = False

    def _worker(self) -> None:
        """Worker loop. Never raises; each job's outcome lands on its future."""
        try:
            self.surfaces.get_surface()
        except Exception as e:
            logger.error("Render surface could not be pre-created; retrying with the first job: %s", e)
        finally:
            self._ready.set()
        while True:
            job = self._admit()
            if job is None:
                self.surfaces.close()
                return
            try:
                self._process(job)
            finally:
                self._release()

    def _process(self, job: Job) -> None:
        if not job.completion.set_running_or_notify_cancel():
            logger.info("Job %s was cancelled before admission", job.id)
            return
        logger.info("Job %s admitted", job.id)
        try:
            surface = self.surfaces.get_surface()
            self.surfaces.load_document(surface, job.document)
            length = estimate_height(surface)
            logger.info("Job %s loaded; page length %.1fmm", job.id, length / 1000)
            result = self.executor.execute(surface, job.printer, job.copies, job.silent, length)
        except (LoadError, PrintError) as e:
            self.failed += 1
            logger.error("Job %s failed: %s", job.id, e)
            job.completion.set_exception(e)
            return
        except Exception as e:
            self.failed += 1
            logger.exception("Job %s crashed; discarding render surface", job.id)
            self.surfaces.discard()
            job.completion.set_exception(PrintError(str(e) or type(e).__name__))
            return
        self.completed += 1
        logger.info("Job %s printed on %s", job.id, job.printer or "default printer")
        job.completion.set_result(result)

    @staticmethod
    def _reject(job: Job, error: Exception) -> None:
        if job.completion.set_running_or_notify_cancel():
            job.completion.set_exception(error)


__all__ = ["Job", "PrintService"]
