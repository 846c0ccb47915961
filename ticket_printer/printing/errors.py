"""Printing subsystem exceptions."""


class PrintServiceError(RuntimeError):
    """Base error for the print pipeline."""


class LoadError(PrintServiceError):
    """Raised when the render surface fails to load a composed document."""


class PrintError(PrintServiceError):
    """Raised when the platform print call reports failure."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class QueueFullError(PrintServiceError):
    """Raised by submit() when the configured queue depth is reached."""


class ServiceStoppedError(PrintServiceError):
    """Raised for jobs submitted to, or still pending in, a stopped service."""


__all__ = ["LoadError", "PrintError", "PrintServiceError", "QueueFullError", "ServiceStoppedError"]
