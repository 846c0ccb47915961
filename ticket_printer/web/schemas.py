from __future__ import annotations

"""
Pydantic schemas for the Ticket Printer HTTP API.

These models validate incoming print requests before any job is created;
a failed validation is reported as a 400 and never reaches the queue.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

MAX_COPIES = 99


class _PrintTarget(BaseModel):
    printer: Optional[str] = Field(
        default=None,
        description="Destination printer name. Omit or leave empty to use the configured default",
        max_length=255,
        examples=["ImpresoraTicket", "EPSON_TM_T20III"],
    )

    @field_validator("printer")
    @classmethod
    def _trim_printer(cls, v: Optional[str]) -> Optional[str]:
        return (v or "").strip() or None


class _CopiesMixin(BaseModel):
    copies: int = Field(
        default=1,
        ge=1,
        le=MAX_COPIES,
        description=f"Number of copies to print (1-{MAX_COPIES})",
        examples=[1, 2],
    )


class PrintRequest(_PrintTarget, _CopiesMixin):
    """Request to print markup (rich path) or markup converted to ticket text."""

    content: str = Field(
        min_length=1,
        description="HTML markup or plain text to print",
        examples=["<h2>RECEIPT</h2><p>Coffee $3.50</p>"],
    )
    silent: bool = Field(
        default=True,
        description="Print without any OS print dialog",
    )
    mode: Literal["html", "thermal"] = Field(
        default="html",
        description="'html' renders the markup as-is; 'thermal' converts it to fixed-width ticket text first",
    )


class PrintTextRequest(_PrintTarget, _CopiesMixin):
    """Request to print plain text in a monospace block."""

    content: str = Field(
        min_length=1,
        description="Plain text; printed verbatim with whitespace preserved",
        examples=["RECEIPT\nCoffee        $3.50\n"],
    )


class DiagnosticPrintRequest(_PrintTarget):
    """Request to print the built-in test ticket."""


class PrintResponse(BaseModel):
    """Response once a job has been printed."""

    success: bool = True
    message: str = Field(default="Print job sent", examples=["Print job sent"])
    printer: Optional[str] = Field(default=None, description="Printer the job was sent to")
    job: str = Field(description="Job identifier")
    page_length_mm: float = Field(description="Computed page length in millimetres")


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
