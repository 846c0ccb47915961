"""
Thermal text formatting.

Post-processes normalized plain text into a fixed-width ticket: trailing
prices are right-aligned to the paper edge, short all-caps lines are centred
as headers, and a fixed paper feed is appended for the cutter.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .markup import DEFAULT_LINE_WIDTH, normalize

# Blank lines appended after the last line so the ticket clears the cutter.
FEED_LINES = 4

PRICE_RE = re.compile(r"^(.+?)\s*\$(\d+(?:\.\d{1,2})?)\s*$")
PRICE_MARKER = "$"
HEADER_MARGIN = 4


def align_price(line: str, line_width: int = DEFAULT_LINE_WIDTH) -> Optional[str]:
    """
    Right-align a trailing "$amount" so its last character lands on column
    `line_width`. Returns None when the line has no price or label and price
    do not fit with at least one space between them.
    """
    m = PRICE_RE.match(line)
    if not m:
        return None
    label = m.group(1).strip()
    price = PRICE_MARKER + m.group(2)
    spaces = line_width - len(label) - len(price)
    if spaces <= 0:
        return None
    return label + " " * spaces + price


def is_header(line: str, line_width: int = DEFAULT_LINE_WIDTH) -> bool:
    return (
        bool(line)
        and line == line.upper()
        and len(line) < line_width - HEADER_MARGIN
        and PRICE_MARKER not in line
    )


def center(line: str, line_width: int = DEFAULT_LINE_WIDTH) -> str:
    padding = (line_width - len(line)) // 2
    return " " * max(0, padding) + line


def format_line(line: str, line_width: int = DEFAULT_LINE_WIDTH) -> str:
    line = line.strip()
    aligned = align_price(line, line_width)
    if aligned is not None:
        return aligned
    if is_header(line, line_width):
        return center(line, line_width)
    return line


def format_thermal(plain_text: str, line_width: int = DEFAULT_LINE_WIDTH) -> str:
    """
    Format plain text into a thermal document.

    Every line is handled independently (price alignment first, then header
    centering, otherwise passed through trimmed). Trailing blank lines of the
    input are dropped, the lines are joined with newlines, the last line is
    terminated and exactly FEED_LINES blank lines follow. An empty input
    yields only the feed.

    Re-formatting an already formatted document returns it unchanged.
    """
    lines: List[str] = [format_line(line, line_width) for line in (plain_text or "").split("\n")]
    while lines and not lines[-1]:
        lines.pop()

    body = "\n".join(lines) + "\n" if lines else ""
    return body + "\n" * FEED_LINES


def text_to_thermal(raw_markup: str, line_width: int = DEFAULT_LINE_WIDTH) -> str:
    """Text-mode path: normalize markup, then format it for the roll."""
    return format_thermal(normalize(raw_markup, line_width), line_width)


__all__ = ["FEED_LINES", "PRICE_RE", "align_price", "center", "format_line", "format_thermal", "is_header", "text_to_thermal"]
