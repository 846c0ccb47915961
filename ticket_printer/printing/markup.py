"""
Markup normalization for thermal tickets.

Turns arbitrary HTML-ish markup into plain text lines suitable for a
fixed-width receipt. Never raises: malformed markup degrades gracefully
because unmatched tags simply vanish.
"""

from __future__ import annotations

import re

DEFAULT_LINE_WIDTH = 32
SEPARATOR_CHAR = "─"  # box drawing light horizontal

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLOCK_CLOSE_RE = re.compile(r"</(div|p|li|tr|h[1-6])>", re.IGNORECASE)
_HR_RE = re.compile(r"<hr[^>]*>", re.IGNORECASE)
_CELL_CLOSE_RE = re.compile(r"</t[dh]>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")

# Applied in order: "&amp;lt;" decodes to "<".
ENTITIES: tuple[tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&mdash;", "—"),
    ("&ndash;", "–"),
)

_INLINE_WS_RE = re.compile(r"[ \t]+")
_EXCESS_BLANK_RE = re.compile(r"\n{3,}")


def separator_line(line_width: int = DEFAULT_LINE_WIDTH) -> str:
    return SEPARATOR_CHAR * max(0, line_width)


def decode_entities(text: str) -> str:
    """Decode the fixed entity set; anything else is left untouched."""
    for entity, char in ENTITIES:
        text = text.replace(entity, char)
    return text


def normalize(raw_markup: str, line_width: int = DEFAULT_LINE_WIDTH) -> str:
    """
    Convert markup into plain text.

    Steps: drop script/style blocks, turn line breaks and block closers into
    newlines, expand <hr> into a full-width separator, join table cells with
    " | ", strip remaining tags, decode entities, then tidy whitespace.
    """
    if not raw_markup:
        return ""
    text = str(raw_markup)

    text = _SCRIPT_RE.sub("", text)
    text = _STYLE_RE.sub("", text)

    text = _BR_RE.sub("\n", text)
    text = _BLOCK_CLOSE_RE.sub("\n", text)
    text = _HR_RE.sub("\n" + separator_line(line_width) + "\n", text)
    text = _CELL_CLOSE_RE.sub(" | ", text)

    text = _TAG_RE.sub("", text)
    text = decode_entities(text)

    text = _INLINE_WS_RE.sub(" ", text)
    text = text.replace("\n ", "\n").replace(" \n", "\n")
    text = _EXCESS_BLANK_RE.sub("\n\n", text)
    return text.strip()


__all__ = ["DEFAULT_LINE_WIDTH", "ENTITIES", "SEPARATOR_CHAR", "decode_entities", "normalize", "separator_line"]
