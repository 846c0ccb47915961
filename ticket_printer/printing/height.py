"""
Content height estimation.

Converts the pixel extent of a loaded render surface into a physical page
length so continuous-roll tickets are cut right after their content.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# 96 DPI reference: 264.58 microns per pixel, in hundredths.
MICRONS_PER_PIXEL_X100 = 26458
BUFFER_MICRONS = 5_000  # 5mm against clipping
MIN_PAGE_MICRONS = 50_000  # 50mm floor
PAGE_WIDTH_MICRONS = 80_000


def pixels_to_microns(pixels: int) -> int:
    """ceil(pixels * 264.58) using integer arithmetic."""
    return -(-max(0, int(pixels)) * MICRONS_PER_PIXEL_X100 // 100)


def page_length_for(content_px: int) -> int:
    """Page length in microns for a content extent in device pixels."""
    return max(pixels_to_microns(content_px) + BUFFER_MICRONS, MIN_PAGE_MICRONS)


def estimate_height(surface) -> int:
    """
    Return the page length in microns for the document loaded on `surface`.

    No upper cap: long tickets grow the page instead of being truncated.
    """
    length = page_length_for(surface.content_height_px)
    logger.debug("Content %dpx -> page length %d microns", surface.content_height_px, length)
    return length


__all__ = [
    "BUFFER_MICRONS",
    "MIN_PAGE_MICRONS",
    "PAGE_WIDTH_MICRONS",
    "estimate_height",
    "page_length_for",
    "pixels_to_microns",
]
