"""
Web module for Ticket Printer.

Exposes blueprints for:
- Print endpoints: api_bp
- Health and printer discovery: health_bp
"""

from .api import api_bp
from .health import health_bp

__all__ = ["api_bp", "health_bp"]
