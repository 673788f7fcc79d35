"""
Observability for Gridboard.

Provides structured and human-readable logging for layout engine events.
"""

from gridboard.observability.logging import (
    GridLogger,
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "GridLogger",
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
