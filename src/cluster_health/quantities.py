"""Kubernetes resource quantity helpers (CPU millicores, memory bytes)."""

from __future__ import annotations

import logging
from decimal import Decimal

from kubernetes.utils import parse_quantity

logger = logging.getLogger(__name__)

MIB = 1024 * 1024
GIB = 1024 * MIB


def _parse(value: str | int | float | None) -> Decimal:
    """Parse a quantity; absent or unparsable values count as zero."""
    if value is None or value == "":
        return Decimal(0)
    try:
        return parse_quantity(value)
    except ValueError:
        logger.debug("Unparsable quantity %r treated as zero", value)
        return Decimal(0)


def is_set(value: str | int | float | None) -> bool:
    """Return True if the quantity is present and non-zero."""
    return _parse(value) != 0


def cpu_millicores(value: str | int | float | None) -> int:
    """Convert a CPU quantity ("250m", "2", "1500u") to millicores."""
    return int(_parse(value) * 1000)


def memory_bytes(value: str | int | float | None) -> int:
    """Convert a memory quantity ("512Mi", "1G", "1024") to bytes."""
    return int(_parse(value))


def format_millicores(value: str | None) -> str:
    if not value:
        return "N/A"
    return f"{cpu_millicores(value)}m"


def format_mebibytes(value: str | None) -> str:
    if not value:
        return "N/A"
    return f"{memory_bytes(value) / MIB:.0f}Mi"
