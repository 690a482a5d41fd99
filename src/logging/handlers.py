# src/logging/handlers.py - v1
"""Size-based rotating file handler and the size strings that configure it."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"^(\d+)\s*(B|KB|MB|GB)?$", re.IGNORECASE)
_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """Bytes for a size like ``"10MB"``, ``"512kb"`` or ``"4096"`` (plain bytes)."""
    match = _SIZE_RE.match(size_str.strip())
    if not match or int(match.group(1)) == 0:
        raise ValueError(f"Invalid size: {size_str!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "B").upper()
    return int(match.group(1)) * _UNITS[unit]


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 5,
) -> RotatingFileHandler:
    """Rotating handler on ``log_file`` (``~`` expanded, parent dirs created).

    ``retention`` is the number of rotated backups kept next to the file.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
