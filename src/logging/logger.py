# src/logging/logger.py - v1
"""Logger setup with JSON and text formatters.

Records may carry scan position fields through ``extra=``; both formatters
render them next to the run context:

    logger.info("Checkpoint saved", extra={"processed": 20, "total": 47})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from bucketscan.logging.context import get_context

ROOT_LOGGER = "bucketscan"

# Optional per-record fields accepted via ``extra=``.
SCAN_FIELDS = ("processed", "total", "item_id")


def scan_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Scan position fields present on a record."""
    return {
        name: getattr(record, name)
        for name in SCAN_FIELDS
        if getattr(record, name, None) is not None
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per line: level, logger, message, context, scan fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context
        fields = scan_fields(record)
        if fields:
            entry["scan"] = fields
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Terminal format: ``time [LEVEL] logger [run_id] (phase) {p/t} - message``."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        parts = [
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if ctx.run_id:
            parts.append(f"[{ctx.run_id}]")
        if ctx.phase:
            parts.append(f"({ctx.phase})")
        fields = scan_fields(record)
        if "processed" in fields and "total" in fields:
            parts.append(f"{{{fields['processed']}/{fields['total']}}}")
        if "item_id" in fields:
            parts.append(f"<{fields['item_id']}>")
        parts.append(f"- {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str) -> logging.Logger:
    """Logger under the bucketscan root, e.g. ``get_logger("cli")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 5,
    stream: IO[str] | None = None,
) -> None:
    """Configure the bucketscan logger tree.

    Safe to call repeatedly; previous handlers are closed and replaced.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" or "text".
        log_file: Optional rotating log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
        stream: Console stream. Defaults to stderr since stdout carries
            command output.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        from bucketscan.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(log_file, rotation=rotation, retention=retention)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
