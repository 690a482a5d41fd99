# src/store/json_store.py - v1
"""JSON file-based record store (default STORE_BACKEND=json).

Stores each record as ``<name>.json`` under STATE_DIR. Writes go to a
temporary file in the same directory, are fsynced, then renamed over the
target with ``os.replace``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from bucketscan.store.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)


class JsonFileRecordStore(BaseRecordStore):
    """File-based record store using one JSON document per record."""

    def __init__(self, state_dir: Path | str) -> None:
        self._root = Path(state_dir).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    async def get(self, name: str) -> str | None:
        """Read a record; missing or unreadable files count as absent."""
        path = self.record_path(name)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read record %s: %s", name, e)
            return None

    async def put(self, name: str, document: str) -> None:
        """Write a record via temp file + rename."""
        path = self.record_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(document)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def delete(self, name: str) -> None:
        """Remove a record file."""
        self.record_path(name).unlink(missing_ok=True)

    async def exists(self, name: str) -> bool:
        return self.record_path(name).exists()

    def record_path(self, name: str) -> Path:
        """Return file path for a record name."""
        safe_name = name.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_name}.json"
