# src/store/store_factory.py - v1
"""Factory for record store instantiation."""

from __future__ import annotations

from bucketscan.config.settings import Settings
from bucketscan.store.base_record_store import BaseRecordStore

SQLITE_FILENAME = "bucketscan.db"


def create_record_store(settings: Settings | None = None) -> BaseRecordStore:
    """Instantiate the configured record store backend.

    Args:
        settings: Application settings. Defaults to the JSON backend under
            ``~/.bucketscan/state``.

    Returns:
        Configured BaseRecordStore implementation.

    Raises:
        ValueError: If the backend is not supported.
    """
    backend = "json" if settings is None else settings.store_backend
    state_dir = "~/.bucketscan/state" if settings is None else str(settings.state_dir)

    if backend == "json":
        from bucketscan.store.json_store import JsonFileRecordStore
        return JsonFileRecordStore(state_dir=state_dir)

    if backend == "sqlite":
        from bucketscan.store.sqlite_store import SqliteRecordStore
        return SqliteRecordStore(db_path=f"{state_dir}/{SQLITE_FILENAME}")

    if backend == "memory":
        from bucketscan.store.memory_store import MemoryRecordStore
        return MemoryRecordStore()

    raise ValueError(f"Unsupported store backend: {backend!r}")
