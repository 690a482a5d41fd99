# src/store/memory_store.py - v1
"""Process-local record store (STORE_BACKEND=memory).

Nothing survives the process. Used by tests and by callers that only want
the streaming behaviour.
"""

from __future__ import annotations

from bucketscan.store.base_record_store import BaseRecordStore


class MemoryRecordStore(BaseRecordStore):
    """Dict-backed record store."""

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    async def get(self, name: str) -> str | None:
        return self._records.get(name)

    async def put(self, name: str, document: str) -> None:
        self._records[name] = document

    async def delete(self, name: str) -> None:
        self._records.pop(name, None)

    async def exists(self, name: str) -> bool:
        return name in self._records
