# src/sources/memory_source.py - v1
"""Item source over a fixed in-memory list of identifiers."""

from __future__ import annotations

from collections.abc import Sequence

from bucketscan.core.models import Item
from bucketscan.sources.base_item_source import BaseItemSource


class MemoryItemSource(BaseItemSource):
    """Serve a fixed identifier list; order is list order."""

    def __init__(self, item_ids: Sequence[str], authorized: bool = True) -> None:
        if len(set(item_ids)) != len(item_ids):
            raise ValueError("Item identifiers must be unique")
        self._ids = list(item_ids)
        self._authorized = authorized

    async def is_authorized(self) -> bool:
        return self._authorized

    async def list_items(self) -> list[Item]:
        return [Item(id=item_id, position=i) for i, item_id in enumerate(self._ids)]

    def replace_ids(self, item_ids: Sequence[str]) -> None:
        """Swap the underlying collection (the library changed)."""
        self._ids = list(item_ids)
