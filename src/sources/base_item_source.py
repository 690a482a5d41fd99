# src/sources/base_item_source.py - v1
"""Abstract item source interface.

An item source enumerates a stable, ordered, finite list of items with unique
identifiers, can resolve identifiers back to items later, and answers the
one-off authorization check made before a run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from bucketscan.core.models import Item


class BaseItemSource(ABC):
    """Unified interface for item sources."""

    @abstractmethod
    async def is_authorized(self) -> bool:
        """Whether the caller may enumerate this source."""

    @abstractmethod
    async def list_items(self) -> list[Item]:
        """Enumerate every item in stable order (positions 0..n-1)."""

    async def resolve(self, item_ids: Iterable[str]) -> dict[str, Item]:
        """Resolve identifiers to items; unknown identifiers are omitted."""
        wanted = set(item_ids)
        return {item.id: item for item in await self.list_items() if item.id in wanted}
