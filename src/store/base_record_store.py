# src/store/base_record_store.py - v1
"""Abstract record store interface.

A record store persists whole documents under a small fixed set of names.
Implementations must make ``put`` atomic: a reader sees either the previous
complete document or the new one, never a mix.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseRecordStore(ABC):
    """Unified interface for record storage backends."""

    @abstractmethod
    async def get(self, name: str) -> str | None:
        """Return the stored document, or None when absent."""

    @abstractmethod
    async def put(self, name: str, document: str) -> None:
        """Store a document, replacing any previous one atomically."""

    @abstractmethod
    async def delete(self, name: str) -> None:
        """Remove a document; no-op when absent."""

    @abstractmethod
    async def exists(self, name: str) -> bool:
        """Check whether a document is stored under name."""
