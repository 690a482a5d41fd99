# tests/conftest.py - v1
"""Shared test fixtures for all unit and integration tests.

Provides item sources, deterministic oracles and in-memory stores.
No external services; file I/O stays under tmp_path.
"""

from __future__ import annotations

import pytest

from bucketscan.core.models import BucketKey, Item
from bucketscan.core.oracle import BaseOracle
from bucketscan.sources.memory_source import MemoryItemSource
from bucketscan.store.checkpoint_store import CheckpointStore
from bucketscan.store.memory_store import MemoryRecordStore

_KEYS = list(BucketKey)


class ModuloOracle(BaseOracle):
    """Deterministic test oracle: ``item_<n>`` -> bucket n % 25.

    Indexes 20..24 fall outside the enumeration and count as no match, so
    roughly one item in five lands in others.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []

    def classify(self, item: Item) -> BucketKey | None:
        self.calls.append(item.id)
        n = int(item.id.rsplit("_", 1)[1])
        index = n % 25
        return _KEYS[index] if index < len(_KEYS) else None


class FailingOracle(BaseOracle):
    """Raises for selected ids, otherwise sends everything to bucket A."""

    def __init__(self, failing: set[str]) -> None:
        self._failing = failing

    def classify(self, item: Item) -> BucketKey | None:
        if item.id in self._failing:
            raise RuntimeError(f"cannot classify {item.id}")
        return BucketKey.A


class FailingRecordStore(MemoryRecordStore):
    """Memory store whose writes can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_puts = False
        self.put_attempts = 0

    async def put(self, name: str, document: str) -> None:
        self.put_attempts += 1
        if self.fail_puts:
            raise OSError("disk full")
        await super().put(name, document)


def make_ids(count: int) -> list[str]:
    return [f"item_{i:04d}" for i in range(count)]


# === FIXTURES ===


@pytest.fixture
def oracle() -> ModuloOracle:
    return ModuloOracle()


@pytest.fixture
def records() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def store(records: MemoryRecordStore) -> CheckpointStore:
    return CheckpointStore(records)


@pytest.fixture
def source_25() -> MemoryItemSource:
    """25 items: checkpoints at 10, 20 and 25."""
    return MemoryItemSource(make_ids(25))


@pytest.fixture
def empty_source() -> MemoryItemSource:
    return MemoryItemSource([])


@pytest.fixture
def make_source():
    """Factory: ``make_source(n)`` -> MemoryItemSource of item_0000..item_{n-1}."""
    def _make(count: int, authorized: bool = True) -> MemoryItemSource:
        return MemoryItemSource(make_ids(count), authorized=authorized)
    return _make


@pytest.fixture
def failing_oracle():
    """Factory: ``failing_oracle({"item_0003"})`` -> FailingOracle."""
    return FailingOracle


@pytest.fixture
def failing_records() -> FailingRecordStore:
    return FailingRecordStore()
