# src/core/oracle.py - v1
"""Classification oracle interface and the hash-range reference oracle.

An oracle is a deterministic pure function from an item to one BucketKey,
or None for "no match". The coordinator never asks how it decides.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from bucketscan.core.fingerprint import unit_hash
from bucketscan.core.models import BucketKey, Item

# Twenty equal-width ranges cover [0, 0.9); the remainder is "no match".
DEFAULT_BUCKET_WIDTH = 0.045


class BaseOracle(ABC):
    """Unified interface for classification oracles."""

    @abstractmethod
    def classify(self, item: Item) -> BucketKey | None:
        """Return the item's bucket, or None when it matches none."""


class HashRangeOracle(BaseOracle):
    """Bucket items by a deterministic hash of their identifier.

    The identifier hash lands in [0, 1). Bucket ``i`` (in BucketKey order)
    owns ``[i * width, (i + 1) * width)``; anything past the last range goes
    to others.
    """

    def __init__(self, bucket_width: float = DEFAULT_BUCKET_WIDTH) -> None:
        if bucket_width <= 0:
            raise ValueError("bucket_width must be > 0")
        self._keys = list(BucketKey)
        self._width = bucket_width

    def classify(self, item: Item) -> BucketKey | None:
        return self.bucket_for(unit_hash(item.id))

    def bucket_for(self, hash_value: float) -> BucketKey | None:
        """Map a hash value in [0, 1) to its bucket."""
        if hash_value < 0:
            return None
        index = int(hash_value / self._width)
        if index >= len(self._keys):
            return None
        return self._keys[index]


class MappingOracle(BaseOracle):
    """Oracle backed by a fixed id -> bucket table (unknown ids: no match)."""

    def __init__(self, table: dict[str, BucketKey]) -> None:
        self._table = dict(table)

    def classify(self, item: Item) -> BucketKey | None:
        return self._table.get(item.id)
