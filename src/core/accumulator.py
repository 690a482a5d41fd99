# src/core/accumulator.py - v1
"""In-memory bucket accumulation for a single classification run.

Owned and mutated by the scan coordinator only. Other components receive
``ScanSnapshot`` copies taken through ``snapshot()``.
"""

from __future__ import annotations

from bucketscan.core.models import BucketKey, ScanResult, ScanSnapshot


class Accumulator:
    """Mapping of bucket key -> ordered identifiers, plus ``others``.

    Every key of ``BucketKey`` is always present. Insertion order is
    processing order.
    """

    def __init__(self) -> None:
        self._buckets: dict[BucketKey, list[str]] = {key: [] for key in BucketKey}
        self._others: list[str] = []

    @classmethod
    def from_snapshot(cls, snapshot: ScanSnapshot) -> Accumulator:
        """Rebuild live state from a stored snapshot (resume)."""
        acc = cls()
        for key in BucketKey:
            acc._buckets[key].extend(snapshot.buckets.get(key, ()))
        acc._others.extend(snapshot.others)
        return acc

    def add(self, item_id: str, key: BucketKey | None) -> None:
        """Record one classified item; ``None`` sends it to others."""
        if key is None:
            self._others.append(item_id)
        else:
            self._buckets[key].append(item_id)

    def snapshot(self) -> ScanSnapshot:
        """Structural copy of the current state."""
        return ScanSnapshot(
            buckets={key: tuple(ids) for key, ids in self._buckets.items()},
            others=tuple(self._others),
        )

    def result(self) -> ScanResult:
        """Structural copy of the current state as a final result."""
        return ScanResult(
            buckets={key: tuple(ids) for key, ids in self._buckets.items()},
            others=tuple(self._others),
        )

    def __len__(self) -> int:
        return sum(len(ids) for ids in self._buckets.values()) + len(self._others)
