# src/core/models.py - v1
"""Shared Pydantic domain models used across modules.

No module redefines these types: items, bucket keys, snapshots, results and
the two persisted documents (run checkpoint, persisted result) all live here.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

OTHERS_LABEL = "OTHER"


# === ITEMS ===


class Item(BaseModel):
    """A unit of classification with a stable identifier and position."""

    model_config = ConfigDict(frozen=True)

    id: str
    position: int
    path: str | None = None


class BucketKey(str, Enum):
    """Closed set of classification buckets."""

    A = "a"
    B = "b"
    C = "c"
    D = "d"
    E = "e"
    F = "f"
    G = "g"
    H = "h"
    I = "i"  # noqa: E741
    J = "j"
    K = "k"
    L = "l"
    M = "m"
    N = "n"
    O = "o"  # noqa: E741
    P = "p"
    Q = "q"
    R = "r"
    S = "s"
    T = "t"

    @property
    def label(self) -> str:
        """Display name (upper case)."""
        return self.value.upper()


def empty_buckets() -> dict[BucketKey, tuple[str, ...]]:
    """Every bucket key mapped to an empty sequence."""
    return {key: () for key in BucketKey}


# === SNAPSHOTS & RESULTS ===


class ScanSnapshot(BaseModel):
    """Immutable value copy of accumulated classification state.

    Holds its own dict of tuples; nothing the accumulator does afterwards
    can change what a snapshot holder observes.
    """

    model_config = ConfigDict(frozen=True)

    buckets: dict[BucketKey, tuple[str, ...]] = Field(default_factory=empty_buckets)
    others: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _fill_missing_keys(self) -> ScanSnapshot:
        missing = [key for key in BucketKey if key not in self.buckets]
        if missing:
            # Frozen model: patch the validated dict in place before anyone sees it.
            for key in missing:
                self.buckets[key] = ()
        return self

    @property
    def classified_count(self) -> int:
        """Total number of identifiers held (buckets + others)."""
        return sum(len(ids) for ids in self.buckets.values()) + len(self.others)

    def all_ids(self) -> list[str]:
        """Every identifier, bucket by bucket in enumeration order, then others."""
        ids: list[str] = []
        for key in BucketKey:
            ids.extend(self.buckets[key])
        ids.extend(self.others)
        return ids

    def group_counts(self) -> list[tuple[str, int]]:
        """Non-empty groups as (display name, count), OTHER last."""
        counts = [
            (key.label, len(self.buckets[key]))
            for key in BucketKey
            if self.buckets[key]
        ]
        if self.others:
            counts.append((OTHERS_LABEL, len(self.others)))
        return counts

    def ids_for(self, name: str) -> tuple[str, ...]:
        """Identifiers of a group by display name or key (case-insensitive)."""
        normalized = name.strip().lower()
        if normalized == OTHERS_LABEL.lower():
            return self.others
        try:
            return self.buckets[BucketKey(normalized)]
        except ValueError:
            raise KeyError(f"Unknown group: {name!r}") from None


class ScanResult(ScanSnapshot):
    """Final classification of a completed run."""

    def to_document(self) -> PersistedResult:
        return PersistedResult(
            buckets=_encode_buckets(self.buckets),
            others=list(self.others),
        )


# === PERSISTED DOCUMENTS ===


class PersistedResult(BaseModel):
    """Durable result of the most recently completed run."""

    buckets: dict[str, list[str]] = Field(default_factory=dict)
    others: list[str] = Field(default_factory=list)

    def to_result(self) -> ScanResult:
        return ScanResult(buckets=_decode_buckets(self.buckets), others=tuple(self.others))


class RunCheckpoint(BaseModel):
    """In-flight run state; field aliases are the on-disk names."""

    model_config = ConfigDict(populate_by_name=True)

    processed_count: int = Field(alias="processedCount", ge=0)
    total_count: int = Field(alias="totalCount", ge=0)
    buckets: dict[str, list[str]] = Field(default_factory=dict)
    others: list[str] = Field(default_factory=list)
    fingerprint: str | None = None

    @model_validator(mode="after")
    def _processed_within_total(self) -> RunCheckpoint:
        if self.processed_count > self.total_count:
            raise ValueError(
                f"processedCount ({self.processed_count}) exceeds "
                f"totalCount ({self.total_count})"
            )
        return self

    @classmethod
    def from_snapshot(
        cls,
        snapshot: ScanSnapshot,
        processed_count: int,
        total_count: int,
        fingerprint: str | None = None,
    ) -> RunCheckpoint:
        return cls(
            processed_count=processed_count,
            total_count=total_count,
            buckets=_encode_buckets(snapshot.buckets),
            others=list(snapshot.others),
            fingerprint=fingerprint,
        )

    def to_snapshot(self) -> ScanSnapshot:
        return ScanSnapshot(buckets=_decode_buckets(self.buckets), others=tuple(self.others))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ResolvedResult(BaseModel):
    """Persisted result with identifiers re-resolved to items."""

    buckets: dict[BucketKey, list[Item]] = Field(default_factory=dict)
    others: list[Item] = Field(default_factory=list)
    missing_ids: list[str] = Field(default_factory=list)


# --- Helpers ---


def _encode_buckets(buckets: dict[BucketKey, tuple[str, ...]]) -> dict[str, list[str]]:
    return {key.value: list(buckets.get(key, ())) for key in BucketKey}


def _decode_buckets(raw: dict[str, Any]) -> dict[BucketKey, tuple[str, ...]]:
    """Map stored keys back onto BucketKey; unknown keys are dropped."""
    buckets = empty_buckets()
    for name, ids in raw.items():
        try:
            key = BucketKey(name)
        except ValueError:
            continue
        buckets[key] = tuple(ids)
    return buckets
