# src/scan/events.py - v1
"""Scan events delivered by the progress reporter, and the observer bundle."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union

from bucketscan.core.models import BucketKey, ScanResult, ScanSnapshot


@dataclass(frozen=True)
class ProgressEvent:
    processed: int
    total: int


@dataclass(frozen=True)
class SnapshotEvent:
    snapshot: ScanSnapshot


@dataclass(frozen=True)
class CompletedEvent:
    result: ScanResult


@dataclass(frozen=True)
class CancelledEvent:
    processed: int
    total: int


ScanEvent = Union[ProgressEvent, SnapshotEvent, CompletedEvent, CancelledEvent]
TERMINAL_EVENTS = (CompletedEvent, CancelledEvent)

# Callbacks may be plain functions or coroutine functions.
ProgressCallback = Callable[[int, int], Union[None, Awaitable[Any]]]
SnapshotCallback = Callable[
    [dict[BucketKey, tuple[str, ...]], tuple[str, ...]], Union[None, Awaitable[Any]]
]
CompleteCallback = Callable[[ScanResult], Union[None, Awaitable[Any]]]


@dataclass
class ScanObserver:
    """Subscriber callbacks for one run. Every callback is optional."""

    on_progress: ProgressCallback | None = None
    on_partial_snapshot: SnapshotCallback | None = None
    on_complete: CompleteCallback | None = None
    on_cancelled: ProgressCallback | None = None

    def callback_for(self, event: ScanEvent) -> tuple[Callable[..., Any] | None, tuple]:
        """Return (callback, args) for an event."""
        if isinstance(event, ProgressEvent):
            return self.on_progress, (event.processed, event.total)
        if isinstance(event, SnapshotEvent):
            return self.on_partial_snapshot, (event.snapshot.buckets, event.snapshot.others)
        if isinstance(event, CompletedEvent):
            return self.on_complete, (event.result,)
        if isinstance(event, CancelledEvent):
            return self.on_cancelled, (event.processed, event.total)
        raise TypeError(f"Unknown scan event: {event!r}")
