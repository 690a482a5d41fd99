# src/api/facade.py - v1
"""Public API facade: the operation surface consumed by UIs and the CLI.

Usage:
    from bucketscan.api.facade import ScanService
    service = ScanService.from_settings(source, settings=settings)
    if await service.request_access():
        result = await service.run_classification(True, on_progress=...)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from bucketscan.core.models import BucketKey, ResolvedResult, ScanResult, ScanSnapshot
from bucketscan.core.oracle import BaseOracle, HashRangeOracle
from bucketscan.scan.coordinator import ScanCoordinator
from bucketscan.scan.events import (
    TERMINAL_EVENTS,
    CancelledEvent,
    CompletedEvent,
    CompleteCallback,
    ProgressCallback,
    ProgressEvent,
    ScanEvent,
    ScanObserver,
    SnapshotCallback,
    SnapshotEvent,
)
from bucketscan.store.checkpoint_store import CheckpointStore

if TYPE_CHECKING:
    from bucketscan.config.settings import Settings
    from bucketscan.sources.base_item_source import BaseItemSource
    from bucketscan.store.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)


class ScanService:
    """Bundle an item source, oracle and store behind one surface.

    Args:
        source: Item source to classify.
        store: Checkpoint/result persistence.
        oracle: Classifier. Defaults to HashRangeOracle.
        resume_policy: Passed to the coordinator ("fingerprint" or "count").
    """

    def __init__(
        self,
        source: BaseItemSource,
        store: CheckpointStore,
        oracle: BaseOracle | None = None,
        resume_policy: str = "fingerprint",
    ) -> None:
        self._source = source
        self._store = store
        self._coordinator = ScanCoordinator(
            source=source,
            oracle=oracle or HashRangeOracle(),
            store=store,
            resume_policy=resume_policy,  # type: ignore[arg-type]
        )
        self._cancel_event: asyncio.Event | None = None

    @classmethod
    def from_settings(
        cls,
        source: BaseItemSource,
        settings: Settings | None = None,
        oracle: BaseOracle | None = None,
        records: BaseRecordStore | None = None,
    ) -> ScanService:
        """Build a service with the configured record store backend."""
        from bucketscan.config.settings import Settings
        from bucketscan.store.store_factory import create_record_store

        settings = settings or Settings()
        records = records or create_record_store(settings)
        return cls(
            source=source,
            store=CheckpointStore(records),
            oracle=oracle,
            resume_policy=settings.resume_policy,
        )

    @property
    def is_scanning(self) -> bool:
        return self._coordinator.is_active

    # --- Access & state queries ---

    async def request_access(self) -> bool:
        """Authorization check; call once before starting a run."""
        granted = await self._source.is_authorized()
        if not granted:
            logger.warning("Access to item source denied")
        return granted

    async def has_pending_checkpoint(self) -> bool:
        return await self._store.has_pending_checkpoint()

    async def save_persisted_result(self, result: ScanResult) -> bool:
        return await self._store.save_persisted_result(result)

    async def load_persisted_result(self) -> ScanResult | None:
        return await self._store.load_persisted_result()

    async def load_resolved_result(self) -> ResolvedResult | None:
        """Load the last result with identifiers resolved to current items.

        Identifiers the source no longer knows are dropped from their group
        and listed in ``missing_ids``.
        """
        result = await self._store.load_persisted_result()
        if result is None:
            return None

        resolved = await self._source.resolve(result.all_ids())
        missing: list[str] = []

        def _resolve(ids: tuple[str, ...]) -> list:
            found = []
            for item_id in ids:
                item = resolved.get(item_id)
                if item is None:
                    missing.append(item_id)
                else:
                    found.append(item)
            return found

        buckets = {key: _resolve(result.buckets[key]) for key in BucketKey}
        others = _resolve(result.others)
        if missing:
            logger.info("%d stored identifiers no longer resolve", len(missing))
        return ResolvedResult(buckets=buckets, others=others, missing_ids=missing)

    # --- Runs ---

    async def run_classification(
        self,
        resume_if_possible: bool,
        on_progress: ProgressCallback | None = None,
        on_partial_snapshot: SnapshotCallback | None = None,
        on_complete: CompleteCallback | None = None,
        on_cancelled: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ScanResult | None:
        """Run (or resume) a classification, streaming to the callbacks.

        Returns the final result, or None if cancelled or already running.
        """
        observer = ScanObserver(
            on_progress=on_progress,
            on_partial_snapshot=on_partial_snapshot,
            on_complete=on_complete,
            on_cancelled=on_cancelled,
        )
        return await self._run(resume_if_possible, observer, cancel_event)

    async def stream_classification(
        self,
        resume_if_possible: bool,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[ScanEvent]:
        """Run a classification and yield its events in order.

        The stream ends after the terminal event (completed or cancelled).
        If a run is already active, the stream is empty.

        Closing the stream early cancels the run (setting ``cancel_event``
        when one was given) and waits for it to stop, keeping its last
        checkpoint. Wrap partial iteration in ``contextlib.aclosing`` so the
        close happens at once rather than at garbage collection:

            async with aclosing(service.stream_classification(True)) as events:
                async for event in events:
                    ...
        """
        stop = cancel_event or asyncio.Event()
        queue: asyncio.Queue[ScanEvent | None] = asyncio.Queue()
        observer = ScanObserver(
            on_progress=lambda p, t: queue.put_nowait(ProgressEvent(p, t)),
            on_partial_snapshot=lambda b, o: queue.put_nowait(
                SnapshotEvent(ScanSnapshot(buckets=b, others=o))
            ),
            on_complete=lambda r: queue.put_nowait(CompletedEvent(r)),
            on_cancelled=lambda p, t: queue.put_nowait(CancelledEvent(p, t)),
        )

        async def _drive() -> None:
            try:
                await self._run(resume_if_possible, observer, stop)
            finally:
                queue.put_nowait(None)

        task = asyncio.get_running_loop().create_task(_drive())
        finished = False
        try:
            while not finished:
                event = await queue.get()
                if event is None:
                    finished = True
                    break
                finished = isinstance(event, TERMINAL_EVENTS)
                yield event
        finally:
            if not finished:
                stop.set()
            await task

    async def load_or_scan(
        self,
        observer: ScanObserver | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ScanResult | None:
        """Launch policy: resume a pending scan, else reuse the last result,
        else scan from scratch."""
        if await self.has_pending_checkpoint():
            logger.info("Found pending scan progress, resuming")
            return await self._run(True, observer or ScanObserver(), cancel_event)

        cached = await self.load_persisted_result()
        if cached is not None:
            logger.info("Loaded cached scan result")
            return cached

        return await self._run(False, observer or ScanObserver(), cancel_event)

    def cancel(self) -> None:
        """Request cancellation of the active run (no-op when idle)."""
        if self._cancel_event is not None:
            self._cancel_event.set()

    async def _run(
        self,
        resume_if_possible: bool,
        observer: ScanObserver,
        cancel_event: asyncio.Event | None,
    ) -> ScanResult | None:
        if self._coordinator.is_active:
            return await self._coordinator.run(resume_if_possible, observer, cancel_event)
        event = cancel_event or asyncio.Event()
        self._cancel_event = event
        try:
            return await self._coordinator.run(resume_if_possible, observer, event)
        finally:
            self._cancel_event = None
