# src/scan/coordinator.py - v1
"""Scan coordinator: one resumable, checkpointed classification run.

Workflow:
  1. Enumerate items once; ``total`` is fixed for the run.
  2. Resume decision: restore the checkpoint when allowed and still valid,
     otherwise drop it and start at 0.
  3. Classify remaining items in order. Every CHECKPOINT_INTERVAL items (and
     on the last one) take a snapshot, persist it as the checkpoint, and
     report progress + snapshot.
  4. Finalize: persist the result, clear the checkpoint, report completion.

Only one run is active per coordinator. A second ``run`` call while one is
in flight returns None without touching state or emitting anything.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal

from bucketscan.core.accumulator import Accumulator
from bucketscan.core.fingerprint import compute_fingerprint
from bucketscan.core.models import BucketKey, Item, RunCheckpoint, ScanResult
from bucketscan.logging.context import clear_context, set_phase, set_run_context
from bucketscan.scan.events import (
    CancelledEvent,
    CompletedEvent,
    ProgressEvent,
    ScanObserver,
    SnapshotEvent,
)
from bucketscan.scan.reporter import ProgressReporter

if TYPE_CHECKING:
    from bucketscan.core.oracle import BaseOracle
    from bucketscan.sources.base_item_source import BaseItemSource
    from bucketscan.store.checkpoint_store import CheckpointStore

logger = logging.getLogger(__name__)

CHECKPOINT_INTERVAL = 10

ResumePolicy = Literal["fingerprint", "count"]


def generate_run_id(timestamp: datetime | None = None) -> str:
    """Generate a run_id: yyyymmdd_hhmmss_{uuid4_short}."""
    ts = timestamp or datetime.now(timezone.utc)
    return f"{ts.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:5]}"


class ScanCoordinator:
    """Orchestrate classification runs over an item source.

    Args:
        source: Item source to enumerate.
        oracle: Deterministic classifier.
        store: Checkpoint/result persistence.
        resume_policy: ``"fingerprint"`` also requires the ordered item IDs
            to match the checkpoint's fingerprint (when it has one);
            ``"count"`` only compares item counts.
    """

    def __init__(
        self,
        source: BaseItemSource,
        oracle: BaseOracle,
        store: CheckpointStore,
        resume_policy: ResumePolicy = "fingerprint",
    ) -> None:
        self._source = source
        self._oracle = oracle
        self._store = store
        self._resume_policy = resume_policy
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    async def run(
        self,
        resume_if_possible: bool,
        observer: ScanObserver | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ScanResult | None:
        """Run one classification pass.

        Args:
            resume_if_possible: Continue from a valid checkpoint if present.
            observer: Callbacks for progress, snapshots and the terminal event.
            cancel_event: Checked once per item; when set the run stops, the
                last written checkpoint is kept and ``on_cancelled`` fires.

        Returns:
            The final result, or None when the run was cancelled or another
            run was already active.
        """
        if self._active:
            logger.info("Scan already in progress; ignoring run request")
            return None

        self._active = True
        reporter = ProgressReporter(observer or ScanObserver())
        reporter.start()
        set_run_context(generate_run_id())
        try:
            return await self._run(resume_if_possible, reporter, cancel_event)
        finally:
            await reporter.aclose()
            logger.debug("Delivered %d scan events", reporter.delivered)
            clear_context()
            self._active = False

    async def _run(
        self,
        resume_if_possible: bool,
        reporter: ProgressReporter,
        cancel_event: asyncio.Event | None,
    ) -> ScanResult | None:
        set_phase("enumerate")
        items = await self._source.list_items()
        total = len(items)
        fingerprint = compute_fingerprint(item.id for item in items)

        set_phase("resume")
        acc = Accumulator()
        start_index = 0
        checkpoint = await self._store.load_checkpoint() if resume_if_possible else None

        if checkpoint is not None and self._is_resumable(checkpoint, total, fingerprint):
            acc = Accumulator.from_snapshot(checkpoint.to_snapshot())
            start_index = checkpoint.processed_count
            logger.info(
                "Resuming scan at %d/%d", start_index, total,
                extra={"processed": start_index, "total": total},
            )
            if start_index > 0:
                reporter.emit(ProgressEvent(start_index, total))
                reporter.emit(SnapshotEvent(acc.snapshot()))
        else:
            if checkpoint is not None:
                logger.info(
                    "Discarding stale checkpoint (%d/%d, current total %d)",
                    checkpoint.processed_count, checkpoint.total_count, total,
                )
            await self._store.clear_checkpoint()
            logger.info("Starting fresh scan of %d items", total)

        if total == 0 or start_index >= total:
            return await self._finalize(acc, reporter)

        set_phase("classify")
        for index in range(start_index, total):
            item = items[index]
            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "Scan cancelled at %d/%d", index, total,
                    extra={"processed": index, "total": total},
                )
                reporter.emit(CancelledEvent(index, total))
                return None

            acc.add(item.id, self._classify(item))
            processed = index + 1

            if processed % CHECKPOINT_INTERVAL == 0 or processed == total:
                snapshot = acc.snapshot()
                await self._store.save_checkpoint(
                    RunCheckpoint.from_snapshot(snapshot, processed, total, fingerprint)
                )
                reporter.emit(ProgressEvent(processed, total))
                reporter.emit(SnapshotEvent(snapshot))
                # Let the reporting task run between checkpoints.
                await asyncio.sleep(0)

        return await self._finalize(acc, reporter)

    def _is_resumable(self, checkpoint: RunCheckpoint, total: int, fingerprint: str) -> bool:
        if checkpoint.total_count != total:
            return False
        if not _holds_processed_items(checkpoint):
            return False
        if self._resume_policy == "fingerprint" and checkpoint.fingerprint is not None:
            return checkpoint.fingerprint == fingerprint
        return True

    def _classify(self, item: Item) -> BucketKey | None:
        """Query the oracle; an oracle error counts as no match."""
        try:
            return self._oracle.classify(item)
        except Exception as exc:
            logger.warning(
                "Oracle failed for %s, filing under others: %s", item.id, exc,
                extra={"item_id": item.id},
            )
            return None

    async def _finalize(self, acc: Accumulator, reporter: ProgressReporter) -> ScanResult:
        set_phase("finalize")
        result = acc.result()
        await self._store.save_persisted_result(result)
        await self._store.clear_checkpoint()
        reporter.emit(CompletedEvent(result))
        logger.info(
            "Scan complete: %d items, %d groups, %d others",
            result.classified_count,
            sum(1 for ids in result.buckets.values() if ids),
            len(result.others),
        )
        return result


def _holds_processed_items(checkpoint: RunCheckpoint) -> bool:
    """Restorable state holds exactly ``processed_count`` distinct identifiers.

    Identifiers under unknown bucket keys are dropped on restore and count as
    missing.
    """
    ids = checkpoint.to_snapshot().all_ids()
    if len(ids) == checkpoint.processed_count and len(set(ids)) == len(ids):
        return True
    logger.warning(
        "Checkpoint holds %d restorable identifiers (%d distinct) but claims %d processed",
        len(ids), len(set(ids)), checkpoint.processed_count,
    )
    return False
