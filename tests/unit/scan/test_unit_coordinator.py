# tests/unit/scan/test_unit_coordinator.py - v1
"""Tests for scan/coordinator.py: cadence, resume, finalization, exclusion."""

from __future__ import annotations

import asyncio
from collections import Counter

import pytest

from bucketscan.core.accumulator import Accumulator
from bucketscan.core.fingerprint import compute_fingerprint
from bucketscan.core.models import BucketKey, Item, RunCheckpoint, ScanResult
from bucketscan.core.oracle import BaseOracle
from bucketscan.scan.coordinator import CHECKPOINT_INTERVAL, ScanCoordinator, generate_run_id
from bucketscan.scan.events import ScanObserver
from bucketscan.sources.memory_source import MemoryItemSource
from bucketscan.store.checkpoint_store import CHECKPOINT_RECORD, RESULT_RECORD, CheckpointStore


class Recorder:
    """Collects every callback as (kind, payload) in delivery order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def observer(self) -> ScanObserver:
        return ScanObserver(
            on_progress=lambda p, t: self.events.append(("progress", (p, t))),
            on_partial_snapshot=lambda b, o: self.events.append(("snapshot", (b, o))),
            on_complete=lambda r: self.events.append(("complete", r)),
            on_cancelled=lambda p, t: self.events.append(("cancelled", (p, t))),
        )

    def of(self, kind: str) -> list[object]:
        return [payload for k, payload in self.events if k == kind]

    @property
    def progress(self) -> list[tuple[int, int]]:
        return self.of("progress")  # type: ignore[return-value]


class CancelAfterOracle(BaseOracle):
    """Wraps an oracle and sets a cancel event after classifying ``item_id``."""

    def __init__(self, inner: BaseOracle, item_id: str, event: asyncio.Event) -> None:
        self._inner = inner
        self._item_id = item_id
        self._event = event

    def classify(self, item: Item) -> BucketKey | None:
        if item.id == self._item_id:
            self._event.set()
        return self._inner.classify(item)


def _assert_partition(result: ScanResult, item_ids: list[str]) -> None:
    ids = result.all_ids()
    assert len(ids) == len(item_ids)
    assert Counter(ids) == Counter(item_ids)


class TestFreshRun:
    @pytest.mark.asyncio
    async def test_every_item_lands_exactly_once(self, source_25, oracle, store):
        result = await ScanCoordinator(source_25, oracle, store).run(False)
        assert result is not None
        ids = [item.id for item in await source_25.list_items()]
        _assert_partition(result, ids)
        assert sum(len(v) for v in result.buckets.values()) + len(result.others) == 25

    @pytest.mark.asyncio
    async def test_classification_matches_oracle(self, source_25, oracle, store):
        result = await ScanCoordinator(source_25, oracle, store).run(False)
        assert result is not None
        for item in await source_25.list_items():
            key = oracle.classify(item)
            if key is None:
                assert item.id in result.others
            else:
                assert item.id in result.buckets[key]

    @pytest.mark.asyncio
    async def test_callbacks_at_cadence_points(self, source_25, oracle, store):
        rec = Recorder()
        await ScanCoordinator(source_25, oracle, store).run(False, rec.observer())
        assert CHECKPOINT_INTERVAL == 10
        assert rec.progress == [(10, 25), (20, 25), (25, 25)]
        assert len(rec.of("snapshot")) == 3

    @pytest.mark.asyncio
    async def test_exact_multiple_has_no_duplicate_final_callback(self, make_source, oracle, store):
        rec = Recorder()
        await ScanCoordinator(make_source(20), oracle, store).run(False, rec.observer())
        assert rec.progress == [(10, 20), (20, 20)]

    @pytest.mark.asyncio
    async def test_small_total_reports_once(self, make_source, oracle, store):
        rec = Recorder()
        await ScanCoordinator(make_source(3), oracle, store).run(False, rec.observer())
        assert rec.progress == [(3, 3)]

    @pytest.mark.asyncio
    async def test_progress_pairs_with_snapshot_and_complete_is_last(self, source_25, oracle, store):
        rec = Recorder()
        await ScanCoordinator(source_25, oracle, store).run(False, rec.observer())
        kinds = [kind for kind, _ in rec.events]
        assert kinds == ["progress", "snapshot"] * 3 + ["complete"]
        assert len(rec.of("complete")) == 1

    @pytest.mark.asyncio
    async def test_snapshots_grow_and_stay_frozen(self, source_25, oracle, store):
        rec = Recorder()
        await ScanCoordinator(source_25, oracle, store).run(False, rec.observer())
        sizes = [
            sum(len(ids) for ids in buckets.values()) + len(others)
            for buckets, others in rec.of("snapshot")
        ]
        assert sizes == [10, 20, 25]

    @pytest.mark.asyncio
    async def test_completion_clears_checkpoint_and_persists_result(self, source_25, oracle, store):
        result = await ScanCoordinator(source_25, oracle, store).run(False)
        assert await store.has_pending_checkpoint() is False
        assert await store.load_persisted_result() == result

    @pytest.mark.asyncio
    async def test_checkpoint_written_at_each_cadence_point(self, source_25, oracle, records):
        written: list[int] = []

        class SpyStore(CheckpointStore):
            async def save_checkpoint(self, checkpoint: RunCheckpoint) -> bool:
                written.append(checkpoint.processed_count)
                assert checkpoint.total_count == 25
                return await super().save_checkpoint(checkpoint)

        await ScanCoordinator(source_25, oracle, SpyStore(records)).run(False)
        assert written == [10, 20, 25]

    @pytest.mark.asyncio
    async def test_returns_same_result_as_on_complete(self, source_25, oracle, store):
        rec = Recorder()
        result = await ScanCoordinator(source_25, oracle, store).run(False, rec.observer())
        assert rec.of("complete") == [result]


class TestEmptySource:
    @pytest.mark.asyncio
    async def test_completes_once_with_empty_result(self, empty_source, oracle, store):
        rec = Recorder()
        result = await ScanCoordinator(empty_source, oracle, store).run(True, rec.observer())
        assert result is not None
        assert rec.events == [("complete", result)]
        assert result.others == ()
        assert all(ids == () for ids in result.buckets.values())

    @pytest.mark.asyncio
    async def test_no_checkpoint_created(self, empty_source, oracle, failing_records):
        store = CheckpointStore(failing_records)
        await ScanCoordinator(empty_source, oracle, store).run(False)
        assert await failing_records.exists(CHECKPOINT_RECORD) is False
        assert await failing_records.exists(RESULT_RECORD) is True
        assert failing_records.put_attempts == 1

    @pytest.mark.asyncio
    async def test_clears_leftover_checkpoint(self, empty_source, oracle, store):
        await store.save_checkpoint(RunCheckpoint(processed_count=5, total_count=10))
        await ScanCoordinator(empty_source, oracle, store).run(True)
        assert await store.has_pending_checkpoint() is False


class TestResume:
    @pytest.mark.asyncio
    async def test_resume_matches_from_scratch(self, make_source, oracle, records):
        baseline = await ScanCoordinator(make_source(47), oracle, CheckpointStore(records)).run(False)

        store = CheckpointStore(type(records)())
        cancel = asyncio.Event()
        interrupted = CancelAfterOracle(oracle, "item_0033", cancel)
        first = await ScanCoordinator(make_source(47), interrupted, store).run(False, cancel_event=cancel)
        assert first is None
        checkpoint = await store.load_checkpoint()
        assert checkpoint is not None
        assert checkpoint.processed_count == 30

        oracle.calls.clear()
        resumed = await ScanCoordinator(make_source(47), oracle, store).run(True)
        assert resumed == baseline
        assert oracle.calls[0] == "item_0030"
        assert len(oracle.calls) == 17

    @pytest.mark.asyncio
    async def test_restored_state_reported_immediately(self, source_25, oracle, store):
        partial = await _partial_checkpoint(source_25, oracle, processed=10)
        await store.save_checkpoint(partial)

        rec = Recorder()
        await ScanCoordinator(source_25, oracle, store).run(True, rec.observer())
        assert rec.progress == [(10, 25), (20, 25), (25, 25)]
        restored_buckets, restored_others = rec.of("snapshot")[0]
        assert sum(len(v) for v in restored_buckets.values()) + len(restored_others) == 10

    @pytest.mark.asyncio
    async def test_zero_processed_checkpoint_has_no_restore_callback(self, source_25, oracle, store):
        await store.save_checkpoint(RunCheckpoint(processed_count=0, total_count=25))
        rec = Recorder()
        await ScanCoordinator(source_25, oracle, store).run(True, rec.observer())
        assert rec.progress == [(10, 25), (20, 25), (25, 25)]

    @pytest.mark.asyncio
    async def test_count_mismatch_discards_checkpoint(self, source_25, oracle, store):
        await store.save_checkpoint(
            RunCheckpoint(processed_count=10, total_count=30, others=["stale"])
        )
        result = await ScanCoordinator(source_25, oracle, store).run(True)
        assert result is not None
        assert "stale" not in result.all_ids()
        assert result.classified_count == 25

    @pytest.mark.asyncio
    async def test_resume_disabled_discards_checkpoint(self, source_25, oracle, store):
        partial = await _partial_checkpoint(source_25, oracle, processed=20)
        await store.save_checkpoint(partial)
        oracle.calls.clear()
        await ScanCoordinator(source_25, oracle, store).run(False)
        assert len(oracle.calls) == 25

    @pytest.mark.asyncio
    async def test_fingerprint_mismatch_discards_checkpoint(self, oracle, store):
        old = MemoryItemSource([f"item_{i:04d}" for i in range(25)])
        partial = await _partial_checkpoint(old, oracle, processed=10)
        await store.save_checkpoint(partial)

        # Same count, different members.
        changed = MemoryItemSource([f"item_{i:04d}" for i in range(100, 125)])
        result = await ScanCoordinator(changed, oracle, store).run(True)
        assert result is not None
        assert all(item_id >= "item_0100" for item_id in result.all_ids())
        assert result.classified_count == 25

    @pytest.mark.asyncio
    async def test_count_policy_resumes_despite_changed_members(self, oracle, store):
        old = MemoryItemSource([f"item_{i:04d}" for i in range(25)])
        partial = await _partial_checkpoint(old, oracle, processed=10)
        await store.save_checkpoint(partial)

        changed = MemoryItemSource([f"item_{i:04d}" for i in range(100, 125)])
        result = await ScanCoordinator(changed, oracle, store, resume_policy="count").run(True)
        assert result is not None
        ids = result.all_ids()
        assert sum(1 for i in ids if i < "item_0100") == 10
        assert sum(1 for i in ids if i >= "item_0110") == 15

    @pytest.mark.asyncio
    async def test_checkpoint_without_fingerprint_uses_count(self, source_25, oracle, store):
        partial = await _partial_checkpoint(source_25, oracle, processed=10)
        await store.save_checkpoint(partial.model_copy(update={"fingerprint": None}))
        oracle.calls.clear()
        await ScanCoordinator(source_25, oracle, store).run(True)
        assert len(oracle.calls) == 15

    @pytest.mark.asyncio
    async def test_fully_processed_checkpoint_finalizes(self, source_25, oracle, store):
        full = await _partial_checkpoint(source_25, oracle, processed=25)
        await store.save_checkpoint(full)

        oracle.calls.clear()
        rec = Recorder()
        result = await ScanCoordinator(source_25, oracle, store).run(True, rec.observer())
        assert oracle.calls == []
        assert result is not None
        assert result.classified_count == 25
        assert rec.progress == [(25, 25)]
        assert [k for k, _ in rec.events][-1] == "complete"
        assert await store.has_pending_checkpoint() is False
        assert await store.load_persisted_result() == result

    @pytest.mark.asyncio
    async def test_corrupt_checkpoint_starts_fresh(self, source_25, oracle, store, records):
        await records.put(CHECKPOINT_RECORD, "{broken")
        result = await ScanCoordinator(source_25, oracle, store).run(True)
        assert result is not None
        assert result.classified_count == 25
        assert await store.has_pending_checkpoint() is False

    @pytest.mark.parametrize(
        "buckets, others",
        [
            ({"zz": "0:7", "a": "7:10"}, "10:10"),
            ({"a": "0:3"}, "3:3"),
            ({"a": "0:5"}, "0:5"),
        ],
        ids=["unknown-key", "too-few-ids", "duplicate-ids"],
    )
    @pytest.mark.asyncio
    async def test_inconsistent_checkpoint_starts_fresh(
        self, source_25, oracle, store, buckets, others, caplog
    ):
        ids = [item.id for item in await source_25.list_items()]

        def _slice(span: str) -> list[str]:
            lo, hi = (int(part) for part in span.split(":"))
            return ids[lo:hi]

        await store.save_checkpoint(
            RunCheckpoint(
                processed_count=10,
                total_count=25,
                buckets={key: _slice(span) for key, span in buckets.items()},
                others=_slice(others),
            )
        )
        oracle.calls.clear()
        result = await ScanCoordinator(source_25, oracle, store, resume_policy="count").run(True)
        assert result is not None
        _assert_partition(result, ids)
        assert len(oracle.calls) == 25
        assert "restorable identifiers" in caplog.text


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_keeps_last_checkpoint(self, source_25, oracle, store):
        cancel = asyncio.Event()
        rec = Recorder()
        wrapped = CancelAfterOracle(oracle, "item_0012", cancel)
        result = await ScanCoordinator(source_25, wrapped, store).run(
            False, rec.observer(), cancel_event=cancel
        )
        assert result is None
        assert rec.of("complete") == []
        assert rec.of("cancelled") == [(13, 25)]
        assert [k for k, _ in rec.events][-1] == "cancelled"
        checkpoint = await store.load_checkpoint()
        assert checkpoint is not None
        assert checkpoint.processed_count == 10
        assert await store.load_persisted_result() is None

    @pytest.mark.asyncio
    async def test_pre_set_cancel_processes_nothing(self, source_25, oracle, store):
        cancel = asyncio.Event()
        cancel.set()
        rec = Recorder()
        result = await ScanCoordinator(source_25, oracle, store).run(
            False, rec.observer(), cancel_event=cancel
        )
        assert result is None
        assert oracle.calls == []
        assert rec.events == [("cancelled", (0, 25))]


class TestFailures:
    @pytest.mark.asyncio
    async def test_write_failures_do_not_abort(self, source_25, oracle, failing_records, caplog):
        failing_records.fail_puts = True
        store = CheckpointStore(failing_records)
        rec = Recorder()
        result = await ScanCoordinator(source_25, oracle, store).run(False, rec.observer())
        assert result is not None
        assert result.classified_count == 25
        assert rec.progress == [(10, 25), (20, 25), (25, 25)]
        assert len(rec.of("complete")) == 1
        assert "Failed to save checkpoint" in caplog.text
        assert await store.load_persisted_result() is None

    @pytest.mark.asyncio
    async def test_oracle_error_goes_to_others(self, make_source, failing_oracle, store, caplog):
        oracle = failing_oracle({"item_0003"})
        result = await ScanCoordinator(make_source(5), oracle, store).run(False)
        assert result is not None
        assert result.others == ("item_0003",)
        assert result.buckets[BucketKey.A] == (
            "item_0000", "item_0001", "item_0002", "item_0004",
        )
        assert "Oracle failed for item_0003" in caplog.text

    @pytest.mark.asyncio
    async def test_source_error_propagates_and_releases_lock(self, oracle, store):
        class BrokenSource(MemoryItemSource):
            async def list_items(self):
                raise RuntimeError("library unavailable")

        coordinator = ScanCoordinator(BrokenSource([]), oracle, store)
        with pytest.raises(RuntimeError):
            await coordinator.run(False)
        assert coordinator.is_active is False


class TestMutualExclusion:
    @pytest.mark.asyncio
    async def test_second_run_while_active_is_noop(self, source_25, oracle, store):
        second = Recorder()
        nested: list[object] = []

        async def on_progress(processed, total):
            if not nested:
                assert coordinator.is_active
                nested.append(await coordinator.run(True, second.observer()))

        coordinator = ScanCoordinator(source_25, oracle, store)
        result = await coordinator.run(False, ScanObserver(on_progress=on_progress))
        assert nested == [None]
        assert second.events == []
        assert result is not None
        assert result.classified_count == 25
        assert len(oracle.calls) == 25

    @pytest.mark.asyncio
    async def test_concurrent_tasks_only_one_runs(self, source_25, oracle, store):
        coordinator = ScanCoordinator(source_25, oracle, store)
        first = asyncio.create_task(coordinator.run(False))
        await asyncio.sleep(0)
        assert coordinator.is_active
        assert await coordinator.run(False) is None
        assert (await first) is not None
        assert len(oracle.calls) == 25

    @pytest.mark.asyncio
    async def test_flag_released_after_completion(self, source_25, oracle, store):
        coordinator = ScanCoordinator(source_25, oracle, store)
        assert await coordinator.run(False) is not None
        assert coordinator.is_active is False
        assert await coordinator.run(False) is not None


class TestRunId:
    def test_format(self):
        run_id = generate_run_id()
        date, time_part, short = run_id.split("_")
        assert len(date) == 8 and len(time_part) == 6 and len(short) == 5


# --- Helpers ---


async def _partial_checkpoint(
    source: MemoryItemSource, oracle: BaseOracle, processed: int
) -> RunCheckpoint:
    """Checkpoint equivalent to an interrupted run after ``processed`` items."""
    items = await source.list_items()
    acc = Accumulator()
    for item in items[:processed]:
        acc.add(item.id, oracle.classify(item))
    return RunCheckpoint.from_snapshot(
        acc.snapshot(),
        processed_count=processed,
        total_count=len(items),
        fingerprint=compute_fingerprint(item.id for item in items),
    )
