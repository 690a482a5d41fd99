# src/store/checkpoint_store.py - v1
"""Checkpoint and result persistence over a record store.

Two independent records:

  - ``scanProgress``: the RunCheckpoint of an in-flight run. Its presence
    means a resume is possible.
  - ``scanResult``: the PersistedResult of the last completed run.

No method raises on persistence faults. Writes report success as a bool and
log failures; reads treat missing, unreadable and unparseable records alike
as absent.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from bucketscan.core.models import PersistedResult, RunCheckpoint, ScanResult
from bucketscan.store.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)

CHECKPOINT_RECORD = "scanProgress"
RESULT_RECORD = "scanResult"


class CheckpointStore:
    """Typed access to the checkpoint and result records."""

    def __init__(self, records: BaseRecordStore) -> None:
        self._records = records

    @property
    def records(self) -> BaseRecordStore:
        return self._records

    # --- Run checkpoint ---

    async def save_checkpoint(self, checkpoint: RunCheckpoint) -> bool:
        """Overwrite the run checkpoint. Returns False if the write failed."""
        try:
            await self._records.put(CHECKPOINT_RECORD, checkpoint.to_json())
        except Exception as exc:
            logger.error(
                "Failed to save checkpoint at %d/%d: %s",
                checkpoint.processed_count, checkpoint.total_count, exc,
                extra=_position(checkpoint),
            )
            return False
        logger.debug(
            "Checkpoint saved: %d/%d",
            checkpoint.processed_count, checkpoint.total_count,
            extra=_position(checkpoint),
        )
        return True

    async def load_checkpoint(self) -> RunCheckpoint | None:
        """Load the run checkpoint, or None if absent or corrupt."""
        raw = await self._safe_get(CHECKPOINT_RECORD)
        if raw is None:
            return None
        try:
            return RunCheckpoint.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable checkpoint: %s", exc)
            return None

    async def clear_checkpoint(self) -> bool:
        """Delete the run checkpoint. Returns False if the delete failed."""
        try:
            await self._records.delete(CHECKPOINT_RECORD)
        except Exception as exc:
            logger.error("Failed to clear checkpoint: %s", exc)
            return False
        return True

    async def has_pending_checkpoint(self) -> bool:
        """True when a checkpoint record exists (parseable or not)."""
        try:
            return await self._records.exists(CHECKPOINT_RECORD)
        except Exception as exc:
            logger.warning("Failed to check for pending checkpoint: %s", exc)
            return False

    # --- Persisted result ---

    async def save_persisted_result(self, result: ScanResult) -> bool:
        """Overwrite the persisted result. Returns False if the write failed."""
        try:
            document = result.to_document().model_dump_json()
            await self._records.put(RESULT_RECORD, document)
        except Exception as exc:
            logger.error("Failed to save scan result: %s", exc)
            return False
        logger.debug("Scan result saved (%d items)", result.classified_count)
        return True

    async def load_persisted_result(self) -> ScanResult | None:
        """Load the last completed result, or None if absent or corrupt."""
        raw = await self._safe_get(RESULT_RECORD)
        if raw is None:
            return None
        try:
            return PersistedResult.model_validate_json(raw).to_result()
        except ValidationError as exc:
            logger.warning("Discarding unreadable scan result: %s", exc)
            return None

    async def _safe_get(self, name: str) -> str | None:
        try:
            return await self._records.get(name)
        except Exception as exc:
            logger.warning("Failed to read record %s: %s", name, exc)
            return None


def _position(checkpoint: RunCheckpoint) -> dict[str, int]:
    return {"processed": checkpoint.processed_count, "total": checkpoint.total_count}
