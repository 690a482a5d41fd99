# src/core/fingerprint.py - v1
"""Content fingerprint of an ordered item list.

Stored alongside a run checkpoint so a resume can tell "same number of items"
apart from "same items in the same order".
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable


def _encode(value: str) -> bytes:
    # Undecodable filename bytes survive as lone surrogates; map them back.
    return value.encode("utf-8", errors="surrogateescape")


def compute_fingerprint(item_ids: Iterable[str]) -> str:
    """SHA-256 over the ordered identifiers, each length-prefixed.

    Args:
        item_ids: Identifiers in enumeration order.

    Returns:
        Hex digest. Order-sensitive: a reordered list yields a new digest.
    """
    digest = hashlib.sha256()
    for item_id in item_ids:
        raw = _encode(item_id)
        digest.update(f"{len(raw)}:".encode("ascii"))
        digest.update(raw)
    return digest.hexdigest()


def unit_hash(value: str) -> float:
    """Deterministic hash of a string mapped into [0, 1)."""
    raw = hashlib.sha256(_encode(value)).digest()
    return int.from_bytes(raw[:8], "big") / 2**64
