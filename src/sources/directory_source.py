# src/sources/directory_source.py - v1
"""Directory item source: files under a root, filtered by extension.

Items are ordered oldest first (modification time, then relative path) so the
order is stable across runs while the directory is untouched. Identifiers are
POSIX paths relative to the root.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from bucketscan.core.models import Item
from bucketscan.sources.base_item_source import BaseItemSource

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = ("jpg", "jpeg", "png", "heic", "gif", "webp")


class DirectoryItemSource(BaseItemSource):
    """Enumerate matching files under a directory.

    Args:
        root: Directory to scan.
        extensions: Extensions to include (without dot, case-insensitive).
            Empty means every file.
        recursive: Descend into subdirectories.
    """

    def __init__(
        self,
        root: Path | str,
        extensions: list[str] | tuple[str, ...] = DEFAULT_EXTENSIONS,
        recursive: bool = True,
    ) -> None:
        self._root = Path(root).expanduser()
        self._extensions = {e.lower().lstrip(".") for e in extensions}
        self._recursive = recursive

    @property
    def root(self) -> Path:
        return self._root

    async def is_authorized(self) -> bool:
        """Directory exists and is readable + listable."""
        return self._root.is_dir() and os.access(self._root, os.R_OK | os.X_OK)

    async def list_items(self) -> list[Item]:
        if not self._root.is_dir():
            msg = f"Scan root is not a directory: {self._root}"
            raise ValueError(msg)

        pattern_fn = self._root.rglob if self._recursive else self._root.glob
        found: list[tuple[float, str, Path]] = []
        for path in pattern_fn("*"):
            if not path.is_file():
                continue
            if self._extensions and path.suffix.lower().lstrip(".") not in self._extensions:
                continue
            rel = path.relative_to(self._root).as_posix()
            if not _is_utf8(rel):
                logger.warning(
                    "Skipping %r: file name is not valid UTF-8", os.fsencode(rel)
                )
                continue
            found.append((path.stat().st_mtime, rel, path))

        found.sort(key=lambda entry: (entry[0], entry[1]))
        items = [
            Item(id=rel, position=i, path=str(path))
            for i, (_, rel, path) in enumerate(found)
        ]
        logger.info(
            "Enumerated %s: %d items (recursive=%s)",
            self._root, len(items), self._recursive,
        )
        return items


def _is_utf8(name: str) -> bool:
    """False for names holding undecodable bytes (lone surrogates)."""
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True
