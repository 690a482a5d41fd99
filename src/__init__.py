# src/__init__.py - v1
"""bucketscan: resumable, checkpointed classification of item collections.

Quick start:
    from bucketscan import ScanService, MemoryItemSource
"""

from bucketscan.api.facade import ScanService
from bucketscan.core.models import BucketKey, Item, ScanResult, ScanSnapshot
from bucketscan.sources.directory_source import DirectoryItemSource
from bucketscan.sources.memory_source import MemoryItemSource
from bucketscan.version import __version__

__all__ = [
    "BucketKey",
    "DirectoryItemSource",
    "Item",
    "MemoryItemSource",
    "ScanResult",
    "ScanService",
    "ScanSnapshot",
    "__version__",
]
