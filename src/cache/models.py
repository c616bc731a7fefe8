"""Data models for the cache module."""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class CacheEntry:
    """One stored cache blob.

    Attributes:
        key: Fingerprint the entry is stored under.
        blob: Opaque archived dependency state.
        created_at: When the entry was produced.
    """

    key: str
    blob: bytes
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def digest(self) -> str:
        """sha256 of the blob, used to detect unchanged state."""
        return hashlib.sha256(self.blob).hexdigest()

    @property
    def size(self) -> int:
        return len(self.blob)
