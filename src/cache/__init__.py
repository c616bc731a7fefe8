"""Dependency cache for pipeline runs.

Restores provisioned dependency state keyed by a fingerprint of the
dependency manifests before steps run, and persists it afterward.
Cache failures never affect a run's reported status.

Public API:
    - DependencyCacheManager: Fingerprint, restore and save
    - compute_fingerprint: Pure fingerprint function over manifest contents
    - CacheEntry: A stored cache blob
    - CacheStore: Interface for cache persistence backends
    - InMemoryCacheStore: Process-local store
    - DirectoryCacheStore: One archive file per fingerprint on disk
    - CacheError: Base exception for cache failures
"""

from .exceptions import CacheArchiveError, CacheError, CacheStoreError
from .fingerprint import compute_fingerprint
from .manager import DependencyCacheManager
from .models import CacheEntry
from .store import CacheStore, DirectoryCacheStore, InMemoryCacheStore

__all__ = [
    "DependencyCacheManager",
    "compute_fingerprint",
    "CacheEntry",
    "CacheStore",
    "InMemoryCacheStore",
    "DirectoryCacheStore",
    "CacheError",
    "CacheStoreError",
    "CacheArchiveError",
]
