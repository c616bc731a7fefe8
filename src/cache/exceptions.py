"""Exceptions for the cache module."""


class CacheError(Exception):
    """Base exception for cache errors.

    Cache errors are non-fatal: callers log them and continue cold.
    """

    pass


class CacheStoreError(CacheError):
    """Raised when the backing store cannot be read or written."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Cache store failure for '{key}': {reason}")


class CacheArchiveError(CacheError):
    """Raised when dependency state cannot be packed or unpacked."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Cache archive failure: {reason}")
