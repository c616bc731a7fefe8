"""Deterministic cache keys derived from dependency manifests."""

import hashlib
from typing import Mapping, Optional

DEFAULT_PREFIX = "v1-deps"

# Number of hex digits of the digest kept in the key
KEY_DIGEST_LENGTH = 20

_MISSING_MARKER = b"\x00<missing>\x00"


def compute_fingerprint(
    manifests: Mapping[str, Optional[bytes]],
    identifiers: Optional[Mapping[str, str]] = None,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """Compute a cache key from manifest contents and ambient identifiers.

    The result depends only on the arguments: identical manifests and
    identifiers always give the same key, and any change to a manifest's
    contents gives a different one. Ordering of the mappings is irrelevant.

    Args:
        manifests: Manifest name to file contents. None marks a manifest
            that does not exist, which hashes differently from an empty file.
        identifiers: Extra inputs such as toolchain version and OS.
        prefix: Human-readable key prefix.

    Returns:
        A key like ``"v1-deps-3f2a9c..."``.
    """
    hasher = hashlib.sha256()
    for name in sorted(manifests):
        content = manifests[name]
        hasher.update(name.encode())
        hasher.update(b"\x00")
        if content is None:
            hasher.update(_MISSING_MARKER)
        else:
            hasher.update(len(content).to_bytes(8, "big"))
            hasher.update(content)

    for name in sorted(identifiers or {}):
        hasher.update(f"\x01{name}={identifiers[name]}".encode())

    return f"{prefix}-{hasher.hexdigest()[:KEY_DIGEST_LENGTH]}"
