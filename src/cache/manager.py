"""DependencyCacheManager - restores and persists dependency state."""

import gzip
import hashlib
import io
import logging
import os
import platform
import tarfile
from pathlib import Path
from typing import Iterable, Iterator, Optional

from src.workspace import ExecutionContext

from .exceptions import CacheArchiveError, CacheError
from .fingerprint import DEFAULT_PREFIX, compute_fingerprint
from .models import CacheEntry
from .store import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_MANIFESTS = ("Cargo.lock", "Cargo.toml")
DEFAULT_CACHE_PATHS = (".cargo/registry", ".cargo/git", "target")


def _normalize_member(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    return info


def content_digest(blob: bytes) -> str:
    """Digest of an archive's member names, types and file contents.

    Unlike a digest of the raw blob, this ignores timestamps, so two
    archives of identical dependency state compare equal.
    """
    hasher = hashlib.sha256()
    try:
        with tarfile.open(fileobj=io.BytesIO(blob), mode="r:gz") as tar:
            for member in tar:
                hasher.update(f"{member.name}\x00{member.type!r}\x00{member.linkname}\x00".encode())
                if member.isfile():
                    extracted = tar.extractfile(member)
                    if extracted is not None:
                        hasher.update(extracted.read())
    except (tarfile.TarError, OSError, EOFError) as e:
        raise CacheArchiveError(str(e)) from e
    return hasher.hexdigest()


class DependencyCacheManager:
    """Restores a dependency cache before steps run and saves it after.

    The cache key is a fingerprint of the dependency manifests plus the
    toolchain version, OS and job name, so any change to declared
    dependencies invalidates it. Cache failures are logged and absorbed:
    restore degrades to a miss and save reports False.

    Example:
        manager = DependencyCacheManager(store=DirectoryCacheStore(Path("/var/cache/ci")))
        key = manager.fingerprint(context)
        previous = manager.restore(key, context)
        # ... run steps ...
        manager.save(key, context, previous)
    """

    def __init__(
        self,
        store: CacheStore,
        manifest_files: Iterable[str] = DEFAULT_MANIFESTS,
        cache_paths: Iterable[str] = DEFAULT_CACHE_PATHS,
        job_name: str = "build",
        prefix: str = DEFAULT_PREFIX,
    ):
        """Initialize the manager.

        Args:
            store: Backend holding cache entries.
            manifest_files: Workspace-relative manifests hashed into the key.
            cache_paths: Workspace-relative paths archived as dependency state.
            job_name: Job identifier included in the key.
            prefix: Key prefix; bump it to invalidate every entry.
        """
        self._store = store
        self._manifest_files = tuple(manifest_files)
        self._cache_paths = tuple(cache_paths)
        self._job_name = job_name
        self._prefix = prefix

    @property
    def cache_paths(self) -> tuple[str, ...]:
        return self._cache_paths

    # -------------------- Fingerprint --------------------

    def fingerprint(self, context: ExecutionContext) -> str:
        """Compute the cache key for the context's manifests.

        Raises:
            CacheError: If a manifest exists but cannot be read.
        """
        manifests: dict[str, Optional[bytes]] = {}
        for name in self._manifest_files:
            try:
                manifests[name] = (context.workspace / name).read_bytes()
            except FileNotFoundError:
                manifests[name] = None
            except OSError as e:
                raise CacheError(f"Cannot read manifest {name}: {e}") from e

        identifiers = {
            "job": self._job_name,
            "os": platform.system(),
            "toolchain": context.toolchain_version or "",
        }
        return compute_fingerprint(manifests, identifiers, prefix=self._prefix)

    # -------------------- Archiving --------------------

    def _iter_cached_files(self, workspace: Path) -> Iterator[Path]:
        for rel in self._cache_paths:
            root = workspace / rel
            if not root.exists() and not root.is_symlink():
                continue
            yield root
            if root.is_symlink() or not root.is_dir():
                continue
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames.sort()
                for name in dirnames:
                    yield Path(dirpath) / name
                for name in sorted(filenames):
                    yield Path(dirpath) / name

    def pack(self, context: ExecutionContext) -> Optional[bytes]:
        """Archive the cached paths, or return None when none exist."""
        buffer = io.BytesIO()
        count = 0
        try:
            with gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0) as gz:
                with tarfile.open(fileobj=gz, mode="w") as tar:
                    for path in self._iter_cached_files(context.workspace):
                        arcname = path.relative_to(context.workspace).as_posix()
                        tar.add(path, arcname=arcname, recursive=False, filter=_normalize_member)
                        count += 1
        except (tarfile.TarError, OSError) as e:
            raise CacheArchiveError(str(e)) from e

        if count == 0:
            return None
        return buffer.getvalue()

    def unpack(self, blob: bytes, context: ExecutionContext) -> None:
        """Extract an archive over the workspace."""
        try:
            with tarfile.open(fileobj=io.BytesIO(blob), mode="r:gz") as tar:
                tar.extractall(context.workspace, filter="data")
        except (tarfile.TarError, OSError, EOFError, TypeError) as e:
            raise CacheArchiveError(str(e)) from e

    # -------------------- Public API --------------------

    def restore(self, fingerprint: str, context: ExecutionContext) -> Optional[CacheEntry]:
        """Restore cached dependency state into the workspace.

        Returns:
            The restored entry, or None on a miss or any cache failure.
        """
        try:
            entry = self._store.load(fingerprint)
            if entry is None:
                logger.info("Cache miss for %s", fingerprint, extra={"fingerprint": fingerprint})
                return None
            self.unpack(entry.blob, context)
        except CacheError as e:
            logger.warning("Cache restore failed, continuing cold: %s", e)
            return None

        logger.info(
            "Cache hit for %s (%d bytes restored)",
            fingerprint,
            entry.size,
            extra={"fingerprint": fingerprint},
        )
        return entry

    def save(
        self,
        fingerprint: str,
        context: ExecutionContext,
        previous: Optional[CacheEntry] = None,
    ) -> bool:
        """Persist the current dependency state, best effort.

        Args:
            fingerprint: Key to store under.
            context: Context whose workspace holds the state.
            previous: Entry restored at the start of the run, if any.
                Nothing is written when the state is unchanged from it.

        Returns:
            True if an entry was written.
        """
        try:
            blob = self.pack(context)
            if blob is None:
                logger.info("Nothing to cache for %s", fingerprint)
                return False
            if previous is not None and content_digest(previous.blob) == content_digest(blob):
                logger.info("Cache for %s unchanged, skipping save", fingerprint)
                return False
            entry = CacheEntry(key=fingerprint, blob=blob)
            self._store.store(entry)
        except CacheError as e:
            logger.warning("Cache save failed for %s: %s", fingerprint, e)
            return False

        logger.info(
            "Saved cache %s (%d bytes)", fingerprint, entry.size, extra={"fingerprint": fingerprint}
        )
        return True
