"""Source snapshot providers."""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from .exceptions import CheckoutError

logger = logging.getLogger(__name__)

# Top-level entries never copied into a snapshot: VCS metadata and build output
DEFAULT_IGNORE = (".git", "target")


class SourceCheckout(ABC):
    """Interface for producing an exact snapshot of the source tree."""

    @abstractmethod
    def checkout(self, destination: Path) -> Optional[str]:
        """Materialize the source tree into ``destination``.

        Args:
            destination: Empty directory to populate.

        Returns:
            The revision the snapshot was taken from, if known.

        Raises:
            CheckoutError: If the snapshot cannot be produced.
        """
        pass


class DirectorySnapshotCheckout(SourceCheckout):
    """Copies a local source directory into the workspace.

    The revision is taken from ``CI_REVISION`` when set, otherwise read
    from the source directory's ``.git/HEAD`` when present.
    """

    def __init__(
        self,
        source_dir: Path,
        ignore: Iterable[str] = DEFAULT_IGNORE,
        revision: Optional[str] = None,
    ):
        self._source_dir = Path(source_dir)
        self._ignore = tuple(ignore)
        self._revision = revision or os.environ.get("CI_REVISION")

    def _read_revision(self) -> Optional[str]:
        head = self._source_dir / ".git" / "HEAD"
        try:
            content = head.read_text().strip()
        except OSError:
            return None
        if content.startswith("ref: "):
            ref_path = self._source_dir / ".git" / content[len("ref: "):]
            try:
                return ref_path.read_text().strip()
            except OSError:
                return None
        return content or None

    def _ignore_at_root(self, directory: str, names: list[str]) -> set[str]:
        """Skip ignored names only at the top of the source tree."""
        if Path(directory) != self._source_dir:
            return set()
        return {name for name in names if name in self._ignore}

    def checkout(self, destination: Path) -> Optional[str]:
        if not self._source_dir.is_dir():
            raise CheckoutError(str(self._source_dir), "not a directory")

        try:
            shutil.copytree(
                self._source_dir,
                destination,
                ignore=self._ignore_at_root,
                symlinks=True,
                dirs_exist_ok=True,
            )
        except (OSError, shutil.Error) as e:
            raise CheckoutError(str(self._source_dir), str(e)) from e

        revision = self._revision or self._read_revision()
        logger.info(
            "Snapshot of %s taken at revision %s", self._source_dir, revision or "unknown"
        )
        return revision
