"""Data models for repository events and admission rules."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

BRANCH_REF_PREFIX = "refs/heads/"


class EventKind(Enum):
    """Repository event kinds that can start a pipeline run."""

    PULL_REQUEST = "pull_request"
    PUSH = "push"

    @classmethod
    def parse(cls, value: str) -> Optional["EventKind"]:
        """Return the matching kind, or None for an unknown value."""
        try:
            return cls(value)
        except ValueError:
            return None


def normalize_branch(branch: Optional[str]) -> Optional[str]:
    """Strip a ``refs/heads/`` prefix so refs and bare names compare equal."""
    if not branch:
        return None
    if branch.startswith(BRANCH_REF_PREFIX):
        return branch[len(BRANCH_REF_PREFIX):]
    return branch


@dataclass(frozen=True)
class TriggerEvent:
    """An incoming repository event.

    Attributes:
        kind: Raw event kind. Kept as a string so unknown kinds can be
            represented and rejected instead of failing to parse.
        branch: Target branch for push events (None when absent).
    """

    kind: str
    branch: Optional[str] = None

    @property
    def event_kind(self) -> Optional[EventKind]:
        return EventKind.parse(self.kind)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"kind": self.kind, "branch": self.branch}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TriggerEvent":
        """Deserialize from an event record.

        Accepts ``{"kind": ..., "branch": ...}`` as well as GitHub-style
        payloads that carry the branch as ``ref: refs/heads/<name>``.
        """
        kind = data.get("kind") or data.get("event_name") or ""
        branch = data.get("branch") or data.get("ref")
        return cls(kind=str(kind), branch=normalize_branch(branch))


@dataclass(frozen=True)
class TriggerRule:
    """Admission rule for one event kind.

    Attributes:
        kind: The event kind this rule applies to.
        branches: Branches that admit the event. None admits any branch.
    """

    kind: EventKind
    branches: Optional[frozenset[str]] = None

    def admits(self, event: TriggerEvent) -> bool:
        if self.branches is None:
            return True
        return normalize_branch(event.branch) in self.branches
