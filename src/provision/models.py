"""Data models for the provision module."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ToolchainSpec:
    """Declared toolchain for a run.

    Attributes:
        channel: Release channel to install (e.g. "stable").
        profile: Installation profile (e.g. "minimal").
        components: Auxiliary components installed alongside the toolchain.
        override: Pin the channel for the workspace directory.
    """

    channel: str = "stable"
    profile: str = "minimal"
    components: tuple[str, ...] = ("rustfmt", "clippy")
    override: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "channel": self.channel,
            "profile": self.profile,
            "components": list(self.components),
            "override": self.override,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolchainSpec":
        """Deserialize from dictionary, falling back to defaults."""
        defaults = cls()
        components = data.get("components", defaults.components)
        if isinstance(components, str):
            components = [c.strip() for c in components.split(",") if c.strip()]
        return cls(
            channel=data.get("channel", defaults.channel),
            profile=data.get("profile", defaults.profile),
            components=tuple(components),
            override=bool(data.get("override", defaults.override)),
        )
