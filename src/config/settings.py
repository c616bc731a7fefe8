"""PipelineConfig - the configuration surface consumed by the pipeline.

Values are resolved in this order, highest precedence first:
    1. Environment variables (a .env file is loaded by the CLI)
    2. JSON pipeline definition file (CI_PIPELINE_FILE)
    3. Built-in defaults matching the standard cargo workflow
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from src.cache.manager import DEFAULT_CACHE_PATHS, DEFAULT_MANIFESTS
from src.executor import Step, default_steps, step_from_dict
from src.provision import ToolchainSpec
from src.trigger.evaluator import DEFAULT_TARGET_BRANCH

from .exceptions import ConfigError

DEFAULT_STEP_TIMEOUT = 3600.0

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "ci-pipeline"

# Keeps the cargo registry inside the workspace so it can be cached
DEFAULT_STEP_ENV = {"CARGO_HOME": "{workspace}/.cargo"}


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _require_dict(key: str, value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(key, f"must be an object, got {type(value).__name__}")
    return value


def _require_str_list(key: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(key, "must be a list of strings")
    return tuple(value)


def _parse_timeout(key: str, value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(key, f"not a number: {value!r}") from e
    if timeout <= 0:
        return None
    return timeout


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for one pipeline.

    Attributes:
        job_name: Name of the single job, part of the cache key.
        target_branch: Branch whose pushes admit a run.
        toolchain: Toolchain channel, profile and components.
        steps: Ordered steps; never reordered.
        manifest_files: Dependency manifests hashed into the cache key.
        cache_paths: Workspace paths saved as dependency state.
        cache_dir: Directory of the on-disk cache store. None keeps the
            cache in memory for the life of the process.
        workspace_root: Where run workspaces are created (temp dir if None).
        step_timeout: Default per-step timeout in seconds (None disables).
        archive_dir: Where finished runs are archived as JSON (None disables).
        step_env: Extra environment for commands; ``{workspace}`` expands
            to the workspace path.
    """

    job_name: str = "build"
    target_branch: str = DEFAULT_TARGET_BRANCH
    toolchain: ToolchainSpec = field(default_factory=ToolchainSpec)
    steps: tuple[Step, ...] = field(default_factory=default_steps)
    manifest_files: tuple[str, ...] = DEFAULT_MANIFESTS
    cache_paths: tuple[str, ...] = DEFAULT_CACHE_PATHS
    cache_dir: Optional[Path] = None
    workspace_root: Optional[Path] = None
    step_timeout: Optional[float] = DEFAULT_STEP_TIMEOUT
    archive_dir: Optional[Path] = None
    step_env: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_STEP_ENV))

    @staticmethod
    def read_definition(path: Path) -> dict[str, Any]:
        """Read a JSON pipeline definition into constructor keyword arguments.

        Raises:
            ConfigError: If the file is unreadable or malformed.
        """
        try:
            data = json.loads(Path(path).read_text())
        except OSError as e:
            raise ConfigError("pipeline_file", f"cannot read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError("pipeline_file", f"invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("pipeline_file", "top level must be an object")

        values: dict[str, Any] = {}
        if "name" in data:
            values["job_name"] = str(data["name"])
        if "target_branch" in data:
            values["target_branch"] = str(data["target_branch"])
        if "toolchain" in data:
            values["toolchain"] = ToolchainSpec.from_dict(_require_dict("toolchain", data["toolchain"]))
        if "steps" in data:
            if not isinstance(data["steps"], list):
                raise ConfigError("steps", "must be a list")
            try:
                values["steps"] = tuple(step_from_dict(s) for s in data["steps"])
            except (ValueError, TypeError, AttributeError) as e:
                raise ConfigError("steps", str(e)) from e
        cache = _require_dict("cache", data.get("cache", {}))
        if "manifests" in cache:
            values["manifest_files"] = _require_str_list("cache.manifests", cache["manifests"])
        if "paths" in cache:
            values["cache_paths"] = _require_str_list("cache.paths", cache["paths"])
        if "step_timeout" in data:
            values["step_timeout"] = _parse_timeout("step_timeout", data["step_timeout"])
        if "env" in data:
            env = _require_dict("env", data["env"])
            values["step_env"] = {str(k): str(v) for k, v in env.items()}
        return values

    @classmethod
    def load(
        cls,
        pipeline_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "PipelineConfig":
        """Build a config from defaults, a definition file and the environment.

        Args:
            pipeline_file: JSON definition. Defaults to CI_PIPELINE_FILE.
            environ: Environment mapping. Defaults to os.environ.

        Raises:
            ConfigError: If any source holds an invalid value.
        """
        env = os.environ if environ is None else environ

        file_path = pipeline_file or env.get("CI_PIPELINE_FILE")
        values = cls.read_definition(Path(file_path)) if file_path else {}

        if env.get("CI_TARGET_BRANCH"):
            values["target_branch"] = env["CI_TARGET_BRANCH"]

        toolchain = values.get("toolchain", ToolchainSpec())
        toolchain_overrides: dict[str, Any] = toolchain.to_dict()
        if env.get("CI_TOOLCHAIN"):
            toolchain_overrides["channel"] = env["CI_TOOLCHAIN"]
        if env.get("CI_TOOLCHAIN_PROFILE"):
            toolchain_overrides["profile"] = env["CI_TOOLCHAIN_PROFILE"]
        if "CI_TOOLCHAIN_COMPONENTS" in env:
            toolchain_overrides["components"] = list(_split_list(env["CI_TOOLCHAIN_COMPONENTS"]))
        values["toolchain"] = ToolchainSpec.from_dict(toolchain_overrides)

        values["cache_dir"] = Path(env["CI_CACHE_DIR"]) if env.get("CI_CACHE_DIR") else DEFAULT_CACHE_DIR
        if env.get("CI_WORKSPACE_ROOT"):
            values["workspace_root"] = Path(env["CI_WORKSPACE_ROOT"])
        if "CI_STEP_TIMEOUT" in env:
            values["step_timeout"] = _parse_timeout("CI_STEP_TIMEOUT", env["CI_STEP_TIMEOUT"])
        if env.get("CI_ARCHIVE_DIR"):
            values["archive_dir"] = Path(env["CI_ARCHIVE_DIR"])

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Check invariants that the dataclass types cannot express.

        Raises:
            ConfigError: On the first invalid value found.
        """
        if not self.target_branch:
            raise ConfigError("target_branch", "must not be empty")
        if not self.steps:
            raise ConfigError("steps", "at least one step is required")
        names = [step.name for step in self.steps]
        if len(set(names)) != len(names):
            raise ConfigError("steps", f"duplicate step names in {names}")
        for rel in self.cache_paths:
            if Path(rel).is_absolute() or ".." in Path(rel).parts:
                raise ConfigError("cache_paths", f"must be inside the workspace: {rel}")
