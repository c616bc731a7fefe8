"""Pipeline configuration loaded from defaults, a definition file and env."""

from .exceptions import ConfigError
from .settings import DEFAULT_STEP_ENV, PipelineConfig

__all__ = [
    "PipelineConfig",
    "DEFAULT_STEP_ENV",
    "ConfigError",
]
