"""Exceptions for the config module."""


class ConfigError(Exception):
    """Raised when a configuration value is missing or invalid."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for '{key}': {reason}")
