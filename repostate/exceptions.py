"""Shared exception types for repostate."""


class RepostateError(Exception):
    """Base exception for all repostate errors."""


class ConfigError(RepostateError):
    """Configuration is invalid or missing."""


class ProcessSpawnError(RepostateError):
    """The external command could not be started."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Failed to start {command}: {reason}")
        self.command = command
        self.reason = reason
