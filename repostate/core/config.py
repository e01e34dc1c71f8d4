"""Unified configuration via pydantic-settings."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GIT_ENVIRONMENT = {
    # Never block on a credential prompt; there is no terminal to answer it.
    "GIT_TERMINAL_PROMPT": "0",
    # Stable English messages keep error classification predictable.
    "LC_ALL": "C",
}


class RepostateConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REPOSTATE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Repository
    repository_path: Path | None = None
    git_executable: str | None = None
    known_remotes: list[str] = ["origin", "upstream"]

    # Process control
    command_timeout_ms: int = 30_000
    network_timeout_ms: int = 300_000
    poll_interval_ms: int = 10
    max_workers: int = 4
    environment: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_GIT_ENVIRONMENT)
    )

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None
    log_max_bytes: int = 10_485_760
    log_backup_count: int = 5

    @field_validator("repository_path")
    @classmethod
    def resolve_repository_path(cls, v: Path | None) -> Path | None:
        if v is None:
            return None
        return v.expanduser().resolve()

    @field_validator("known_remotes", mode="before")
    @classmethod
    def parse_known_remotes(cls, v: list[str] | str) -> list[str]:
        if isinstance(v, str):
            return [r.strip() for r in v.split(",") if r.strip()]
        return v

    @field_validator(
        "command_timeout_ms", "network_timeout_ms", "poll_interval_ms", "max_workers"
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level
