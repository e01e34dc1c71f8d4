"""Bootstrap: configuration, logging and service wiring."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from repostate.core.config import RepostateConfig
from repostate.core.events import EventBus
from repostate.core.process import ProcessRunner, find_git_executable
from repostate.exceptions import ConfigError
from repostate.git.dispatcher import CommandDispatcher
from repostate.git.service import GitService

logger = structlog.get_logger()

LOG_FILE_NAME = "repostate.log"


def load_config(**overrides: Any) -> RepostateConfig:
    """Build a config from the environment, ``.env`` and keyword overrides."""
    try:
        return RepostateConfig(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e


def configure_logging(config: RepostateConfig, *, log_dir: Path | None = None) -> None:
    """Set up structlog with console output and an optional rotating JSON file."""
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(),
        )
    )
    root_logger.addHandler(console_handler)

    target_dir = log_dir if log_dir is not None else config.log_dir
    if target_dir is not None:
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            target_dir / LOG_FILE_NAME,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
            )
        )
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_service(config: RepostateConfig | None = None) -> GitService:
    """Wire runner, dispatcher and event bus into a ready ``GitService``."""
    config = config or load_config()
    git_executable = config.git_executable or find_git_executable()

    runner = ProcessRunner(
        timeout_ms=config.command_timeout_ms,
        poll_interval_ms=config.poll_interval_ms,
        environment=config.environment,
        max_workers=config.max_workers,
    )
    dispatcher = CommandDispatcher(
        config.repository_path,
        runner=runner,
        git_executable=git_executable,
        timeout_ms=config.command_timeout_ms,
        network_timeout_ms=config.network_timeout_ms,
        events=EventBus(),
    )
    service = GitService(
        dispatcher=dispatcher,
        known_remotes=config.known_remotes,
        max_workers=config.max_workers,
    )
    logger.info(
        "service_ready",
        repository_path=service.repository_path or None,
        git_executable=git_executable,
    )
    return service
