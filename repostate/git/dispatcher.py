"""Single execution path for git commands and result classification."""

from collections.abc import Sequence
from pathlib import Path

import structlog

from repostate.core.config import DEFAULT_GIT_ENVIRONMENT
from repostate.core.events import OPERATION_LOG, Event, EventBus
from repostate.core.process import (
    DEFAULT_TIMEOUT_MS,
    CommandResult,
    LineCallback,
    ProcessRunner,
)
from repostate.git.models import ErrorKind, OperationOutcome

logger = structlog.get_logger()

NOT_A_REPOSITORY_EXIT_CODE = 128
DEFAULT_NETWORK_TIMEOUT_MS = 300_000

_NOT_A_REPOSITORY_MARKERS = ("not a git repository",)
_PERMISSION_MARKERS = (
    "permission denied",
    "authentication failed",
    "could not read username",
    "could not read password",
    "access denied",
    "the requested url returned error: 403",
    "the requested url returned error: 401",
    "insufficient permission",
)
_NETWORK_MARKERS = (
    "could not resolve host",
    "could not resolve hostname",
    "unable to access",
    "connection refused",
    "connection timed out",
    "operation timed out",
    "network is unreachable",
    "no route to host",
    "the remote end hung up unexpectedly",
    "early eof",
    "could not read from remote repository",
    "ssl certificate problem",
    "failed to connect",
)


def classify_result(result: CommandResult) -> ErrorKind:
    """Map a raw process result onto the error taxonomy.

    The exit code decides success. Text is only consulted to refine a
    failure, with permission problems checked before network ones since
    git reports a rejected SSH key as both.
    """
    if result.cancelled:
        return ErrorKind.CANCELLED
    if result.success:
        return ErrorKind.SUCCESS

    text = f"{result.error}\n{result.output}".lower()
    if result.exit_code == NOT_A_REPOSITORY_EXIT_CODE and any(
        marker in text for marker in _NOT_A_REPOSITORY_MARKERS
    ):
        return ErrorKind.NOT_A_REPOSITORY
    if any(marker in text for marker in _PERMISSION_MARKERS):
        return ErrorKind.PERMISSION_DENIED
    if any(marker in text for marker in _NETWORK_MARKERS):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.FAILED


def is_valid_repository(path: str | Path) -> bool:
    """Structural check: a ``.git`` entry, or the three bare-repository markers."""
    repo = Path(path)
    if not repo.exists():
        return False
    if (repo / ".git").exists():
        return True
    return all((repo / marker).exists() for marker in ("HEAD", "objects", "refs"))


class CommandDispatcher:
    """Runs git through a ``ProcessRunner`` and classifies every result.

    ``last_error`` is a convenience cache for single-threaded callers: it
    is overwritten by every unsuccessful call, so concurrent callers should
    read the ``OperationOutcome`` each call returns instead.
    """

    def __init__(
        self,
        repository_path: str | Path | None = None,
        *,
        runner: ProcessRunner | None = None,
        git_executable: str = "git",
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        network_timeout_ms: int = DEFAULT_NETWORK_TIMEOUT_MS,
        events: EventBus | None = None,
    ) -> None:
        self.repository_path = str(repository_path) if repository_path else ""
        self.runner = runner or ProcessRunner(
            timeout_ms=timeout_ms, environment=DEFAULT_GIT_ENVIRONMENT
        )
        self.git_executable = git_executable
        self.timeout_ms = timeout_ms
        self.network_timeout_ms = network_timeout_ms
        self.events = events or EventBus()
        self.last_error = ""

    def is_valid_repository(self, path: str | Path | None = None) -> bool:
        target = path if path is not None else self.repository_path
        return bool(target) and is_valid_repository(target)

    def execute(
        self,
        args: Sequence[str],
        *,
        cwd: str | Path | None = None,
        timeout_ms: int | None = None,
        require_repository: bool = False,
        on_stderr_line: LineCallback | None = None,
    ) -> OperationOutcome:
        """Run ``git <args>`` and return the classified outcome."""
        command = [self.git_executable, *args]
        workdir = cwd if cwd is not None else (self.repository_path or None)

        if require_repository and not self.is_valid_repository(workdir):
            outcome = OperationOutcome(
                kind=ErrorKind.NOT_A_REPOSITORY,
                error=f"Not a valid git repository: {workdir or '(none)'}",
                exit_code=NOT_A_REPOSITORY_EXIT_CODE,
                command=command,
            )
            self.record_failure(outcome)
            return outcome

        logger.debug("git_exec", command=command, cwd=str(workdir) if workdir else None)
        self._log(f"$ {' '.join(command)}")
        result = self.runner.run(
            self.git_executable,
            list(args),
            workdir,
            timeout_ms if timeout_ms is not None else self.timeout_ms,
            on_stderr_line=on_stderr_line,
        )
        outcome = OperationOutcome(
            kind=classify_result(result),
            output=result.output,
            error=result.error,
            exit_code=result.exit_code,
            command=command,
            result=result,
        )
        if not outcome.success:
            self.record_failure(outcome)
        return outcome

    def cancel(self) -> None:
        self.runner.cancel()

    def close(self) -> None:
        self.runner.shutdown()

    def record_failure(self, outcome: OperationOutcome) -> None:
        message = outcome.error.strip() or outcome.output.strip() or outcome.kind.value
        self.last_error = message
        logger.info(
            "git_exec_failed",
            command=outcome.command,
            kind=outcome.kind.value,
            exit_code=outcome.exit_code,
            error=message,
        )
        self._log(message)

    def _log(self, message: str) -> None:
        self.events.emit(Event(name=OPERATION_LOG, data={"message": message}))
