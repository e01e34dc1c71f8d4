"""Subprocess runner with output capture, timeout, and cancellation."""

import asyncio
import contextlib
import os
import re
import shutil
import signal
import subprocess
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import IO, Any

import structlog
from pydantic import BaseModel, ConfigDict

from repostate.exceptions import ProcessSpawnError

logger = structlog.get_logger()

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_POLL_INTERVAL_MS = 10

_CHUNK_SIZE = 65536
_READER_JOIN_TIMEOUT = 5.0
_LINE_BREAK_RE = re.compile(rb"[\r\n]")
_WINDOWS_GIT_PATHS = (
    r"C:\Program Files\Git\bin\git.exe",
    r"C:\Program Files (x86)\Git\bin\git.exe",
    r"C:\Git\bin\git.exe",
)

# Wait states
_EXITED = "exited"
_TIMED_OUT = "timed_out"
_CANCELLED = "cancelled"

LineCallback = Callable[[str], None]


class CommandResult(BaseModel):
    """Raw outcome of one external command.

    ``exit_code`` is authoritative: ``success`` never looks at the captured
    text. Results that never reached a real exit (spawn failure, timeout,
    cancellation, death by signal) carry ``-1``.
    """

    model_config = ConfigDict(frozen=True)

    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""
    timed_out: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def error(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    @classmethod
    def failure(
        cls, message: str, *, timed_out: bool = False, cancelled: bool = False
    ) -> "CommandResult":
        return cls(
            exit_code=-1,
            stderr=message.encode("utf-8"),
            timed_out=timed_out,
            cancelled=cancelled,
        )


ResultCallback = Callable[[CommandResult], None]


class _StreamReader(threading.Thread):
    """Drains one pipe into memory, optionally reporting complete lines."""

    def __init__(self, stream: IO[bytes], on_line: LineCallback | None = None) -> None:
        super().__init__(daemon=True)
        self._stream = stream
        self._on_line = on_line
        self._chunks: list[bytes] = []
        self._pending = b""

    @property
    def data(self) -> bytes:
        return b"".join(self._chunks)

    def run(self) -> None:
        # The pipe may be closed underneath us during forced cleanup.
        with contextlib.suppress(OSError, ValueError):
            for chunk in iter(partial(self._stream.read1, _CHUNK_SIZE), b""):
                self._chunks.append(chunk)
                if self._on_line is not None:
                    self._feed(chunk)
        if self._on_line is not None and self._pending:
            self._emit(self._pending)

    def _feed(self, chunk: bytes) -> None:
        # git rewrites progress lines in place with \r, so both count as breaks
        parts = _LINE_BREAK_RE.split(self._pending + chunk)
        self._pending = parts.pop()
        for part in parts:
            self._emit(part)

    def _emit(self, raw: bytes) -> None:
        line = raw.decode("utf-8", errors="replace").strip()
        if not line or self._on_line is None:
            return
        try:
            self._on_line(line)
        except Exception:
            logger.exception("line_callback_error")


class _ProcessHandle:
    """Owns a child process and its pipes for the lifetime of one run.

    Leaving the ``with`` block always kills a still-running child (its whole
    process group on POSIX), reaps it, joins the reader threads and closes
    both pipes, whichever way the block is left.
    """

    def __init__(
        self,
        proc: subprocess.Popen[bytes],
        cancel_event: threading.Event,
        on_stderr_line: LineCallback | None = None,
    ) -> None:
        self.proc = proc
        self.cancel_event = cancel_event
        assert proc.stdout is not None and proc.stderr is not None
        self._stdout = _StreamReader(proc.stdout)
        self._stderr = _StreamReader(proc.stderr, on_stderr_line)

    @property
    def stdout(self) -> bytes:
        return self._stdout.data

    @property
    def stderr(self) -> bytes:
        return self._stderr.data

    def __enter__(self) -> "_ProcessHandle":
        self._stdout.start()
        self._stderr.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.proc.poll() is None:
            self.kill()
        self.proc.wait()
        self._join_readers()
        if self._stdout.is_alive() or self._stderr.is_alive():
            # A grandchild still holds the pipes open.
            self.kill()
            self._join_readers()
        for stream in (self.proc.stdout, self.proc.stderr):
            if stream is not None:
                with contextlib.suppress(OSError):
                    stream.close()

    def _join_readers(self) -> None:
        self._stdout.join(_READER_JOIN_TIMEOUT)
        self._stderr.join(_READER_JOIN_TIMEOUT)

    def kill(self) -> None:
        if os.name == "posix":
            with contextlib.suppress(ProcessLookupError, PermissionError):
                os.killpg(self.proc.pid, signal.SIGKILL)
        else:
            with contextlib.suppress(OSError):
                self.proc.kill()

    def wait(self, timeout: float, poll_interval: float) -> str:
        """Block until the child exits, the deadline passes, or a cancel arrives."""
        deadline = time.monotonic() + timeout
        while True:
            if self.proc.poll() is not None:
                return _EXITED
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.kill()
                return _TIMED_OUT
            if self.cancel_event.wait(min(poll_interval, remaining)):
                self.kill()
                return _CANCELLED


class ProcessRunner:
    """Runs external commands and captures their output as bytes.

    ``run`` blocks the calling thread. ``cancel`` may be called from any
    other thread and terminates every run currently in flight on this
    runner; each of them returns within one polling interval.
    """

    def __init__(
        self,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        environment: Mapping[str, str] | None = None,
        max_workers: int = 4,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self._environment: dict[str, str] = dict(environment or {})
        self._active: set[threading.Event] = set()
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="repostate-process"
        )

    @property
    def is_running(self) -> bool:
        with self._lock:
            return bool(self._active)

    def set_timeout(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms

    def set_environment_variable(self, name: str, value: str) -> None:
        self._environment[name] = value

    def clear_environment_variables(self) -> None:
        self._environment.clear()

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: str | Path | None = None,
        timeout_ms: int | None = None,
        *,
        env: Mapping[str, str] | None = None,
        on_stderr_line: LineCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CommandResult:
        """Execute *command* and wait for it, the timeout, or a cancellation."""
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        argv = [command, *args]
        event = cancel_event if cancel_event is not None else threading.Event()

        with self._lock:
            self._active.add(event)
        try:
            try:
                proc = self._spawn(argv, cwd, env)
            except ProcessSpawnError as e:
                logger.warning("process_spawn_failed", command=argv, reason=e.reason)
                return CommandResult.failure(str(e))

            logger.debug("process_exec", command=argv, cwd=str(cwd) if cwd else None)
            with _ProcessHandle(proc, event, on_stderr_line) as handle:
                state = handle.wait(timeout_ms / 1000, self.poll_interval_ms / 1000)
        finally:
            with self._lock:
                self._active.discard(event)

        if state == _TIMED_OUT:
            logger.warning("process_timeout", command=argv, timeout_ms=timeout_ms)
            return CommandResult.failure(
                f"Process timed out after {timeout_ms} ms", timed_out=True
            )
        if state == _CANCELLED:
            logger.info("process_cancelled", command=argv)
            return CommandResult.failure("Process was cancelled", cancelled=True)

        returncode = proc.returncode
        return CommandResult(
            exit_code=returncode if returncode >= 0 else -1,
            stdout=handle.stdout,
            stderr=handle.stderr,
        )

    def cancel(self) -> None:
        """Request termination of every run in flight on this runner."""
        with self._lock:
            events = list(self._active)
        for event in events:
            event.set()

    def execute_async(
        self,
        command: str,
        args: Sequence[str] = (),
        callback: ResultCallback | None = None,
        cwd: str | Path | None = None,
        timeout_ms: int | None = None,
    ) -> Future[CommandResult]:
        """Run on a worker thread; *callback* may fire on any thread."""
        future = self._executor.submit(self.run, command, args, cwd, timeout_ms)
        if callback is not None:
            future.add_done_callback(partial(deliver_result, callback))
        return future

    async def arun(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: str | Path | None = None,
        timeout_ms: int | None = None,
        *,
        env: Mapping[str, str] | None = None,
        on_stderr_line: LineCallback | None = None,
    ) -> CommandResult:
        """Awaitable ``run``; cancelling the awaiting task kills the child."""
        cancel_event = threading.Event()
        try:
            return await asyncio.to_thread(
                self.run,
                command,
                args,
                cwd,
                timeout_ms,
                env=env,
                on_stderr_line=on_stderr_line,
                cancel_event=cancel_event,
            )
        except asyncio.CancelledError:
            cancel_event.set()
            raise

    def shutdown(self, wait: bool = True) -> None:
        self.cancel()
        self._executor.shutdown(wait=wait)

    def _build_env(self, overrides: Mapping[str, str] | None) -> dict[str, str] | None:
        if not self._environment and not overrides:
            return None
        return {**os.environ, **self._environment, **(overrides or {})}

    def _spawn(
        self,
        argv: list[str],
        cwd: str | Path | None,
        env: Mapping[str, str] | None,
    ) -> subprocess.Popen[bytes]:
        if cwd is not None and not Path(cwd).is_dir():
            raise ProcessSpawnError(argv[0], f"directory does not exist: {cwd}")

        kwargs: dict[str, object] = {}
        if os.name == "posix":
            kwargs["start_new_session"] = True
        else:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP

        try:
            return subprocess.Popen(
                argv,
                cwd=cwd,
                env=self._build_env(env),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                **kwargs,  # type: ignore[call-overload]
            )
        except FileNotFoundError as e:
            raise ProcessSpawnError(argv[0], "command not found") from e
        except OSError as e:
            raise ProcessSpawnError(argv[0], str(e)) from e


def deliver_result(callback: Callable[[Any], None], future: Future[Any]) -> None:
    """Hand a finished future's result to *callback*, logging any failure."""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("async_operation_failed", error=str(error))
        return
    try:
        callback(future.result())
    except Exception:
        logger.exception("async_callback_error")


def is_command_available(command: str) -> bool:
    return shutil.which(command) is not None


def find_git_executable() -> str:
    """Locate git on PATH, then in the usual Windows install locations."""
    if is_command_available("git"):
        return "git"
    if os.name == "nt":
        for candidate in _WINDOWS_GIT_PATHS:
            if Path(candidate).is_file():
                return candidate
    return "git"
