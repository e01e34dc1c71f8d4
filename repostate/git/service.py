"""Repository operations built on the git command line."""

import re
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any

import structlog

from repostate.core.events import OPERATION_LOG, OPERATION_PROGRESS, Event, EventBus
from repostate.core.process import LineCallback, deliver_result
from repostate.git.diff import parse_diff, parse_diffs
from repostate.git.dispatcher import CommandDispatcher
from repostate.git.models import (
    Branch,
    Commit,
    Diff,
    ErrorKind,
    LogOptions,
    OperationOutcome,
    Remote,
    RepositoryInfo,
    RepositoryStatus,
    Stash,
    Tag,
)
from repostate.git.parsers import (
    BRANCH_FORMAT,
    DEFAULT_REMOTES,
    LOG_FORMAT,
    STASH_FORMAT,
    TAG_FORMAT,
    apply_line_counts,
    parse_branches,
    parse_log,
    parse_numstat,
    parse_progress_line,
    parse_remotes,
    parse_stashes,
    parse_status,
    parse_tags,
)

logger = structlog.get_logger()

ProgressCallback = Callable[[str, int, int], None]
MessageCallback = Callable[[str], None]

_REF_NAME_RE = re.compile(r"^[^\x00-\x20\x7f~^:?*\[\\]+$")
_INVALID_REF_SEQUENCES = ("..", "@{", "//", "/.")
_GITDIR_PREFIX = "gitdir:"


def is_option_like(value: str | None) -> bool:
    """True when git would parse *value* as an option rather than an operand."""
    return bool(value) and value.startswith("-")


def is_valid_ref_name(name: str) -> bool:
    """Subset of ``git check-ref-format`` rules for branch and tag names."""
    if not name or name == "@" or not _REF_NAME_RE.match(name):
        return False
    if name.startswith(("-", "/", ".")) or name.endswith(("/", ".", ".lock")):
        return False
    return not any(seq in name for seq in _INVALID_REF_SEQUENCES)


class GitService:
    """Logical repository operations on top of ``CommandDispatcher``.

    Read operations never raise. On failure they return an empty value
    (``RepositoryStatus()``, ``[]``, an empty ``Diff``, ``None`` or ``""``)
    and leave the reason in ``last_error``. Write operations return the
    classified ``OperationOutcome`` of the command that decided them.

    Every ``*_async`` method runs its synchronous counterpart on a worker
    pool and returns a ``Future``; the optional ``callback`` receives the
    same value the synchronous call would have returned.
    """

    def __init__(
        self,
        repository_path: str | Path | None = None,
        *,
        dispatcher: CommandDispatcher | None = None,
        known_remotes: Sequence[str] = DEFAULT_REMOTES,
        max_workers: int = 4,
    ) -> None:
        self.dispatcher = dispatcher or CommandDispatcher(repository_path)
        if dispatcher is not None and repository_path is not None:
            self.dispatcher.repository_path = str(repository_path)
        self.events: EventBus = self.dispatcher.events
        self.known_remotes = tuple(known_remotes)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="repostate-git"
        )
        self._progress_handler: Callable[[Event], None] | None = None
        self._log_handler: Callable[[Event], None] | None = None

    def __enter__(self) -> "GitService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Cancel in-flight commands and stop both worker pools."""
        self.dispatcher.cancel()
        self._executor.shutdown(wait=True)
        self.dispatcher.close()

    def cancel(self) -> None:
        self.dispatcher.cancel()

    @property
    def repository_path(self) -> str:
        return self.dispatcher.repository_path

    @repository_path.setter
    def repository_path(self, path: str | Path) -> None:
        self.dispatcher.repository_path = str(path)

    @property
    def last_error(self) -> str:
        return self.dispatcher.last_error

    # --- callbacks ------------------------------------------------------

    def set_progress_callback(self, callback: ProgressCallback | None) -> None:
        """Receive ``(operation, current, total)`` for every progress report."""
        if self._progress_handler is not None:
            self.events.unsubscribe(OPERATION_PROGRESS, self._progress_handler)
            self._progress_handler = None
        if callback is None:
            return

        def on_progress(event: Event) -> None:
            callback(event.data["operation"], event.data["current"], event.data["total"])

        self._progress_handler = on_progress
        self.events.subscribe(OPERATION_PROGRESS, on_progress)

    def set_log_callback(self, callback: MessageCallback | None) -> None:
        """Receive free-text messages about commands as they run."""
        if self._log_handler is not None:
            self.events.unsubscribe(OPERATION_LOG, self._log_handler)
            self._log_handler = None
        if callback is None:
            return

        def on_log(event: Event) -> None:
            callback(event.data["message"])

        self._log_handler = on_log
        self.events.subscribe(OPERATION_LOG, on_log)

    # --- plumbing -------------------------------------------------------

    def _run(
        self,
        *args: str,
        require_repository: bool = True,
        cwd: str | Path | None = None,
        timeout_ms: int | None = None,
        on_stderr_line: LineCallback | None = None,
    ) -> OperationOutcome:
        return self.dispatcher.execute(
            args,
            cwd=cwd,
            timeout_ms=timeout_ms,
            require_repository=require_repository,
            on_stderr_line=on_stderr_line,
        )

    def _read(self, *args: str) -> str | None:
        outcome = self._run(*args)
        return outcome.output if outcome.success else None

    def _network(
        self,
        *args: str,
        progress_callback: ProgressCallback | None = None,
        require_repository: bool = True,
        cwd: str | Path | None = None,
    ) -> OperationOutcome:
        return self._run(
            *args,
            require_repository=require_repository,
            cwd=cwd,
            timeout_ms=self.dispatcher.network_timeout_ms,
            on_stderr_line=self._progress_reporter(progress_callback),
        )

    def _progress_reporter(self, callback: ProgressCallback | None) -> LineCallback:
        def on_line(line: str) -> None:
            update = parse_progress_line(line)
            if update is None:
                self.events.emit(Event(name=OPERATION_LOG, data={"message": line}))
                return
            self.events.emit(Event(name=OPERATION_PROGRESS, data=update.model_dump()))
            if callback is not None:
                try:
                    callback(update.operation, update.current, update.total)
                except Exception:
                    logger.exception("progress_callback_error", operation=update.operation)

        return on_line

    def _rejected(self, message: str, *args: str) -> OperationOutcome:
        outcome = OperationOutcome(
            kind=ErrorKind.FAILED,
            error=message,
            exit_code=-1,
            command=[self.dispatcher.git_executable, *args],
        )
        self.dispatcher.record_failure(outcome)
        return outcome

    def _reject_option_like(
        self, command: str, what: str, *values: str | None
    ) -> OperationOutcome | None:
        for value in values:
            if is_option_like(value):
                return self._rejected(f"Invalid {what}: {value}", command, value)
        return None

    def _submit(
        self,
        fn: Callable[..., Any],
        *args: Any,
        callback: Callable[[Any], None] | None = None,
        **kwargs: Any,
    ) -> Future:
        future = self._executor.submit(fn, *args, **kwargs)
        if callback is not None:
            future.add_done_callback(partial(deliver_result, callback))
        return future

    # --- repository -----------------------------------------------------

    def init_repository(self, path: str | Path, bare: bool = False) -> OperationOutcome:
        """Create a repository at *path* and make it the current one."""
        target = Path(path).expanduser().resolve()
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return self._rejected(str(e), "init", str(target))
        args = ["init"]
        if bare:
            args.append("--bare")
        args.append(str(target))
        outcome = self._run(*args, require_repository=False, cwd=target)
        if outcome.success:
            self.repository_path = target
            logger.info("repository_initialized", path=str(target), bare=bare)
        return outcome

    def clone_repository(
        self,
        url: str,
        path: str | Path,
        progress_callback: ProgressCallback | None = None,
    ) -> OperationOutcome:
        """Clone *url* into *path*; on success *path* becomes the current repository."""
        target = Path(path).expanduser().resolve()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return self._rejected(str(e), "clone", url, str(target))
        outcome = self._network(
            "clone",
            "--progress",
            "--",
            url,
            str(target),
            progress_callback=progress_callback,
            require_repository=False,
            cwd=target.parent,
        )
        if outcome.success:
            self.repository_path = target
            logger.info("repository_cloned", url=url, path=str(target))
        return outcome

    def open_repository(self, path: str | Path) -> OperationOutcome:
        target = Path(path).expanduser()
        if not self.is_valid_repository(target):
            outcome = OperationOutcome(
                kind=ErrorKind.NOT_A_REPOSITORY,
                error=f"Not a valid git repository: {target}",
                exit_code=-1,
            )
            self.dispatcher.record_failure(outcome)
            return outcome
        self.repository_path = target.resolve()
        return OperationOutcome(kind=ErrorKind.SUCCESS)

    def is_valid_repository(self, path: str | Path | None = None) -> bool:
        return self.dispatcher.is_valid_repository(path)

    def repository_info(self) -> RepositoryInfo:
        path = Path(self.repository_path or ".")
        dot_git = path / ".git"
        is_bare = False
        if dot_git.is_dir():
            git_dir = dot_git
        elif dot_git.is_file():
            # Worktrees and submodules point elsewhere with "gitdir: <path>"
            try:
                first_line = dot_git.read_text(encoding="utf-8", errors="replace").strip()
            except OSError:
                first_line = ""
            if first_line.startswith(_GITDIR_PREFIX):
                git_dir = path / first_line[len(_GITDIR_PREFIX) :].strip()
            else:
                git_dir = dot_git
        else:
            git_dir = path
            is_bare = self.is_valid_repository(path)

        return RepositoryInfo(
            path=str(path),
            working_directory="" if is_bare else str(path),
            git_directory=str(git_dir),
            is_bare=is_bare,
            is_shallow=(git_dir / "shallow").exists(),
            head=self.current_branch(),
            status=RepositoryStatus() if is_bare else self.status(),
        )

    def status(self, *, with_line_counts: bool = False) -> RepositoryStatus:
        """Snapshot of the working tree via ``status --porcelain=v1 -b``."""
        output = self._read("status", "--porcelain=v1", "-b")
        if output is None:
            return RepositoryStatus()
        status = parse_status(output)
        if with_line_counts and status.changes:
            staged = self._read("diff", "--cached", "--numstat") or ""
            unstaged = self._read("diff", "--numstat") or ""
            status = apply_line_counts(status, parse_numstat(staged), parse_numstat(unstaged))
        return status

    def current_branch(self) -> str:
        name = (self._read("branch", "--show-current") or "").strip()
        if name:
            return name
        # Older gits lack --show-current; an unborn branch still has a symbolic HEAD.
        name = (self._read("symbolic-ref", "--short", "HEAD") or "").strip()
        if name:
            return name
        short = (self._read("rev-parse", "--short", "HEAD") or "").strip()
        if short:
            return f"HEAD detached at {short}"
        return "unknown"

    # --- staging and commits --------------------------------------------

    def add_files(self, files: Sequence[str]) -> OperationOutcome:
        if not files:
            return OperationOutcome(kind=ErrorKind.SUCCESS)
        return self._run("add", "--", *files)

    def add_all(self) -> OperationOutcome:
        return self._run("add", "-A")

    def remove_files(self, files: Sequence[str], cached: bool = False) -> OperationOutcome:
        if not files:
            return OperationOutcome(kind=ErrorKind.SUCCESS)
        args = ["rm"]
        if cached:
            args.append("--cached")
        return self._run(*args, "--", *files)

    def reset_files(self, files: Sequence[str] = ()) -> OperationOutcome:
        """Unstage *files*, or everything when none are given."""
        if not files:
            return self._run("reset", "HEAD")
        return self._run("reset", "HEAD", "--", *files)

    def reset_hard(self, commit: str = "HEAD") -> OperationOutcome:
        rejected = self._reject_option_like("reset", "revision", commit)
        if rejected is not None:
            return rejected
        return self._run("reset", "--hard", commit)

    def commit(self, message: str, amend: bool = False) -> OperationOutcome:
        if not message.strip() and not amend:
            return self._rejected("Commit message must not be empty", "commit")
        args = ["commit"]
        if amend:
            args.append("--amend")
            if not message.strip():
                return self._run(*args, "--no-edit")
        return self._run(*args, "-m", message)

    def commit_with_files(self, message: str, files: Sequence[str]) -> OperationOutcome:
        staged = self.add_files(files)
        if not staged.success:
            return staged
        return self.commit(message)

    # --- history --------------------------------------------------------

    def log(
        self,
        max_count: int = 100,
        options: LogOptions = LogOptions.SHOW_MERGES,
        branch: str | None = None,
        file_path: str | None = None,
    ) -> list[Commit]:
        if self._reject_option_like("log", "revision", branch):
            return []
        args = ["log", f"--pretty=format:{LOG_FORMAT}", "-z"]
        if max_count > 0:
            args.append(f"-{max_count}")
        if LogOptions.FIRST_PARENT_ONLY in options:
            args.append("--first-parent")
        if LogOptions.SHOW_MERGES not in options:
            args.append("--no-merges")
        if LogOptions.SIMPLIFY_MERGES in options:
            args.append("--simplify-merges")
        if LogOptions.FOLLOW_RENAMES in options and file_path:
            args.append("--follow")
        if branch:
            args.append(branch)
        if file_path:
            args.extend(["--", file_path])

        output = self._read(*args)
        return parse_log(output) if output is not None else []

    def get_commit(self, commit_hash: str) -> Commit | None:
        if self._reject_option_like("show", "revision", commit_hash):
            return None
        output = self._read("show", "--no-patch", f"--pretty=format:{LOG_FORMAT}", commit_hash)
        if output is None:
            return None
        commits = parse_log(output)
        return commits[0] if commits else None

    def commit_range(self, from_commit: str, to_commit: str) -> list[Commit]:
        """Commits reachable from *to_commit* but not from *from_commit*."""
        if self._reject_option_like("log", "revision", from_commit, to_commit):
            return []
        output = self._read(
            "log", f"--pretty=format:{LOG_FORMAT}", "-z", f"{from_commit}..{to_commit}"
        )
        return parse_log(output) if output is not None else []

    # --- branches -------------------------------------------------------

    def branches(self, include_remote: bool = True) -> list[Branch]:
        args = ["for-each-ref", f"--format={BRANCH_FORMAT}", "refs/heads"]
        if include_remote:
            args.append("refs/remotes")
        output = self._read(*args)
        if output is None:
            return []
        configured = (self._read("remote") or "").split()
        return parse_branches(output, (*self.known_remotes, *configured))

    def create_branch(self, name: str, start_point: str = "HEAD") -> OperationOutcome:
        if not is_valid_ref_name(name):
            return self._rejected(f"Invalid branch name: {name}", "branch", name)
        rejected = self._reject_option_like("branch", "revision", start_point)
        if rejected is not None:
            return rejected
        return self._run("branch", name, start_point)

    def delete_branch(self, name: str, force: bool = False) -> OperationOutcome:
        if not is_valid_ref_name(name):
            return self._rejected(f"Invalid branch name: {name}", "branch", name)
        return self._run("branch", "-D" if force else "-d", name)

    def rename_branch(self, old_name: str, new_name: str) -> OperationOutcome:
        for name in (old_name, new_name):
            if not is_valid_ref_name(name):
                return self._rejected(f"Invalid branch name: {name}", "branch", "-m")
        return self._run("branch", "-m", old_name, new_name)

    def checkout_branch(self, name: str) -> OperationOutcome:
        """Switch to *name*, creating a tracking branch from a remote if needed."""
        if not is_valid_ref_name(name):
            return self._rejected(f"Invalid branch name: {name}", "checkout", name)

        outcome = self._run("checkout", name)
        if outcome.success or outcome.kind is not ErrorKind.FAILED:
            return outcome

        for remote in self.known_remotes:
            remote_ref = f"{remote}/{name}"
            if self._read("rev-parse", "--verify", "--quiet", f"refs/remotes/{remote_ref}"):
                tracked = self._run("checkout", "-b", name, "--track", remote_ref)
                if tracked.success:
                    logger.info("branch_tracking_created", branch=name, remote_ref=remote_ref)
                    return tracked
                break
        # Report the original failure, not the fallback probes.
        self.dispatcher.record_failure(outcome)
        return outcome

    def merge_branch(self, name: str, no_fast_forward: bool = False) -> OperationOutcome:
        if not is_valid_ref_name(name):
            return self._rejected(f"Invalid branch name: {name}", "merge", name)
        args = ["merge"]
        if no_fast_forward:
            args.append("--no-ff")
        return self._run(*args, name)

    def rebase_branch(self, name: str) -> OperationOutcome:
        if not is_valid_ref_name(name):
            return self._rejected(f"Invalid branch name: {name}", "rebase", name)
        return self._run("rebase", name)

    # --- remotes --------------------------------------------------------

    def remotes(self) -> list[Remote]:
        output = self._read("remote", "-v")
        return parse_remotes(output) if output is not None else []

    def add_remote(self, name: str, url: str) -> OperationOutcome:
        rejected = self._reject_option_like("remote", "remote", name, url)
        if rejected is not None:
            return rejected
        return self._run("remote", "add", name, url)

    def remove_remote(self, name: str) -> OperationOutcome:
        rejected = self._reject_option_like("remote", "remote", name)
        if rejected is not None:
            return rejected
        return self._run("remote", "remove", name)

    def rename_remote(self, old_name: str, new_name: str) -> OperationOutcome:
        rejected = self._reject_option_like("remote", "remote", old_name, new_name)
        if rejected is not None:
            return rejected
        return self._run("remote", "rename", old_name, new_name)

    def fetch(
        self, remote: str = "origin", progress_callback: ProgressCallback | None = None
    ) -> OperationOutcome:
        rejected = self._reject_option_like("fetch", "remote", remote)
        if rejected is not None:
            return rejected
        return self._network("fetch", "--progress", remote, progress_callback=progress_callback)

    def pull(
        self,
        remote: str = "origin",
        branch: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> OperationOutcome:
        rejected = self._reject_option_like("pull", "argument", remote, branch)
        if rejected is not None:
            return rejected
        args = ["pull", "--progress", remote]
        if branch:
            args.append(branch)
        return self._network(*args, progress_callback=progress_callback)

    def push(
        self,
        remote: str = "origin",
        branch: str | None = None,
        force: bool = False,
        progress_callback: ProgressCallback | None = None,
    ) -> OperationOutcome:
        rejected = self._reject_option_like("push", "argument", remote, branch)
        if rejected is not None:
            return rejected
        args = ["push", "--progress"]
        if force:
            args.append("--force")
        args.append(remote)
        if branch:
            args.append(branch)
        return self._network(*args, progress_callback=progress_callback)

    # --- diffs ----------------------------------------------------------

    def diff(self, file_path: str, staged: bool = False) -> Diff:
        args = ["diff"]
        if staged:
            args.append("--cached")
        output = self._read(*args, "--", file_path)
        if output is None:
            return Diff(file_path=file_path)
        return parse_diff(output, file_path)

    def diff_all(self, staged: bool = False) -> list[Diff]:
        args = ["diff"]
        if staged:
            args.append("--cached")
        output = self._read(*args)
        return parse_diffs(output) if output is not None else []

    def commit_diff(self, commit_hash: str) -> Diff:
        diffs = self.commit_diff_all(commit_hash)
        return diffs[0] if diffs else Diff()

    def commit_diff_all(self, commit_hash: str) -> list[Diff]:
        if self._reject_option_like("show", "revision", commit_hash):
            return []
        output = self._read("show", "--format=", commit_hash)
        return parse_diffs(output) if output is not None else []

    def diff_between(
        self, from_commit: str, to_commit: str, file_path: str | None = None
    ) -> Diff:
        if self._reject_option_like("diff", "revision", from_commit, to_commit):
            return Diff(file_path=file_path or "")
        args = ["diff", from_commit, to_commit]
        if file_path:
            args.extend(["--", file_path])
        output = self._read(*args)
        if output is None:
            return Diff(file_path=file_path or "")
        return parse_diff(output, file_path or "")

    # --- tags -----------------------------------------------------------

    def tags(self) -> list[Tag]:
        output = self._read("for-each-ref", f"--format={TAG_FORMAT}", "refs/tags")
        return parse_tags(output) if output is not None else []

    def create_tag(self, name: str, message: str = "", commit: str = "HEAD") -> OperationOutcome:
        """Lightweight tag, or annotated when *message* is given."""
        if not is_valid_ref_name(name):
            return self._rejected(f"Invalid tag name: {name}", "tag", name)
        rejected = self._reject_option_like("tag", "revision", commit)
        if rejected is not None:
            return rejected
        if message:
            return self._run("tag", "-a", name, "-m", message, commit)
        return self._run("tag", name, commit)

    def delete_tag(self, name: str) -> OperationOutcome:
        if not is_valid_ref_name(name):
            return self._rejected(f"Invalid tag name: {name}", "tag", "-d", name)
        return self._run("tag", "-d", name)

    def push_tags(self, remote: str = "origin") -> OperationOutcome:
        rejected = self._reject_option_like("push", "remote", remote)
        if rejected is not None:
            return rejected
        return self._network("push", "--progress", remote, "--tags")

    # --- stash ----------------------------------------------------------

    def stashes(self) -> list[Stash]:
        output = self._read("stash", "list", f"--format={STASH_FORMAT}")
        return parse_stashes(output) if output is not None else []

    def stash(self, message: str = "", include_untracked: bool = False) -> OperationOutcome:
        args = ["stash", "push"]
        if include_untracked:
            args.append("--include-untracked")
        if message:
            args.extend(["-m", message])
        return self._run(*args)

    def stash_pop(self, index: int = 0) -> OperationOutcome:
        return self._run("stash", "pop", f"stash@{{{index}}}")

    def stash_apply(self, index: int = 0) -> OperationOutcome:
        return self._run("stash", "apply", f"stash@{{{index}}}")

    def stash_drop(self, index: int = 0) -> OperationOutcome:
        return self._run("stash", "drop", f"stash@{{{index}}}")

    def stash_clear(self) -> OperationOutcome:
        return self._run("stash", "clear")

    # --- config ---------------------------------------------------------

    def set_config(self, key: str, value: str, global_: bool = False) -> OperationOutcome:
        args = ["config", "--global"] if global_ else ["config"]
        return self._run(*args, key, value, require_repository=not global_)

    def get_config(self, key: str, global_: bool = False) -> str:
        args = ["config", "--global"] if global_ else ["config"]
        outcome = self._run(*args, "--get", key, require_repository=not global_)
        return outcome.output.strip() if outcome.success else ""

    def set_user_info(self, name: str, email: str, global_: bool = False) -> OperationOutcome:
        outcome = self.set_config("user.name", name, global_)
        if not outcome.success:
            return outcome
        return self.set_config("user.email", email, global_)

    # --- convenience ----------------------------------------------------

    def has_uncommitted_changes(self) -> bool:
        return self.status().has_uncommitted_changes

    def has_unstaged_changes(self) -> bool:
        return self.status().has_unstaged_changes

    def has_staged_changes(self) -> bool:
        return self.status().has_staged_changes

    # --- async ----------------------------------------------------------

    def clone_async(
        self,
        url: str,
        path: str | Path,
        progress_callback: ProgressCallback | None = None,
        callback: Callable[[OperationOutcome], None] | None = None,
    ) -> Future[OperationOutcome]:
        return self._submit(
            self.clone_repository, url, path, progress_callback, callback=callback
        )

    def fetch_async(
        self,
        remote: str = "origin",
        progress_callback: ProgressCallback | None = None,
        callback: Callable[[OperationOutcome], None] | None = None,
    ) -> Future[OperationOutcome]:
        return self._submit(self.fetch, remote, progress_callback, callback=callback)

    def pull_async(
        self,
        remote: str = "origin",
        branch: str | None = None,
        progress_callback: ProgressCallback | None = None,
        callback: Callable[[OperationOutcome], None] | None = None,
    ) -> Future[OperationOutcome]:
        return self._submit(self.pull, remote, branch, progress_callback, callback=callback)

    def push_async(
        self,
        remote: str = "origin",
        branch: str | None = None,
        force: bool = False,
        progress_callback: ProgressCallback | None = None,
        callback: Callable[[OperationOutcome], None] | None = None,
    ) -> Future[OperationOutcome]:
        return self._submit(
            self.push, remote, branch, force, progress_callback, callback=callback
        )

    def status_async(
        self, callback: Callable[[RepositoryStatus], None] | None = None
    ) -> Future[RepositoryStatus]:
        return self._submit(self.status, callback=callback)

    def log_async(
        self,
        max_count: int = 100,
        options: LogOptions = LogOptions.SHOW_MERGES,
        branch: str | None = None,
        file_path: str | None = None,
        callback: Callable[[list[Commit]], None] | None = None,
    ) -> Future[list[Commit]]:
        return self._submit(
            self.log, max_count, options, branch, file_path, callback=callback
        )

    def branches_async(
        self,
        include_remote: bool = True,
        callback: Callable[[list[Branch]], None] | None = None,
    ) -> Future[list[Branch]]:
        return self._submit(self.branches, include_remote, callback=callback)

    def diff_async(
        self,
        file_path: str,
        staged: bool = False,
        callback: Callable[[Diff], None] | None = None,
    ) -> Future[Diff]:
        return self._submit(self.diff, file_path, staged, callback=callback)

    def stashes_async(
        self, callback: Callable[[list[Stash]], None] | None = None
    ) -> Future[list[Stash]]:
        return self._submit(self.stashes, callback=callback)

    def tags_async(
        self, callback: Callable[[list[Tag]], None] | None = None
    ) -> Future[list[Tag]]:
        return self._submit(self.tags, callback=callback)
