"""Data models for repository state snapshots and git operation results."""

from datetime import UTC, datetime
from enum import Enum, Flag, auto
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from repostate.core.process import CommandResult

FileStatus = Literal[
    "untracked",
    "modified",
    "added",
    "deleted",
    "renamed",
    "copied",
    "conflicted",
    "ignored",
]

DiffLineType = Literal["context", "addition", "deletion", "header"]

_NOT_CHANGES: frozenset[str] = frozenset({"untracked", "ignored"})


def _now() -> datetime:
    return datetime.now(UTC)


class ErrorKind(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    NOT_A_REPOSITORY = "not_a_repository"
    NETWORK_ERROR = "network_error"
    PERMISSION_DENIED = "permission_denied"
    CANCELLED = "cancelled"


class LogOptions(Flag):
    NONE = 0
    SHOW_MERGES = auto()
    FIRST_PARENT_ONLY = auto()
    FOLLOW_RENAMES = auto()
    SIMPLIFY_MERGES = auto()


class OperationOutcome(BaseModel):
    """Classified result of one dispatched git operation."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    output: str = ""
    error: str = ""
    exit_code: int = 0
    command: list[str] = []
    result: CommandResult | None = None

    @property
    def success(self) -> bool:
        return self.kind is ErrorKind.SUCCESS


class FileChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    status: FileStatus
    old_path: str | None = None
    is_staged: bool = False
    lines_added: int | None = None
    lines_deleted: int | None = None


class RepositoryStatus(BaseModel):
    """Parsed output of ``git status --porcelain=v1 -b``."""

    model_config = ConfigDict(frozen=True)

    current_branch: str = ""
    upstream_branch: str | None = None
    ahead_count: int = Field(default=0, ge=0)
    behind_count: int = Field(default=0, ge=0)
    changes: list[FileChange] = []

    @property
    def staged(self) -> list[FileChange]:
        return [c for c in self.changes if c.is_staged]

    @property
    def unstaged(self) -> list[FileChange]:
        return [c for c in self.changes if not c.is_staged and c.status not in _NOT_CHANGES]

    @property
    def untracked(self) -> list[str]:
        return [c.path for c in self.changes if c.status == "untracked"]

    @property
    def has_uncommitted_changes(self) -> bool:
        return any(c.status not in _NOT_CHANGES for c in self.changes)

    @property
    def has_staged_changes(self) -> bool:
        return any(c.is_staged for c in self.changes)

    @property
    def has_unstaged_changes(self) -> bool:
        return bool(self.unstaged)


class Commit(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    short_hash: str
    author: str
    email: str
    subject: str
    timestamp: datetime = Field(default_factory=_now)
    parent_hashes: list[str] = []

    @property
    def is_merge(self) -> bool:
        return len(self.parent_hashes) > 1


class BranchCommit(BaseModel):
    """Summary of the commit a branch points at."""

    model_config = ConfigDict(frozen=True)

    short_hash: str
    subject: str = ""
    timestamp: datetime = Field(default_factory=_now)


class Branch(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    full_name: str = ""
    is_remote: bool = False
    is_current: bool = False
    upstream: str | None = None
    ahead_count: int = Field(default=0, ge=0)
    behind_count: int = Field(default=0, ge=0)
    last_commit: BranchCommit | None = None


class Remote(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    url: str = ""
    push_url: str = ""


class DiffLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: DiffLineType
    content: str
    old_line_number: int | None = None
    new_line_number: int | None = None


class Hunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    header: str
    old_start: int
    old_count: int = 1
    new_start: int
    new_count: int = 1
    lines: list[DiffLine] = []


class Diff(BaseModel):
    """One file's section of a unified diff."""

    model_config = ConfigDict(frozen=True)

    file_path: str = ""
    old_path: str | None = None
    is_binary: bool = False
    is_new_file: bool = False
    is_deleted_file: bool = False
    header_lines: list[DiffLine] = []
    hunks: list[Hunk] = []

    @property
    def lines_added(self) -> int:
        return sum(1 for h in self.hunks for line in h.lines if line.type == "addition")

    @property
    def lines_deleted(self) -> int:
        return sum(1 for h in self.hunks for line in h.lines if line.type == "deletion")


class Stash(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    index: int
    message: str = ""
    branch: str = ""
    timestamp: datetime = Field(default_factory=_now)


class Tag(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    commit_hash: str = ""
    message: str = ""
    is_annotated: bool = False
    timestamp: datetime = Field(default_factory=_now)


class ProgressUpdate(BaseModel):
    """One ``Receiving objects:  45% (45/100)`` style progress report."""

    model_config = ConfigDict(frozen=True)

    operation: str
    current: int
    total: int


class RepositoryInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    working_directory: str
    git_directory: str = ""
    is_bare: bool = False
    is_shallow: bool = False
    head: str = ""
    status: RepositoryStatus = RepositoryStatus()
