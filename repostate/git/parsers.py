"""Pure parsers for git porcelain output.

Every function here is total. Malformed or short records are dropped,
numeric fields that fail to parse fall back to zero or the current time,
and nothing raises on unexpected input. The format strings below are the
contract with git: each parser expects exactly the fields its format
produces, in that order.
"""

import re
from collections.abc import Iterable
from datetime import UTC, datetime

import structlog

from repostate.git.models import (
    Branch,
    BranchCommit,
    Commit,
    FileChange,
    FileStatus,
    ProgressUpdate,
    Remote,
    RepositoryStatus,
    Stash,
    Tag,
)

logger = structlog.get_logger()

FIELD_SEPARATOR = "|"
RECORD_SEPARATOR = "\0"

LOG_FORMAT = "%H|%h|%an|%ae|%s|%ct|%P"
BRANCH_FORMAT = (
    "%(refname:short)|%(objectname:short)|%(committerdate:unix)|"
    "%(upstream:short)|%(upstream:track)|%(contents:subject)|%(refname)|%(HEAD)"
)
TAG_FORMAT = (
    "%(refname:short)|%(objecttype)|%(objectname)|%(*objectname)|"
    "%(creatordate:unix)|%(contents:subject)"
)
STASH_FORMAT = "%gd|%ct|%gs"

DEFAULT_REMOTES = ("origin", "upstream")

_LOG_FIELD_COUNT = 7
_BRANCH_FIELD_COUNT = 6

_BRANCH_HEADER_RE = re.compile(
    r"^(?P<branch>.+?)(?:\.\.\.(?P<upstream>\S+))?(?: \[(?P<tracking>[^\]]*)\])?$"
)
_INITIAL_BRANCH_RE = re.compile(r"^(?:No commits yet on|Initial commit on) (?P<rest>.+)$")
_AHEAD_RE = re.compile(r"ahead (\d+)")
_BEHIND_RE = re.compile(r"behind (\d+)")
_STASH_INDEX_RE = re.compile(r"^stash@\{(\d+)\}$")
_STASH_BRANCH_RE = re.compile(r"^(?:WIP on|On) ([^:]+):")
_REMOTE_RE = re.compile(r"^(?P<name>\S+)\s+(?P<url>.+?)\s+\((?P<kind>fetch|push)\)$")
_PROGRESS_RE = re.compile(
    r"^(?:remote:\s*)?(?P<operation>[A-Za-z][A-Za-z ]*?):\s+\d+%\s+"
    r"\((?P<current>\d+)/(?P<total>\d+)\)"
)
_NUMSTAT_BRACE_RE = re.compile(r"\{(?P<old>[^{}]*) => (?P<new>[^{}]*)\}")

_STAGED_FLAGS: dict[str, FileStatus] = {
    "A": "added",
    "M": "modified",
    "D": "deleted",
    "R": "renamed",
    "C": "copied",
}
_UNSTAGED_FLAGS: dict[str, FileStatus] = {
    "M": "modified",
    "T": "modified",
    "D": "deleted",
    "A": "added",
    "R": "renamed",
    "C": "copied",
}
_UNMERGED_PAIRS = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

_C_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    '"': '"',
    "\\": "\\",
}


def _lines(text: str) -> list[str]:
    return [line.rstrip("\r") for line in text.split("\n")]


def _to_int(value: str, default: int = 0) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


def _to_timestamp(value: str) -> datetime:
    try:
        return datetime.fromtimestamp(int(value.strip()), UTC)
    except (ValueError, OverflowError, OSError):
        return datetime.now(UTC)


def _tracking_counts(tracking: str) -> tuple[int, int]:
    """Extract ahead/behind from ``ahead 2, behind 1`` in any combination."""
    ahead = _AHEAD_RE.search(tracking)
    behind = _BEHIND_RE.search(tracking)
    return (
        int(ahead.group(1)) if ahead else 0,
        int(behind.group(1)) if behind else 0,
    )


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of paths with special characters."""
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path

    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            octal = body[i + 1 : i + 4]
            if len(octal) == 3 and all(c in "01234567" for c in octal):
                out.append(int(octal, 8) & 0xFF)
                i += 4
                continue
            nxt = body[i + 1]
            out.extend(_C_ESCAPES.get(nxt, nxt).encode("utf-8"))
            i += 2
            continue
        out.extend(ch.encode("utf-8"))
        i += 1
    return out.decode("utf-8", errors="replace")


# --- status ---------------------------------------------------------------


def parse_branch_header(header: str) -> tuple[str, str | None, int, int]:
    """Parse the text after ``## `` into (branch, upstream, ahead, behind)."""
    header = header.strip()
    initial = _INITIAL_BRANCH_RE.match(header)
    if initial:
        header = initial.group("rest")
    if header.startswith("HEAD (no branch)"):
        return "HEAD", None, 0, 0

    match = _BRANCH_HEADER_RE.match(header)
    if not match:
        return header, None, 0, 0

    ahead, behind = _tracking_counts(match.group("tracking") or "")
    return match.group("branch"), match.group("upstream"), ahead, behind


def parse_status_line(line: str) -> FileChange | None:
    """Parse one ``XY path`` line of ``git status --porcelain=v1``."""
    if len(line) < 3:
        return None

    xy = line[:2]
    x, y = xy[0], xy[1]
    raw_path = line[3:]
    old_path: str | None = None
    if ("R" in xy or "C" in xy) and " -> " in raw_path:
        source, raw_path = raw_path.split(" -> ", 1)
        old_path = unquote_path(source)
    path = unquote_path(raw_path)

    # Two-character sentinels win over single-flag interpretation.
    if xy == "??":
        status: FileStatus = "untracked"
    elif xy == "!!":
        status = "ignored"
    elif xy in _UNMERGED_PAIRS:
        status = "conflicted"
    elif x in _STAGED_FLAGS:
        status = _STAGED_FLAGS[x]
    elif y in _UNSTAGED_FLAGS:
        status = _UNSTAGED_FLAGS[y]
    else:
        status = "modified"

    return FileChange(
        path=path,
        old_path=old_path,
        status=status,
        is_staged=x in _STAGED_FLAGS,
    )


def parse_status(text: str) -> RepositoryStatus:
    """Parse ``git status --porcelain=v1 -b`` output."""
    lines = _lines(text)
    branch = ""
    upstream: str | None = None
    ahead = behind = 0

    start = 0
    if lines and lines[0].startswith("## "):
        branch, upstream, ahead, behind = parse_branch_header(lines[0][3:])
        start = 1

    changes: list[FileChange] = []
    for line in lines[start:]:
        if not line:
            continue
        change = parse_status_line(line)
        if change is None:
            logger.debug("status_line_skipped", line=line)
            continue
        changes.append(change)

    return RepositoryStatus(
        current_branch=branch,
        upstream_branch=upstream,
        ahead_count=ahead,
        behind_count=behind,
        changes=changes,
    )


def parse_numstat(text: str) -> dict[str, tuple[int | None, int | None]]:
    """Parse ``git diff --numstat`` into ``{path: (added, deleted)}``.

    Binary files report ``-`` for both counts, which maps to ``None``.
    """
    counts: dict[str, tuple[int | None, int | None]] = {}
    for line in _lines(text):
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        added, deleted, path = parts
        counts[_numstat_new_path(path)] = (
            None if added == "-" else _to_int(added),
            None if deleted == "-" else _to_int(deleted),
        )
    return counts


def _numstat_new_path(path: str) -> str:
    # Renames show up as "src/{old => new}/f.py" or "old.py => new.py"
    if _NUMSTAT_BRACE_RE.search(path):
        return _NUMSTAT_BRACE_RE.sub(lambda m: m.group("new"), path).replace("//", "/")
    if " => " in path:
        return path.split(" => ", 1)[1]
    return unquote_path(path)


def apply_line_counts(
    status: RepositoryStatus,
    staged: dict[str, tuple[int | None, int | None]],
    unstaged: dict[str, tuple[int | None, int | None]],
) -> RepositoryStatus:
    """Return *status* with added/deleted counts filled in from numstat maps."""
    changes = []
    for change in status.changes:
        source = staged if change.is_staged else unstaged
        if change.path in source:
            added, deleted = source[change.path]
            change = change.model_copy(
                update={"lines_added": added, "lines_deleted": deleted}
            )
        changes.append(change)
    return status.model_copy(update={"changes": changes})


# --- log ------------------------------------------------------------------


def parse_commit(record: str) -> Commit | None:
    """Parse one record produced by ``LOG_FORMAT``."""
    fields = record.split(FIELD_SEPARATOR)
    if len(fields) < _LOG_FIELD_COUNT:
        logger.debug("log_record_skipped", field_count=len(fields))
        return None
    if len(fields) > _LOG_FIELD_COUNT:
        # Pipes inside the subject: hash/short/author/email lead, epoch/parents trail.
        fields = [*fields[:4], FIELD_SEPARATOR.join(fields[4:-2]), *fields[-2:]]

    full_hash, short_hash, author, email, subject, epoch, parents = fields
    return Commit(
        hash=full_hash.strip(),
        short_hash=short_hash.strip(),
        author=author,
        email=email,
        subject=subject,
        timestamp=_to_timestamp(epoch),
        parent_hashes=parents.split(),
    )


def parse_log(text: str) -> list[Commit]:
    """Parse NUL-delimited ``git log -z --pretty=format:LOG_FORMAT`` output."""
    commits: list[Commit] = []
    for record in text.split(RECORD_SEPARATOR):
        record = record.strip("\r\n")
        if not record:
            continue
        commit = parse_commit(record)
        if commit is not None:
            commits.append(commit)
    return commits


# --- branches -------------------------------------------------------------


def _is_remote_name(name: str, remotes: frozenset[str]) -> bool:
    if name.startswith("remotes/"):
        return True
    segment, sep, _ = name.partition("/")
    return bool(sep) and segment in remotes


def parse_branch_line(
    line: str, known_remotes: Iterable[str] = DEFAULT_REMOTES
) -> Branch | None:
    """Parse one line produced by ``BRANCH_FORMAT``."""
    fields = line.split(FIELD_SEPARATOR, _BRANCH_FIELD_COUNT - 1)
    if len(fields) < _BRANCH_FIELD_COUNT:
        logger.debug("branch_line_skipped", line=line)
        return None
    name, object_id, date, upstream, tracking, subject = fields
    name = name.strip()
    if not name:
        return None

    full_name = ""
    head_marker = ""
    tail = subject.rsplit(FIELD_SEPARATOR, 2)
    if len(tail) == 3 and tail[1].startswith("refs/") and tail[2].strip() in ("", "*"):
        subject, full_name, head_marker = tail

    # Symbolic refs such as refs/remotes/origin/HEAD
    if full_name.endswith("/HEAD") or name.endswith("/HEAD"):
        return None

    remotes = frozenset(known_remotes)
    is_remote = full_name.startswith("refs/remotes/") or (
        not full_name.startswith("refs/heads/") and _is_remote_name(name, remotes)
    )
    if not full_name:
        short = name.removeprefix("remotes/")
        full_name = f"refs/remotes/{short}" if is_remote else f"refs/heads/{name}"

    ahead, behind = _tracking_counts(tracking)
    last_commit = None
    if object_id.strip():
        last_commit = BranchCommit(
            short_hash=object_id.strip(),
            subject=subject,
            timestamp=_to_timestamp(date),
        )

    return Branch(
        name=name,
        full_name=full_name,
        is_remote=is_remote,
        is_current=head_marker.strip() == "*",
        upstream=upstream.strip() or None,
        ahead_count=ahead,
        behind_count=behind,
        last_commit=last_commit,
    )


def parse_branches(
    text: str, known_remotes: Iterable[str] = DEFAULT_REMOTES
) -> list[Branch]:
    """Parse ``git for-each-ref --format=BRANCH_FORMAT`` output."""
    remotes = tuple(known_remotes)
    branches: list[Branch] = []
    for line in _lines(text):
        if not line.strip():
            continue
        branch = parse_branch_line(line, remotes)
        if branch is not None:
            branches.append(branch)
    return branches


# --- stashes, tags, remotes ----------------------------------------------


def parse_stashes(text: str) -> list[Stash]:
    """Parse ``git stash list --format=STASH_FORMAT`` output."""
    stashes: list[Stash] = []
    for line in _lines(text):
        if not line.strip():
            continue
        fields = line.split(FIELD_SEPARATOR, 2)
        if len(fields) < 3:
            logger.debug("stash_line_skipped", line=line)
            continue
        name, epoch, message = fields
        index_match = _STASH_INDEX_RE.match(name.strip())
        branch_match = _STASH_BRANCH_RE.match(message)
        stashes.append(
            Stash(
                name=name.strip(),
                index=int(index_match.group(1)) if index_match else len(stashes),
                message=message,
                branch=branch_match.group(1).strip() if branch_match else "",
                timestamp=_to_timestamp(epoch),
            )
        )
    return stashes


def parse_tags(text: str) -> list[Tag]:
    """Parse ``git for-each-ref --format=TAG_FORMAT refs/tags`` output."""
    tags: list[Tag] = []
    for line in _lines(text):
        if not line.strip():
            continue
        fields = line.split(FIELD_SEPARATOR, 5)
        if len(fields) < 6:
            logger.debug("tag_line_skipped", line=line)
            continue
        name, object_type, object_name, peeled, epoch, subject = fields
        is_annotated = object_type.strip() == "tag"
        tags.append(
            Tag(
                name=name.strip(),
                commit_hash=peeled.strip() or object_name.strip(),
                message=subject if is_annotated else "",
                is_annotated=is_annotated,
                timestamp=_to_timestamp(epoch),
            )
        )
    return tags


def parse_remotes(text: str) -> list[Remote]:
    """Parse ``git remote -v`` (or plain ``git remote``) output."""
    found: dict[str, dict[str, str]] = {}
    for line in _lines(text):
        line = line.strip()
        if not line:
            continue
        match = _REMOTE_RE.match(line)
        if match is None:
            if len(line.split()) == 1:
                found.setdefault(line, {})
            continue
        urls = found.setdefault(match.group("name"), {})
        urls[match.group("kind")] = match.group("url")

    return [
        Remote(
            name=name,
            url=urls.get("fetch", urls.get("push", "")),
            push_url=urls.get("push", urls.get("fetch", "")),
        )
        for name, urls in found.items()
    ]


def parse_progress_line(line: str) -> ProgressUpdate | None:
    """Parse a ``--progress`` stderr line such as ``Receiving objects:  45% (45/100)``."""
    match = _PROGRESS_RE.match(line.strip())
    if match is None:
        return None
    return ProgressUpdate(
        operation=match.group("operation").strip(),
        current=int(match.group("current")),
        total=int(match.group("total")),
    )
