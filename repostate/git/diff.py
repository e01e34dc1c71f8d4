"""Unified diff parser.

Rebuilds per-file diffs and their hunks from ``git diff`` / ``git show``
output. Each hunk keeps running old/new line counters seeded from its
``@@ -a,b +c,d @@`` header, so every content line carries the line numbers
a viewer needs: additions only a new number, deletions only an old number,
context lines both.
"""

import re

import structlog

from repostate.git.models import Diff, DiffLine, Hunk
from repostate.git.parsers import unquote_path

logger = structlog.get_logger()

HUNK_SENTINEL = "@@"

_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_QUOTED_DIFF_GIT_RE = re.compile(r'^"(?P<a>(?:[^"\\]|\\.)*)" "(?P<b>(?:[^"\\]|\\.)*)"$')
_ENVELOPE_PREFIXES = ("diff ", "index ", "+++", "---")
_NULL_PATH = "/dev/null"


def parse_hunk_header(line: str) -> tuple[int, int, int, int] | None:
    """Return (old_start, old_count, new_start, new_count); counts default to 1."""
    match = _HUNK_HEADER_RE.match(line)
    if match is None:
        return None
    old_start, old_count, new_start, new_count = match.groups()
    return (
        int(old_start),
        int(old_count) if old_count is not None else 1,
        int(new_start),
        int(new_count) if new_count is not None else 1,
    )


def _strip_prefix(path: str) -> str:
    path = unquote_path(path.rstrip("\t"))
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


class _HunkBuilder:
    def __init__(self, header: str, counts: tuple[int, int, int, int]) -> None:
        self.header = header
        self.old_start, self.old_count, self.new_start, self.new_count = counts
        self.old_line = self.old_start
        self.new_line = self.new_start
        self.old_remaining = self.old_count
        self.new_remaining = self.new_count
        self.lines: list[DiffLine] = []

    @property
    def expects_more(self) -> bool:
        return self.old_remaining > 0 or self.new_remaining > 0

    def add(self, marker: str, content: str) -> None:
        if marker == "+":
            self.lines.append(
                DiffLine(type="addition", content=content, new_line_number=self.new_line)
            )
            self.new_line += 1
            self.new_remaining -= 1
        elif marker == "-":
            self.lines.append(
                DiffLine(type="deletion", content=content, old_line_number=self.old_line)
            )
            self.old_line += 1
            self.old_remaining -= 1
        else:
            self.lines.append(
                DiffLine(
                    type="context",
                    content=content,
                    old_line_number=self.old_line,
                    new_line_number=self.new_line,
                )
            )
            self.old_line += 1
            self.new_line += 1
            self.old_remaining -= 1
            self.new_remaining -= 1

    def add_header(self, line: str) -> None:
        self.lines.append(DiffLine(type="header", content=line))

    def build(self) -> Hunk:
        return Hunk(
            header=self.header,
            old_start=self.old_start,
            old_count=self.old_count,
            new_start=self.new_start,
            new_count=self.new_count,
            lines=self.lines,
        )


class _DiffBuilder:
    def __init__(self) -> None:
        self.file_path = ""
        self.old_path: str | None = None
        self.minus_path: str | None = None
        self.is_binary = False
        self.is_new_file = False
        self.is_deleted_file = False
        self.header_lines: list[DiffLine] = []
        self.hunks: list[Hunk] = []
        self.current: _HunkBuilder | None = None

    def feed(self, line: str) -> None:
        hunk = self.current
        marker = line[:1]

        if hunk is not None and hunk.expects_more and (marker in "+- " or not line):
            # Inside a hunk a line like "--- x" is content, not envelope.
            hunk.add(marker or " ", line[1:])
            return
        if line.startswith(HUNK_SENTINEL):
            self._start_hunk(line)
            return
        if line.startswith(_ENVELOPE_PREFIXES):
            self._envelope(line)
            return
        if hunk is not None and marker in ("+", "-", " ") and line:
            hunk.add(marker, line[1:])
            return
        self._extended_header(line)

    def _start_hunk(self, line: str) -> None:
        counts = parse_hunk_header(line)
        if counts is None:
            logger.debug("hunk_header_skipped", line=line)
            return
        self._close_hunk()
        self.current = _HunkBuilder(line, counts)

    def _close_hunk(self) -> None:
        if self.current is not None:
            self.hunks.append(self.current.build())
            self.current = None

    def _envelope(self, line: str) -> None:
        if self.current is not None:
            self.current.add_header(line)
        else:
            self.header_lines.append(DiffLine(type="header", content=line))

        if line.startswith("diff --git "):
            self._diff_git_paths(line[len("diff --git ") :])
        elif line.startswith("--- "):
            path = line[4:].rstrip("\t")
            if path == _NULL_PATH:
                self.is_new_file = True
            else:
                self.minus_path = _strip_prefix(path)
        elif line.startswith("+++ "):
            path = line[4:].rstrip("\t")
            if path == _NULL_PATH:
                self.is_deleted_file = True
                if self.minus_path:
                    self.file_path = self.minus_path
            else:
                self.file_path = _strip_prefix(path)
                if (
                    self.minus_path
                    and self.minus_path != self.file_path
                    and self.old_path is None
                ):
                    self.old_path = self.minus_path

    def _diff_git_paths(self, rest: str) -> None:
        quoted = _QUOTED_DIFF_GIT_RE.match(rest)
        if quoted:
            a_path = _strip_prefix(f'"{quoted.group("a")}"')
            b_path = _strip_prefix(f'"{quoted.group("b")}"')
        else:
            a_part, sep, b_part = rest.rpartition(" b/")
            if not sep:
                return
            a_path = _strip_prefix(a_part)
            b_path = b_part
        self.file_path = b_path
        self.minus_path = a_path

    def _extended_header(self, line: str) -> None:
        if line.startswith("new file mode"):
            self.is_new_file = True
        elif line.startswith("deleted file mode"):
            self.is_deleted_file = True
        elif line.startswith(("rename from ", "copy from ")):
            self.old_path = unquote_path(line.split(" ", 2)[2])
        elif line.startswith(("rename to ", "copy to ")):
            self.file_path = unquote_path(line.split(" ", 2)[2])
        elif line.startswith("Binary files ") or line == "GIT binary patch":
            self.is_binary = True
        # Anything else ("\ No newline at end of file", mode lines, ...) is skipped.

    def build(self) -> Diff:
        self._close_hunk()
        return Diff(
            file_path=self.file_path,
            old_path=self.old_path,
            is_binary=self.is_binary,
            is_new_file=self.is_new_file,
            is_deleted_file=self.is_deleted_file,
            header_lines=self.header_lines,
            hunks=[] if self.is_binary else self.hunks,
        )


def _split_sections(text: str) -> list[list[str]]:
    sections: list[list[str]] = []
    current: list[str] = []
    for raw in text.split("\n"):
        line = raw.rstrip("\r")
        if line.startswith("diff --git ") and current:
            sections.append(current)
            current = []
        current.append(line)
    if any(current):
        sections.append(current)
    return sections


def parse_diffs(text: str) -> list[Diff]:
    """Parse a multi-file unified diff into one ``Diff`` per file."""
    diffs: list[Diff] = []
    for section in _split_sections(text):
        builder = _DiffBuilder()
        for line in section:
            builder.feed(line)
        diff = builder.build()
        if diff.file_path or diff.hunks or diff.is_binary:
            diffs.append(diff)
    return diffs


def parse_diff(text: str, file_path: str = "") -> Diff:
    """Parse a diff and return the section for *file_path* (or the first one)."""
    diffs = parse_diffs(text)
    if file_path:
        for diff in diffs:
            if diff.file_path == file_path or diff.old_path == file_path:
                return diff
    if diffs:
        return diffs[0]
    return Diff(file_path=file_path)