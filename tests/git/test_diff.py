"""Tests for the unified diff parser."""

from __future__ import annotations

import pytest

from repostate.git.diff import parse_diff, parse_diffs, parse_hunk_header

SIMPLE_DIFF = """\
diff --git a/app.py b/app.py
index 1111111..2222222 100644
--- a/app.py
+++ b/app.py
@@ -1,3 +1,4 @@
 import os
-import sys
+import re
+import json

"""

TWO_FILE_DIFF = """\
diff --git a/a.txt b/a.txt
new file mode 100644
index 0000000..e69de29
--- /dev/null
+++ b/a.txt
@@ -0,0 +1,2 @@
+one
+two
diff --git a/b.txt b/b.txt
deleted file mode 100644
index e69de29..0000000
--- a/b.txt
+++ /dev/null
@@ -1 +0,0 @@
-gone
"""


class TestHunkHeader:
    def test_full(self):
        assert parse_hunk_header("@@ -10,7 +12,9 @@ def f():") == (10, 7, 12, 9)

    def test_counts_default_to_one(self):
        assert parse_hunk_header("@@ -5 +6 @@") == (5, 1, 6, 1)

    def test_zero_counts(self):
        assert parse_hunk_header("@@ -0,0 +1,3 @@") == (0, 0, 1, 3)

    def test_not_a_header(self):
        assert parse_hunk_header("@@@ -1,2 -1,2 +1,3 @@@") is None
        assert parse_hunk_header("diff --git a/x b/x") is None


class TestParseDiff:
    def test_line_numbers(self):
        diff = parse_diff(SIMPLE_DIFF)
        assert diff.file_path == "app.py"
        assert len(diff.hunks) == 1
        hunk = diff.hunks[0]
        assert (hunk.old_start, hunk.old_count, hunk.new_start, hunk.new_count) == (1, 3, 1, 4)

        kinds = [(line.type, line.old_line_number, line.new_line_number) for line in hunk.lines]
        assert kinds == [
            ("context", 1, 1),
            ("deletion", 2, None),
            ("addition", None, 2),
            ("addition", None, 3),
            ("context", 3, 4),
        ]
        assert hunk.lines[0].content == "import os"
        assert diff.lines_added == 2
        assert diff.lines_deleted == 1

    def test_header_lines_kept(self):
        diff = parse_diff(SIMPLE_DIFF)
        contents = [line.content for line in diff.header_lines]
        assert contents[0] == "diff --git a/app.py b/app.py"
        assert "--- a/app.py" in contents
        assert "+++ b/app.py" in contents
        assert all(line.type == "header" for line in diff.header_lines)

    def test_hunk_line_counts_match_header(self):
        for diff in parse_diffs(SIMPLE_DIFF + TWO_FILE_DIFF):
            for hunk in diff.hunks:
                old = sum(1 for line in hunk.lines if line.type in ("context", "deletion"))
                new = sum(1 for line in hunk.lines if line.type in ("context", "addition"))
                assert old == hunk.old_count
                assert new == hunk.new_count

    def test_new_and_deleted_files(self):
        added, deleted = parse_diffs(TWO_FILE_DIFF)
        assert added.file_path == "a.txt"
        assert added.is_new_file
        assert added.lines_added == 2
        assert deleted.file_path == "b.txt"
        assert deleted.is_deleted_file
        assert deleted.lines_deleted == 1
        assert deleted.hunks[0].old_count == 1

    def test_select_by_path(self):
        diff = parse_diff(TWO_FILE_DIFF, "b.txt")
        assert diff.file_path == "b.txt"

    def test_unknown_path_falls_back_to_first(self):
        assert parse_diff(TWO_FILE_DIFF, "zzz").file_path == "a.txt"

    def test_empty_input(self):
        diff = parse_diff("", "x.py")
        assert diff.file_path == "x.py"
        assert diff.hunks == []
        assert parse_diffs("") == []

    def test_rename(self):
        text = (
            "diff --git a/old.py b/new.py\n"
            "similarity index 90%\n"
            "rename from old.py\n"
            "rename to new.py\n"
            "--- a/old.py\n"
            "+++ b/new.py\n"
            "@@ -1 +1 @@\n"
            "-x = 1\n"
            "+x = 2\n"
        )
        diff = parse_diff(text)
        assert diff.file_path == "new.py"
        assert diff.old_path == "old.py"

    def test_binary(self):
        text = (
            "diff --git a/logo.png b/logo.png\n"
            "index 1111111..2222222 100644\n"
            "Binary files a/logo.png and b/logo.png differ\n"
        )
        diff = parse_diff(text)
        assert diff.is_binary
        assert diff.file_path == "logo.png"
        assert diff.hunks == []

    def test_envelope_lookalike_inside_hunk_is_content(self):
        text = (
            "diff --git a/notes.md b/notes.md\n"
            "--- a/notes.md\n"
            "+++ b/notes.md\n"
            "@@ -1,2 +1,2 @@\n"
            "--- old rule\n"
            "+++ new rule\n"
            " tail\n"
        )
        hunk = parse_diff(text).hunks[0]
        assert [(line.type, line.content) for line in hunk.lines] == [
            ("deletion", "-- old rule"),
            ("addition", "++ new rule"),
            ("context", "tail"),
        ]

    def test_no_newline_marker_skipped(self):
        text = (
            "diff --git a/f b/f\n"
            "--- a/f\n"
            "+++ b/f\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "\\ No newline at end of file\n"
            "+b\n"
            "\\ No newline at end of file\n"
        )
        hunk = parse_diff(text).hunks[0]
        assert [line.type for line in hunk.lines] == ["deletion", "addition"]

    def test_multiple_hunks(self):
        text = (
            "diff --git a/f b/f\n"
            "--- a/f\n"
            "+++ b/f\n"
            "@@ -1,1 +1,1 @@\n"
            "-a\n"
            "+A\n"
            "@@ -10 +10,2 @@ section\n"
            " j\n"
            "+k\n"
        )
        diff = parse_diff(text)
        assert len(diff.hunks) == 2
        second = diff.hunks[1]
        assert second.header == "@@ -10 +10,2 @@ section"
        assert second.lines[1].new_line_number == 11

    @pytest.mark.parametrize("text", [SIMPLE_DIFF, TWO_FILE_DIFF])
    def test_idempotent(self, text):
        assert parse_diffs(text) == parse_diffs(text)
