"""Tests for CommandDispatcher and result classification."""

from __future__ import annotations

import sys

import pytest

from conftest import make_result
from repostate.core.events import OPERATION_LOG
from repostate.core.process import CommandResult
from repostate.git.dispatcher import (
    DEFAULT_NETWORK_TIMEOUT_MS,
    CommandDispatcher,
    classify_result,
    is_valid_repository,
)
from repostate.git.models import ErrorKind


class TestClassifyResult:
    def test_success(self):
        assert classify_result(make_result(0, stderr="warning: x")) is ErrorKind.SUCCESS

    def test_not_a_repository(self):
        result = make_result(
            128, stderr="fatal: not a git repository (or any of the parent directories): .git"
        )
        assert classify_result(result) is ErrorKind.NOT_A_REPOSITORY

    def test_not_a_repository_needs_exit_128(self):
        result = make_result(1, stderr="fatal: not a git repository")
        assert classify_result(result) is ErrorKind.FAILED

    @pytest.mark.parametrize(
        "stderr",
        [
            "fatal: Could not resolve host: example.com",
            "fatal: unable to access 'https://example.com/': Failed to connect",
            "ssh: connect to host example.com port 22: Connection refused",
        ],
    )
    def test_network(self, stderr):
        assert classify_result(make_result(128, stderr=stderr)) is ErrorKind.NETWORK_ERROR

    @pytest.mark.parametrize(
        "stderr",
        [
            "git@example.com: Permission denied (publickey).\n"
            "fatal: Could not read from remote repository.",
            "remote: HTTP Basic: Access denied\nfatal: Authentication failed for 'x'",
            "fatal: could not read Username for 'https://example.com': terminal prompts disabled",
        ],
    )
    def test_permission_checked_before_network(self, stderr):
        assert classify_result(make_result(128, stderr=stderr)) is ErrorKind.PERMISSION_DENIED

    def test_cancelled(self):
        result = CommandResult.failure("Process was cancelled", cancelled=True)
        assert classify_result(result) is ErrorKind.CANCELLED

    def test_timeout_is_failed(self):
        result = CommandResult.failure("Process timed out after 10 ms", timed_out=True)
        assert classify_result(result) is ErrorKind.FAILED

    def test_plain_failure(self):
        result = make_result(1, stderr="error: pathspec 'x' did not match")
        assert classify_result(result) is ErrorKind.FAILED


class TestIsValidRepository:
    def test_working_tree(self, tmp_path):
        (tmp_path / ".git").mkdir()
        assert is_valid_repository(tmp_path)

    def test_gitfile(self, tmp_path):
        (tmp_path / ".git").write_text("gitdir: ../elsewhere\n")
        assert is_valid_repository(tmp_path)

    def test_bare(self, tmp_path):
        (tmp_path / "HEAD").write_text("ref: refs/heads/main\n")
        (tmp_path / "objects").mkdir()
        (tmp_path / "refs").mkdir()
        assert is_valid_repository(tmp_path)

    def test_partial_bare_rejected(self, tmp_path):
        (tmp_path / "HEAD").write_text("ref: refs/heads/main\n")
        (tmp_path / "objects").mkdir()
        assert not is_valid_repository(tmp_path)

    def test_missing(self, tmp_path):
        assert not is_valid_repository(tmp_path / "nope")

    def test_dispatcher_without_path(self):
        assert not CommandDispatcher().is_valid_repository()


class TestExecute:
    def test_runs_git_in_repository(self, dispatcher, stub_runner, repo_dir):
        stub_runner.run.return_value = make_result(0, stdout="ok\n")
        outcome = dispatcher.execute(["status"], require_repository=True)

        assert outcome.success
        assert outcome.output == "ok\n"
        assert outcome.command == ["git", "status"]
        args, _ = stub_runner.run.call_args
        assert args[0] == "git"
        assert args[1] == ["status"]
        assert args[2] == str(repo_dir)
        assert args[3] == dispatcher.timeout_ms

    def test_custom_timeout_and_cwd(self, dispatcher, stub_runner, tmp_path):
        dispatcher.execute(["clone", "x"], cwd=tmp_path, timeout_ms=DEFAULT_NETWORK_TIMEOUT_MS)
        args, _ = stub_runner.run.call_args
        assert args[2] == tmp_path
        assert args[3] == DEFAULT_NETWORK_TIMEOUT_MS

    def test_stderr_callback_forwarded(self, dispatcher, stub_runner):
        def on_line(line):
            pass

        dispatcher.execute(["fetch"], on_stderr_line=on_line)
        _, kwargs = stub_runner.run.call_args
        assert kwargs["on_stderr_line"] is on_line

    def test_invalid_repository_short_circuits(self, stub_runner, tmp_path):
        dispatcher = CommandDispatcher(tmp_path, runner=stub_runner)
        outcome = dispatcher.execute(["status"], require_repository=True)

        assert outcome.kind is ErrorKind.NOT_A_REPOSITORY
        assert not stub_runner.run.called
        assert "Not a valid git repository" in dispatcher.last_error

    def test_failure_sets_last_error(self, dispatcher, stub_runner):
        stub_runner.run.return_value = make_result(1, stderr="error: boom\n")
        outcome = dispatcher.execute(["commit"])
        assert outcome.kind is ErrorKind.FAILED
        assert outcome.exit_code == 1
        assert dispatcher.last_error == "error: boom"

    def test_success_keeps_previous_error(self, dispatcher, stub_runner):
        stub_runner.run.return_value = make_result(1, stderr="first failure")
        dispatcher.execute(["x"])
        stub_runner.run.return_value = make_result(0)
        dispatcher.execute(["y"])
        assert dispatcher.last_error == "first failure"

    def test_failure_without_text_uses_kind(self, dispatcher, stub_runner):
        stub_runner.run.return_value = make_result(1)
        dispatcher.execute(["config", "--get", "missing.key"])
        assert dispatcher.last_error == "failed"

    def test_log_events(self, dispatcher, stub_runner, event_bus):
        messages = []
        event_bus.subscribe(OPERATION_LOG, lambda e: messages.append(e.data["message"]))
        stub_runner.run.return_value = make_result(1, stderr="error: nope")
        dispatcher.execute(["push"])
        assert messages == ["$ git push", "error: nope"]

    def test_cancel_delegates(self, dispatcher, stub_runner):
        dispatcher.cancel()
        stub_runner.cancel.assert_called_once()

    def test_close_shuts_down_runner(self, dispatcher, stub_runner):
        dispatcher.close()
        stub_runner.shutdown.assert_called_once()


class TestDefaultRunner:
    def test_own_runner_gets_git_environment(self, tmp_path):
        dispatcher = CommandDispatcher(git_executable=sys.executable)
        code = "import os; print(os.environ['LC_ALL'], os.environ['GIT_TERMINAL_PROMPT'])"
        try:
            outcome = dispatcher.execute(["-c", code], cwd=tmp_path)
        finally:
            dispatcher.close()
        assert outcome.success
        assert outcome.output.split() == ["C", "0"]
