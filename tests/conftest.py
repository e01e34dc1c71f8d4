"""Shared fixtures for repostate tests."""

from __future__ import annotations

import os
import shutil
import subprocess
from unittest.mock import MagicMock

import pytest

from repostate.core.config import RepostateConfig
from repostate.core.events import EventBus
from repostate.core.process import CommandResult, ProcessRunner
from repostate.git.dispatcher import CommandDispatcher
from repostate.git.service import GitService

GIT_AVAILABLE = shutil.which("git") is not None

requires_git = pytest.mark.skipif(not GIT_AVAILABLE, reason="git is not installed")


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Prevent .env file and shell env from leaking into tests.

    RepostateConfig.model_config has env_file=".env" which loads the project
    .env relative to cwd. Nullify it at the source.
    """
    monkeypatch.setitem(RepostateConfig.model_config, "env_file", None)
    for key in list(os.environ):
        if key.startswith("REPOSTATE_"):
            monkeypatch.delenv(key, raising=False)


def make_result(exit_code=0, stdout="", stderr="", **kwargs) -> CommandResult:
    """Build a CommandResult from text output."""
    return CommandResult(
        exit_code=exit_code,
        stdout=stdout.encode(),
        stderr=stderr.encode(),
        **kwargs,
    )


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def repo_dir(tmp_path):
    """A directory that passes the structural repository check."""
    (tmp_path / ".git").mkdir()
    return tmp_path


@pytest.fixture
def stub_runner():
    runner = MagicMock(spec=ProcessRunner)
    runner.run.return_value = make_result()
    return runner


@pytest.fixture
def dispatcher(repo_dir, stub_runner, event_bus):
    return CommandDispatcher(repo_dir, runner=stub_runner, events=event_bus)


@pytest.fixture
def service(dispatcher):
    svc = GitService(dispatcher=dispatcher)
    yield svc
    svc.close()


def _git(cwd, *args):
    subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        env={**os.environ, "LC_ALL": "C", "GIT_TERMINAL_PROMPT": "0"},
    )


@pytest.fixture
def git_repo(tmp_path):
    """A real repository with one commit on ``main``."""
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("hello\n")
    _git(repo, "add", "README.md")
    _git(repo, "commit", "-q", "-m", "Initial commit")
    return repo
