"""Pytest fixtures for workmux tests"""
import tempfile
from pathlib import Path
from unittest.mock import Mock

import git
import pytest

from workmux.config import Config
from workmux.services.tmux_service import TmuxService
from workmux.workflow.context import WorkflowContext


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep a developer's ~/.config/workmux out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("TMUX", raising=False)
    monkeypatch.delenv("TMUX_PANE", raising=False)
    return home


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # git reports resolved paths (e.g. /private/var on macOS)
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with one commit on main."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    repo.git.branch("-M", "main")

    yield repo

    repo.close()


@pytest.fixture
def repo_path(git_repo):
    return Path(git_repo.working_dir)


def commit_file(worktree_path, name, content, message=None):
    """Write, add and commit a file inside any worktree."""
    (Path(worktree_path) / name).write_text(content)
    runner = git.Git(str(worktree_path))
    runner.add(name)
    runner.commit("-m", message or f"Add {name}")


@pytest.fixture
def mock_tmux():
    """A TmuxService double that tracks open windows by full name."""
    tmux = Mock(spec=TmuxService)
    windows = set()
    pane_ids = iter(f"%{i}" for i in range(1, 1000))

    def create_window(prefix, name, cwd):
        windows.add(f"{prefix}{name}")
        return next(pane_ids)

    tmux.windows = windows
    tmux.is_running.return_value = True
    tmux.current_window_name.return_value = None
    tmux.all_window_names.side_effect = lambda: set(windows)
    tmux.window_exists.side_effect = lambda prefix, name: f"{prefix}{name}" in windows
    tmux.create_window.side_effect = create_window
    tmux.split_pane.side_effect = lambda *args, **kwargs: next(pane_ids)
    tmux.close_window.side_effect = lambda prefix, name: windows.discard(f"{prefix}{name}")
    return tmux


@pytest.fixture
def make_context(repo_path, mock_tmux):
    """Build a WorkflowContext over the test repository."""

    def _make(config=None, cwd=None, **kwargs):
        return WorkflowContext.new(
            config or Config(),
            cwd=str(cwd or repo_path),
            tmux=mock_tmux,
            **kwargs,
        )

    return _make


@pytest.fixture
def workflow_context(make_context):
    return make_context()


@pytest.fixture
def worktrees_dir(temp_dir):
    """Where worktrees of the test repository are created by default."""
    return temp_dir / "test_repo__worktrees"


@pytest.fixture
def commit():
    """The commit_file helper, for committing inside linked worktrees."""
    return commit_file


@pytest.fixture
def origin(git_repo, temp_dir):
    """A bare 'origin' remote holding main."""
    origin_path = temp_dir / "origin.git"
    git.Repo.init(origin_path, bare=True).close()
    git_repo.create_remote("origin", str(origin_path))
    git_repo.git.push("origin", "main")
    return origin_path


@pytest.fixture
def remote_heads(origin):
    """Callable returning the branch names currently on origin."""

    def _heads():
        output = git.Git(str(origin)).for_each_ref("--format=%(refname:short)", "refs/heads/")
        return sorted(line for line in output.splitlines() if line)

    return _heads
