"""Tests for the remove lifecycle operation and teardown ordering"""
import shutil

import git
import pytest

from workmux.config import Config
from workmux.exceptions import DirtyWorktreeError, ExternalCommandError, ProtectedResourceError
from workmux.workflow.create import CreateOperation
from workmux.workflow.remove import RemoveOperation


@pytest.fixture
def feature(workflow_context):
    """A created feature/login worktree with its window open."""
    return CreateOperation("feature/login", "feature-login").run(workflow_context)


class TestRemove:
    """Test RemoveOperation."""

    def test_removes_worktree_branch_and_window(self, workflow_context, mock_tmux, feature):
        result = RemoveOperation("feature-login").run(workflow_context)

        assert result.branch_removed == "feature/login"
        assert result.handle == "feature-login"
        assert not feature.worktree_path.exists()
        assert not workflow_context.git.local_branch_exists("feature/login")
        mock_tmux.close_window.assert_called_once_with("wm-", "feature-login")
        assert "wm-feature-login" not in mock_tmux.windows

    def test_remove_by_branch_name(self, workflow_context, feature):
        result = RemoveOperation("feature/login").run(workflow_context)
        assert result.handle == "feature-login"
        assert not feature.worktree_path.exists()

    def test_keep_branch(self, workflow_context, feature):
        result = RemoveOperation("feature-login", keep_branch=True).run(workflow_context)
        assert result.branch_kept is True
        assert not feature.worktree_path.exists()
        assert workflow_context.git.local_branch_exists("feature/login")

    def test_dirty_worktree_blocks(self, workflow_context, mock_tmux, feature):
        (feature.worktree_path / "scratch.txt").write_text("wip")

        with pytest.raises(DirtyWorktreeError) as exc_info:
            RemoveOperation("feature-login").run(workflow_context)

        assert "--force" in str(exc_info.value)
        assert feature.worktree_path.exists()
        assert workflow_context.git.local_branch_exists("feature/login")
        mock_tmux.close_window.assert_not_called()

    def test_force_discards_changes(self, workflow_context, feature):
        (feature.worktree_path / "scratch.txt").write_text("wip")
        RemoveOperation("feature-login", force=True).run(workflow_context)
        assert not feature.worktree_path.exists()

    def test_orphaned_directory(self, workflow_context, mock_tmux, feature):
        shutil.rmtree(feature.worktree_path)
        RemoveOperation("feature-login").run(workflow_context)
        assert not workflow_context.git.local_branch_exists("feature/login")
        assert not workflow_context.git.worktree_service.worktree_exists("feature/login")

    def test_pre_delete_hooks_run_in_worktree(self, make_context, temp_dir):
        marker = temp_dir / "deleted-from.txt"
        context = make_context(Config(pre_delete=[f"pwd > {marker}"]))
        created = CreateOperation("feature", "feature").run(context)

        RemoveOperation("feature").run(context)

        assert marker.read_text().strip() == str(created.worktree_path)


class TestRemoveProtection:
    """The main worktree and main branch can never be removed."""

    def test_main_branch_protected_even_with_force(self, workflow_context, repo_path):
        with pytest.raises(ProtectedResourceError):
            RemoveOperation("main", force=True).run(workflow_context)
        assert repo_path.exists()
        assert workflow_context.git.local_branch_exists("main")

    def test_main_worktree_protected_by_handle(self, workflow_context, repo_path):
        with pytest.raises(ProtectedResourceError):
            RemoveOperation(repo_path.name, force=True).run(workflow_context)
        assert repo_path.exists()

    def test_main_worktree_on_other_branch_protected(self, workflow_context, git_repo, repo_path):
        git_repo.git.checkout("-b", "side")
        with pytest.raises(ProtectedResourceError):
            RemoveOperation("side", force=True).run(workflow_context)
        assert workflow_context.git.local_branch_exists("side")

    def test_main_branch_checked_out_in_linked_worktree(self, git_repo, make_context, repo_path, worktrees_dir):
        git_repo.git.checkout("-b", "side")
        context = make_context(Config(main_branch="main"))
        context.git.worktree_service.create_worktree(worktrees_dir / "main", "main", create_branch=False)

        with pytest.raises(ProtectedResourceError):
            RemoveOperation("main", force=True).run(context)
        assert (worktrees_dir / "main").exists()


class TestTeardownOrdering:
    """Windows are only closed after the git side succeeded."""

    def test_branch_delete_failure_keeps_window_open(self, workflow_context, mock_tmux, feature, commit):
        commit(feature.worktree_path, "work.txt", "unmerged work")

        with pytest.raises(ExternalCommandError) as exc_info:
            RemoveOperation("feature-login").run(workflow_context)

        assert "left open" in str(exc_info.value)
        mock_tmux.close_window.assert_not_called()
        mock_tmux.schedule_close_window.assert_not_called()
        assert "wm-feature-login" in mock_tmux.windows
        assert workflow_context.git.local_branch_exists("feature/login")

    def test_force_deletes_unmerged_branch(self, workflow_context, feature, commit):
        commit(feature.worktree_path, "work.txt", "unmerged work")
        RemoveOperation("feature-login", force=True).run(workflow_context)
        assert not workflow_context.git.local_branch_exists("feature/login")

    def test_inside_target_window_moves_to_main_first(self, workflow_context, mock_tmux, feature, repo_path):
        mock_tmux.current_window_name.return_value = "wm-feature-login"

        RemoveOperation("feature-login").run(workflow_context)

        mock_tmux.create_window.assert_called_with("wm-", "main", repo_path)
        mock_tmux.focus_window.assert_called_with("wm-", "main")
        mock_tmux.schedule_close_window.assert_called_once_with("wm-", "feature-login")
        mock_tmux.close_window.assert_not_called()

    def test_inside_target_window_reuses_main_window(self, workflow_context, mock_tmux, feature):
        mock_tmux.windows.add("wm-main")
        mock_tmux.current_window_name.return_value = "wm-feature-login"
        creates_before = mock_tmux.create_window.call_count

        RemoveOperation("feature-login").run(workflow_context)

        assert mock_tmux.create_window.call_count == creates_before
        mock_tmux.focus_window.assert_called_with("wm-", "main")

    def test_no_window_open(self, workflow_context, mock_tmux, feature):
        mock_tmux.windows.clear()
        RemoveOperation("feature-login").run(workflow_context)
        mock_tmux.close_window.assert_not_called()

    def test_tmux_not_running(self, workflow_context, mock_tmux, feature):
        mock_tmux.is_running.return_value = False
        RemoveOperation("feature-login").run(workflow_context)
        assert not feature.worktree_path.exists()
        mock_tmux.close_window.assert_not_called()


class TestRemoveRemoteBranch:
    """Test delete_remote against a bare origin."""

    def test_deletes_remote_when_run_from_inside_worktree(
        self, make_context, feature, remote_heads, mock_tmux, monkeypatch
    ):
        git.Git(str(feature.worktree_path)).push("origin", "feature/login")
        assert remote_heads() == ["feature/login", "main"]
        monkeypatch.chdir(feature.worktree_path)
        context = make_context(cwd=feature.worktree_path)

        result = RemoveOperation("feature-login", delete_remote=True).run(context)

        assert result.remote_delete_error is None
        assert remote_heads() == ["main"]
        assert not feature.worktree_path.exists()
        assert "wm-feature-login" not in mock_tmux.windows

    def test_failed_remote_delete_is_returned(self, workflow_context, feature, remote_heads, mock_tmux):
        # feature/login was never pushed
        result = RemoveOperation("feature-login", delete_remote=True).run(workflow_context)

        assert "feature/login" in result.remote_delete_error
        assert not feature.worktree_path.exists()
        assert not workflow_context.git.local_branch_exists("feature/login")
        assert "wm-feature-login" not in mock_tmux.windows
        assert remote_heads() == ["main"]
