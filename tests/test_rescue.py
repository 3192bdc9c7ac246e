"""Tests for moving uncommitted changes into a new worktree"""
import pytest

from workmux.exceptions import AlreadyActiveError, AlreadyExistsError
from workmux.workflow.rescue import RescueOperation

ORIGINAL_README = "# Test Repository\n"


class TestRescue:
    """Test RescueOperation."""

    def test_no_changes_is_noop(self, workflow_context, mock_tmux, worktrees_dir):
        result = RescueOperation("rescued", "rescued").run(workflow_context)

        assert result.moved is False
        assert result.worktree_path is None
        assert not (worktrees_dir / "rescued").exists()
        assert not workflow_context.git.local_branch_exists("rescued")
        mock_tmux.create_window.assert_not_called()

    def test_moves_tracked_changes(self, workflow_context, repo_path, mock_tmux, worktrees_dir):
        (repo_path / "README.md").write_text("work in progress\n")

        result = RescueOperation("rescued", "rescued").run(workflow_context)

        assert result.moved is True
        assert result.worktree_path == worktrees_dir / "rescued"
        assert (result.worktree_path / "README.md").read_text() == "work in progress\n"
        assert (repo_path / "README.md").read_text() == ORIGINAL_README
        assert workflow_context.git.has_uncommitted_changes(repo_path) is False
        mock_tmux.create_window.assert_called_once_with("wm-", "rescued", result.worktree_path)

    def test_records_source_branch_as_base(self, workflow_context, repo_path):
        (repo_path / "README.md").write_text("wip\n")
        RescueOperation("rescued", "rescued").run(workflow_context)
        assert workflow_context.git.get_branch_base("rescued") == "main"

    def test_untracked_only_is_noop_without_flag(self, workflow_context, repo_path, worktrees_dir):
        (repo_path / "notes.txt").write_text("x")

        result = RescueOperation("rescued", "rescued").run(workflow_context)

        assert result.moved is False
        assert (repo_path / "notes.txt").exists()
        assert not (worktrees_dir / "rescued").exists()

    def test_include_untracked(self, workflow_context, repo_path):
        (repo_path / "notes.txt").write_text("x")

        result = RescueOperation("rescued", "rescued", include_untracked=True).run(workflow_context)

        assert result.moved is True
        assert (result.worktree_path / "notes.txt").read_text() == "x"
        assert not (repo_path / "notes.txt").exists()

    def test_existing_branch_rejected_before_stash(self, workflow_context, git_repo, repo_path):
        git_repo.git.branch("rescued")
        (repo_path / "README.md").write_text("wip\n")

        with pytest.raises(AlreadyExistsError):
            RescueOperation("rescued", "rescued").run(workflow_context)

        assert (repo_path / "README.md").read_text() == "wip\n"

    def test_window_collision_keeps_changes_in_place(self, workflow_context, repo_path, mock_tmux):
        mock_tmux.windows.add("wm-rescued")
        (repo_path / "README.md").write_text("wip\n")

        with pytest.raises(AlreadyActiveError):
            RescueOperation("rescued", "rescued").run(workflow_context)

        assert (repo_path / "README.md").read_text() == "wip\n"

    def test_from_linked_worktree(self, make_context, workflow_context, worktrees_dir):
        source = worktrees_dir / "source"
        workflow_context.git.worktree_service.create_worktree(source, "source", create_branch=True)
        (source / "README.md").write_text("linked wip\n")

        result = RescueOperation("rescued", "rescued").run(make_context(cwd=source))

        assert (result.worktree_path / "README.md").read_text() == "linked wip\n"
        assert (source / "README.md").read_text() == ORIGINAL_README
        assert workflow_context.git.get_branch_base("rescued") == "source"
