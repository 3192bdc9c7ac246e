"""Tests for worktree listing and its table"""
from pathlib import Path

from workmux.models.worktree import WorktreeListing
from workmux.services.display_service import DisplayService
from workmux.services.git import GitOperations
from workmux.workflow.create import CreateOperation
from workmux.workflow.list import list_worktrees


class TestListWorktrees:
    """Test list_worktrees status columns."""

    def test_main_only(self, repo_path, mock_tmux):
        entries = list_worktrees(GitOperations(str(repo_path)), mock_tmux, "wm-")
        assert len(entries) == 1
        assert entries[0].is_main is True
        assert entries[0].branch == "main"
        assert entries[0].has_unmerged is False

    def test_window_and_unmerged_status(self, workflow_context, mock_tmux, commit):
        CreateOperation("clean", "clean").run(workflow_context)
        dirty = CreateOperation("ahead", "ahead").run(workflow_context)
        commit(dirty.worktree_path, "a.txt", "a")
        mock_tmux.windows.discard("wm-clean")

        entries = {e.handle: e for e in list_worktrees(workflow_context.git, mock_tmux, "wm-", "main")}

        assert entries["clean"].has_window is False
        assert entries["clean"].has_unmerged is False
        assert entries["ahead"].has_window is True
        assert entries["ahead"].has_unmerged is True

    def test_tmux_not_running(self, workflow_context, mock_tmux):
        CreateOperation("x", "x").run(workflow_context)
        mock_tmux.is_running.return_value = False
        entries = list_worktrees(workflow_context.git, mock_tmux, "wm-", "main")
        assert not any(e.has_window for e in entries)

    def test_unknown_main_branch_degrades(self, git_repo, repo_path, mock_tmux):
        git_repo.git.branch("-M", "trunk")
        entries = list_worktrees(GitOperations(str(repo_path)), mock_tmux, "wm-")
        assert entries[0].branch == "trunk"
        assert entries[0].has_unmerged is False


class TestDisplayService:
    """Test table row formatting."""

    def test_format_row(self):
        entry = WorktreeListing(
            handle="repo", branch="main", path=Path("/r"), is_main=True, has_window=False, has_unmerged=False
        )
        assert DisplayService().format_row(entry) == ["repo (main)", "main", "-", "-", "/r"]

    def test_format_row_flags(self):
        entry = WorktreeListing(
            handle="x", branch="feature/x", path=Path("/w/x"), is_main=False, has_window=True, has_unmerged=True
        )
        assert DisplayService().format_row(entry) == ["x", "feature/x", "✓", "✓", "/w/x"]

    def test_empty_table(self, capsys):
        DisplayService().display_worktree_table([])
        assert "No worktrees found" in capsys.readouterr().out
