"""Options and results of lifecycle operations"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class SetupOptions:
    """Which parts of environment setup to run."""
    run_hooks: bool = True
    run_file_ops: bool = True
    run_pane_commands: bool = True
    focus_window: bool = True


@dataclass
class CreateResult:
    """Outcome of create/open."""
    worktree_path: Path
    branch_name: str
    handle: str
    post_create_hooks_run: int = 0
    base_branch: Optional[str] = None
    did_switch: bool = False


@dataclass
class RemoveResult:
    branch_removed: str
    handle: str
    branch_kept: bool = False
    remote_delete_error: Optional[str] = None


@dataclass
class MergeResult:
    branch_merged: str
    main_branch: str
    had_staged_changes: bool = False
    strategy: str = "merge"
    remote_delete_error: Optional[str] = None


@dataclass
class RescueResult:
    """Outcome of moving uncommitted changes into a new worktree.

    `moved` is False when there was nothing to move; no worktree is created then.
    """
    moved: bool
    branch_name: str
    handle: str
    worktree_path: Optional[Path] = None
    post_create_hooks_run: int = 0


@dataclass
class CleanupResult:
    """What the version-control side of teardown did."""
    handle: str
    worktree_removed: bool = False
    local_branch_deleted: bool = False
    remote_branch_deleted: bool = False
    remote_delete_error: Optional[str] = None
    pre_delete_hooks_run: int = 0
    ran_inside_target_window: bool = False
