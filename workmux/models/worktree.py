"""Worktree data models."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Any


@dataclass
class WorktreeInfo:
    """Information about a git worktree."""

    path: Path
    branch_name: str  # "(detached)" for a detached HEAD
    commit_sha: str = ""
    is_main: bool = False  # Is this the main working tree?
    is_orphaned: bool = False  # Directory missing?

    @property
    def handle(self) -> str:
        """The worktree directory name, which is also its window name."""
        return self.path.name or self.branch_name

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "orphaned" if self.is_orphaned else "active"
        main_marker = " (main)" if self.is_main else ""
        return f"{self.branch_name} @ {self.path}{main_marker} [{status}]"


@dataclass(frozen=True)
class WorktreeSpec:
    """One worktree to create, produced by expanding a creation request."""

    branch_name: str
    agent: Optional[str] = None
    template_context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WorktreeListing:
    """A row of `workmux list` output."""

    handle: str
    branch: str
    path: Path
    is_main: bool
    has_window: bool
    has_unmerged: bool
