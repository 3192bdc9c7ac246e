"""Git-related services for workmux."""

from .operations import GitOperations
from .worktrees import WorktreeService, parse_worktree_list_porcelain

__all__ = [
    "GitOperations",
    "WorktreeService",
    "parse_worktree_list_porcelain",
]
