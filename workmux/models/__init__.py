"""Data models for workmux."""

from .worktree import WorktreeInfo, WorktreeSpec, WorktreeListing
from .results import (
    SetupOptions,
    CreateResult,
    RemoveResult,
    MergeResult,
    RescueResult,
    CleanupResult,
)

__all__ = [
    "WorktreeInfo",
    "WorktreeSpec",
    "WorktreeListing",
    "SetupOptions",
    "CreateResult",
    "RemoveResult",
    "MergeResult",
    "RescueResult",
    "CleanupResult",
]
