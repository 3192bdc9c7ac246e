"""Worktree lifecycle operations"""

from .cleanup import CleanupNavigator
from .context import WorkflowContext
from .create import CreateOperation
from .list import list_worktrees
from .merge import MergeOperation
from .open import OpenOperation
from .operation import LifecycleOperation, is_main_worktree
from .remove import RemoveOperation
from .rescue import RescueOperation
from .setup import setup_environment

__all__ = [
    "CleanupNavigator",
    "CreateOperation",
    "LifecycleOperation",
    "MergeOperation",
    "OpenOperation",
    "RemoveOperation",
    "RescueOperation",
    "WorkflowContext",
    "is_main_worktree",
    "list_worktrees",
    "setup_environment",
]
