"""Services wrapping git, tmux, hooks and terminal output."""

from .git import GitOperations, WorktreeService
from .tmux_service import TmuxService
from .hook_service import HookService, HookPhase
from .display_service import DisplayService

__all__ = [
    "GitOperations",
    "WorktreeService",
    "TmuxService",
    "HookService",
    "HookPhase",
    "DisplayService",
]
