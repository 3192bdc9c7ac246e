"""Teardown ordering between git and tmux.

The git side (worktree removal, branch deletion) always runs and reports
before any window is closed. If it fails, the window stays open so the
user can retry from it.
"""

from pathlib import Path
from typing import Optional

from workmux.exceptions import ExternalCommandError
from workmux.models.results import CleanupResult
from workmux.services.hook_service import HookPhase
from workmux.workflow.setup import hook_env
from workmux.logging_config import get_logger

logger = get_logger(__name__)


class CleanupNavigator:
    """Tears down a worktree/window pair in a safe order."""

    def __init__(self, context):
        self.context = context

    def cleanup(
        self,
        branch_name: str,
        handle: str,
        worktree_path: Path,
        force: bool,
        delete_remote: bool = False,
        keep_branch: bool = False,
    ) -> CleanupResult:
        """Run pre-delete hooks, remove the worktree, then delete the branch.

        Callers have already checked for uncommitted changes, so the worktree
        is removed with --force. `force` controls `git branch -D` vs `-d`.

        Raises:
            ExternalCommandError: If the worktree or branch cannot be removed;
                no window has been touched at that point
        """
        context = self.context
        window_name = context.window_name(handle)
        result = CleanupResult(handle=handle)

        if context.tmux.is_running():
            result.ran_inside_target_window = context.tmux.current_window_name() == window_name

        if worktree_path.exists():
            result.pre_delete_hooks_run = context.hooks.run(
                HookPhase.PRE_DELETE,
                context.config,
                worktree_path,
                hook_env(handle, branch_name, worktree_path),
            )
            context.git.worktree_service.remove_worktree(
                worktree_path, force=True, cwd=context.main_worktree_root
            )
        else:
            logger.info(f"Worktree directory {worktree_path} is already gone; pruning metadata")
            context.git.worktree_service.prune_worktrees(cwd=context.main_worktree_root)
        result.worktree_removed = True

        if keep_branch:
            logger.info(f"Keeping branch {branch_name}")
            return result

        try:
            context.git.delete_branch(branch_name, force=force, cwd=context.main_worktree_root)
        except ExternalCommandError as e:
            raise ExternalCommandError(
                e.operation,
                e.target,
                message=(
                    f"worktree '{handle}' was removed but branch '{branch_name}' was not deleted; "
                    f"window '{window_name}' was left open"
                ),
                stderr=e.stderr,
                status=e.status,
            ) from e
        result.local_branch_deleted = True

        if delete_remote:
            try:
                context.git.delete_remote_branch(branch_name, cwd=context.main_worktree_root)
                result.remote_branch_deleted = True
            except ExternalCommandError as e:
                # Local teardown is already done; the caller reports this step
                result.remote_delete_error = str(e)
                logger.warning(f"Could not delete remote branch {branch_name}: {e}")

        return result

    def navigate_and_close(
        self,
        prefix: str,
        main_branch: str,
        handle: str,
        cleanup_result: CleanupResult,
        main_worktree_root: Optional[Path] = None,
    ) -> None:
        """Close the handle's window, first moving the user off it if needed.

        When the command runs inside the window being closed, the user is
        switched to the main branch's window (created if missing) before the
        close is scheduled.
        """
        tmux = self.context.tmux
        if not tmux.is_running() or not tmux.window_exists(prefix, handle):
            logger.debug(f"No window for {handle}; nothing to close")
            return

        if cleanup_result.ran_inside_target_window:
            if not tmux.window_exists(prefix, main_branch):
                root = main_worktree_root or self.context.main_worktree_root
                tmux.create_window(prefix, main_branch, root)
            tmux.focus_window(prefix, main_branch)
            tmux.schedule_close_window(prefix, handle)
        else:
            tmux.close_window(prefix, handle)
