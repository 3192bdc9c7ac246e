"""Remove a worktree, its branch and its window without merging"""

from dataclasses import dataclass

from workmux.exceptions import DirtyWorktreeError, ProtectedResourceError
from workmux.models.results import RemoveResult
from workmux.workflow.cleanup import CleanupNavigator
from workmux.workflow.context import WorkflowContext
from workmux.workflow.operation import is_main_worktree
from workmux.logging_config import get_logger

logger = get_logger(__name__)


def check_not_protected(context: WorkflowContext, branch_name: str, worktree) -> None:
    """Refuse to tear down the main worktree or the main branch.

    Applies regardless of --force.
    """
    if worktree.is_main or is_main_worktree(worktree.path, context.main_worktree_root):
        raise ProtectedResourceError(
            branch_name,
            f"it is checked out in the main worktree at '{context.main_worktree_root}'. "
            f"Switch the main worktree to a different branch first, or create a linked worktree for '{branch_name}'",
        )
    if branch_name == context.main_branch:
        raise ProtectedResourceError(branch_name, f"'{branch_name}' is the main branch")


@dataclass
class RemoveOperation:
    """Tear down a worktree/window pair.

    Attributes:
        name: Handle or branch name of the worktree
        force: Discard uncommitted changes and delete the branch even if unmerged
        delete_remote: Also delete the branch on the remote
        keep_branch: Remove only the worktree and window
    """

    name: str
    force: bool = False
    delete_remote: bool = False
    keep_branch: bool = False

    def run(self, context: WorkflowContext) -> RemoveResult:
        logger.info(
            f"remove:start name={self.name} force={self.force} "
            f"delete_remote={self.delete_remote} keep_branch={self.keep_branch}"
        )

        worktree = context.git.worktree_service.find_worktree(self.name)
        branch_name = worktree.branch_name
        worktree_path = worktree.path
        # The directory name was derived at creation time and names the window
        handle = worktree_path.name
        logger.debug(f"remove: resolved {self.name} to branch={branch_name} handle={handle} path={worktree_path}")

        check_not_protected(context, branch_name, worktree)

        if worktree_path.exists() and not self.force and context.git.has_uncommitted_changes(worktree_path):
            raise DirtyWorktreeError(branch_name, str(worktree_path), "--force")

        navigator = CleanupNavigator(context)
        cleanup_result = navigator.cleanup(
            branch_name,
            handle,
            worktree_path,
            force=self.force,
            delete_remote=self.delete_remote,
            keep_branch=self.keep_branch,
        )
        navigator.navigate_and_close(context.prefix, context.main_branch, handle, cleanup_result)

        logger.info(f"remove:completed branch={branch_name} handle={handle}")
        return RemoveResult(
            branch_removed=branch_name,
            handle=handle,
            branch_kept=self.keep_branch,
            remote_delete_error=cleanup_result.remote_delete_error,
        )
