"""Merge a worktree's branch into the main branch, then tear it down"""

from dataclasses import dataclass

from workmux.exceptions import (
    DirtyWorktreeError,
    NotFoundError,
    WorkmuxError,
    WorktreeNotFoundError,
)
from workmux.models.results import MergeResult
from workmux.workflow.cleanup import CleanupNavigator
from workmux.workflow.context import WorkflowContext
from workmux.workflow.remove import check_not_protected
from workmux.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class MergeOperation:
    """Integrate a branch into the main branch's worktree.

    Strategies:
        merge: plain `git merge` in the main worktree
        rebase: rebase the branch onto main first, then fast-forward merge
        squash: `git merge --squash`; the result stays staged for review
    """

    name: str
    ignore_uncommitted: bool = False
    delete_remote: bool = False
    rebase: bool = False
    squash: bool = False
    keep_branch: bool = False

    @property
    def strategy(self) -> str:
        if self.rebase:
            return "rebase"
        if self.squash:
            return "squash"
        return "merge"

    def run(self, context: WorkflowContext) -> MergeResult:
        if self.rebase and self.squash:
            raise WorkmuxError("--rebase and --squash cannot be used together")

        git_ops = context.git
        logger.info(f"merge:start name={self.name} strategy={self.strategy}")

        worktree = git_ops.worktree_service.find_worktree(self.name)
        branch_name = worktree.branch_name
        worktree_path = worktree.path
        handle = worktree_path.name
        check_not_protected(context, branch_name, worktree)

        try:
            main_worktree = git_ops.worktree_service.get_worktree_for_branch(context.main_branch)
        except WorktreeNotFoundError:
            raise NotFoundError(
                context.main_branch,
                f"Main branch '{context.main_branch}' is not checked out in any worktree",
            )
        main_path = main_worktree.path

        had_staged_changes = False
        if worktree_path.exists():
            if not self.ignore_uncommitted and (
                git_ops.has_unstaged_changes(worktree_path) or git_ops.has_untracked_files(worktree_path)
            ):
                raise DirtyWorktreeError(branch_name, str(worktree_path), "--ignore-uncommitted")
            if git_ops.has_staged_changes(worktree_path):
                logger.info(f"Committing staged changes in {worktree_path}")
                git_ops.commit_with_editor(worktree_path)
                had_staged_changes = True
        elif self.rebase:
            raise WorktreeNotFoundError(str(worktree_path))

        if git_ops.has_tracked_changes(main_path):
            raise DirtyWorktreeError(context.main_branch, str(main_path), override_flag=None)

        if self.rebase:
            git_ops.rebase_onto(worktree_path, context.main_branch)
            git_ops.merge_into(main_path, branch_name)
        elif self.squash:
            git_ops.squash_merge(main_path, branch_name)
        else:
            git_ops.merge_into(main_path, branch_name)
        logger.info(f"merge: {branch_name} integrated into {context.main_branch} via {self.strategy}")

        # The branch is integrated (or staged, for squash) so -D is safe
        navigator = CleanupNavigator(context)
        cleanup_result = navigator.cleanup(
            branch_name,
            handle,
            worktree_path,
            force=True,
            delete_remote=self.delete_remote,
            keep_branch=self.keep_branch,
        )
        navigator.navigate_and_close(context.prefix, context.main_branch, handle, cleanup_result)

        logger.info(f"merge:completed branch={branch_name}")
        return MergeResult(
            branch_merged=branch_name,
            main_branch=context.main_branch,
            had_staged_changes=had_staged_changes,
            strategy=self.strategy,
            remote_delete_error=cleanup_result.remote_delete_error,
        )
