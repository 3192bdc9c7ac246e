"""Move uncommitted changes out of the current worktree into a new one"""

from dataclasses import dataclass, field

from rich.console import Console

from workmux.exceptions import AlreadyExistsError, ExternalCommandError
from workmux.models.results import RescueResult, SetupOptions
from workmux.workflow.context import WorkflowContext
from workmux.workflow.create import check_handle_available
from workmux.workflow.setup import setup_environment
from workmux.logging_config import get_logger

console = Console()
logger = get_logger(__name__)


@dataclass
class RescueOperation:
    """Create a fresh worktree at the current commit and carry changes over.

    The changes travel through `git stash`: pushed in the source worktree,
    popped in the new one. The source worktree is left clean and stays
    active.
    """

    branch_name: str
    handle: str
    include_untracked: bool = False
    patch: bool = False
    options: SetupOptions = field(default_factory=SetupOptions)

    def _has_changes(self, context: WorkflowContext) -> bool:
        source = context.repository_root
        if context.git.has_tracked_changes(source):
            return True
        return self.include_untracked and context.git.has_untracked_files(source)

    def run(self, context: WorkflowContext) -> RescueResult:
        git_ops = context.git
        source = context.repository_root
        logger.info(f"rescue:start branch={self.branch_name} handle={self.handle} source={source}")

        if not self._has_changes(context):
            logger.info("rescue: no uncommitted changes to move")
            return RescueResult(moved=False, branch_name=self.branch_name, handle=self.handle)

        context.ensure_tmux_running()
        if git_ops.local_branch_exists(self.branch_name):
            raise AlreadyExistsError(self.branch_name, "branch already exists; rescue needs a new branch")
        worktree_path = check_handle_available(context, self.branch_name, self.handle)

        start_point = git_ops.head_commit(source)
        source_branch = git_ops.current_branch(source)

        stashed = git_ops.stash_push(
            source,
            f"workmux: moving changes to {self.branch_name}",
            include_untracked=self.include_untracked,
            patch=self.patch,
        )
        if not stashed:
            logger.info("rescue: nothing was stashed")
            return RescueResult(moved=False, branch_name=self.branch_name, handle=self.handle)

        try:
            worktree_path.parent.mkdir(parents=True, exist_ok=True)
            git_ops.worktree_service.create_worktree(
                worktree_path, self.branch_name, create_branch=True, base=start_point
            )
        except (ExternalCommandError, OSError):
            logger.error("rescue: worktree creation failed; restoring changes in the source worktree")
            git_ops.stash_pop(source)
            raise

        git_ops.stash_pop(worktree_path)
        if source_branch:
            git_ops.set_branch_base(self.branch_name, source_branch)

        created = setup_environment(context, self.branch_name, self.handle, worktree_path, self.options)
        logger.info(f"rescue:completed branch={self.branch_name} path={worktree_path}")
        return RescueResult(
            moved=True,
            branch_name=self.branch_name,
            handle=self.handle,
            worktree_path=worktree_path,
            post_create_hooks_run=created.post_create_hooks_run,
        )
