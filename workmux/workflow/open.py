"""Open a tmux window for an existing worktree"""

from dataclasses import dataclass, field

from workmux.exceptions import AlreadyActiveError
from workmux.models.results import CreateResult, SetupOptions
from workmux.workflow.context import WorkflowContext
from workmux.workflow.setup import setup_environment
from workmux.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class OpenOperation:
    """Attach a new window to a worktree that already exists.

    `name` may be a handle or a branch name.
    """

    name: str
    options: SetupOptions = field(default_factory=SetupOptions)

    def run(self, context: WorkflowContext) -> CreateResult:
        logger.info(f"open:start name={self.name}")
        context.ensure_tmux_running()

        worktree = context.git.worktree_service.find_worktree(self.name)
        handle = worktree.handle
        if context.tmux.window_exists(context.prefix, handle):
            raise AlreadyActiveError(handle, context.window_name(handle))

        # File operations skip anything already present in the worktree
        result = setup_environment(context, worktree.branch_name, handle, worktree.path, self.options)
        logger.info(f"open:completed handle={handle} hooks_run={result.post_create_hooks_run}")
        return result
