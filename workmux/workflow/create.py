"""Create a worktree, its branch and its tmux window"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich.console import Console

from workmux.exceptions import AlreadyActiveError, AlreadyExistsError, NotFoundError
from workmux.models.results import CreateResult, SetupOptions
from workmux.services.hook_service import HookPhase
from workmux.workflow.context import WorkflowContext
from workmux.workflow.setup import hook_env, setup_environment
from workmux.logging_config import get_logger

console = Console()
logger = get_logger(__name__)


def check_handle_available(context: WorkflowContext, branch_name: str, handle: str) -> Path:
    """Make sure nothing already uses the handle or branch.

    Returns:
        The path the new worktree will occupy

    Raises:
        AlreadyActiveError: A window with the handle's name is open
        AlreadyExistsError: The branch has a worktree, or the handle/path is taken
    """
    if context.tmux.window_exists(context.prefix, handle):
        raise AlreadyActiveError(handle, context.window_name(handle))

    for wt in context.git.worktree_service.list_worktrees():
        if wt.branch_name == branch_name:
            raise AlreadyExistsError(
                branch_name,
                f"a worktree for this branch already exists at {wt.path}. Use 'workmux open {branch_name}'",
            )
        if wt.path.name == handle:
            raise AlreadyExistsError(handle, f"handle is already used by the worktree at {wt.path}")

    worktree_path = context.worktree_path_for(handle)
    if worktree_path.exists():
        raise AlreadyExistsError(handle, f"directory {worktree_path} already exists")
    return worktree_path


@dataclass
class CreateOperation:
    """Materialize a worktree + branch and open its window.

    Attributes:
        branch_name: Branch to check out, created if it doesn't exist
        handle: Worktree directory and window name
        base_branch: Start point for a new branch (default: current branch)
        remote_branch: Remote ref ("origin/foo") to create a tracking branch from
        prompt: Rendered prompt handed to the agent pane
        invocation_dir: Where pre-create hooks run (default: current directory)
    """

    branch_name: str
    handle: str
    base_branch: Optional[str] = None
    remote_branch: Optional[str] = None
    prompt: Optional[str] = None
    options: SetupOptions = field(default_factory=SetupOptions)
    invocation_dir: Optional[Path] = None

    def run(self, context: WorkflowContext) -> CreateResult:
        git_ops = context.git
        logger.info(f"create:start branch={self.branch_name} handle={self.handle}")

        context.ensure_tmux_running()
        worktree_path = check_handle_available(context, self.branch_name, self.handle)

        branch_exists = git_ops.local_branch_exists(self.branch_name)
        create_branch = not branch_exists
        track_upstream = False
        base: Optional[str] = None

        if self.remote_branch:
            if create_branch:
                if not git_ops.branch_exists(self.remote_branch):
                    raise NotFoundError(self.remote_branch, "Remote branch does not exist locally; fetch it first")
                base = self.remote_branch
                track_upstream = True
        elif create_branch:
            if self.base_branch:
                if not git_ops.branch_exists(self.base_branch):
                    raise NotFoundError(self.base_branch, "Base branch or ref does not exist")
                base = self.base_branch
            else:
                base = git_ops.current_branch(context.repository_root) or None
        elif self.base_branch:
            console.print(
                f"[yellow]Warning: branch '{self.branch_name}' already exists; ignoring --base {self.base_branch}[/yellow]"
            )

        if self.options.run_hooks:
            context.hooks.run(
                HookPhase.PRE_CREATE,
                context.config,
                self.invocation_dir or Path.cwd(),
                hook_env(self.handle, self.branch_name, worktree_path),
            )

        worktree_path.parent.mkdir(parents=True, exist_ok=True)
        git_ops.worktree_service.create_worktree(
            worktree_path,
            self.branch_name,
            create_branch=create_branch,
            base=base,
            track_upstream=track_upstream,
        )
        if create_branch and base:
            git_ops.set_branch_base(self.branch_name, base)

        result = setup_environment(
            context, self.branch_name, self.handle, worktree_path, self.options, prompt=self.prompt
        )
        result.base_branch = base
        result.did_switch = self.options.focus_window

        logger.info(
            f"create:completed branch={self.branch_name} path={worktree_path} "
            f"hooks_run={result.post_create_hooks_run}"
        )
        return result
