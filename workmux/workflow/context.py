"""Resolved per-invocation state shared by every lifecycle operation"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from workmux.config import Config
from workmux.constants import WORKTREE_DIR_SUFFIX
from workmux.exceptions import ExternalCommandError, NotARepositoryError
from workmux.services.git import GitOperations
from workmux.services.hook_service import HookService
from workmux.services.tmux_service import TmuxService
from workmux.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class WorkflowContext:
    """Read-only session state, built once per invocation.

    Loading config for another agent means building a new context, never
    mutating this one.
    """

    repository_root: Path
    main_worktree_root: Path
    main_branch: str
    prefix: str
    config: Config
    git: GitOperations = field(repr=False)
    tmux: TmuxService = field(repr=False)
    hooks: HookService = field(repr=False, default_factory=HookService)

    @classmethod
    def new(
        cls,
        config: Config,
        cwd: Optional[str] = None,
        git_ops: Optional[GitOperations] = None,
        tmux: Optional[TmuxService] = None,
        hooks: Optional[HookService] = None,
    ) -> "WorkflowContext":
        """Resolve repository layout and main branch.

        Raises:
            NotARepositoryError: If cwd is not inside a git repository
            ConfigurationRequiredError: If the main branch can't be determined
        """
        cwd = cwd or os.getcwd()
        if git_ops is None:
            if not GitOperations.is_repo(cwd):
                raise NotARepositoryError(cwd)
            git_ops = GitOperations(cwd)

        repository_root = git_ops.repo_root(Path(cwd))
        main_worktree_root = git_ops.main_worktree_root()
        main_branch = config.main_branch or git_ops.default_branch()

        context = cls(
            repository_root=repository_root,
            main_worktree_root=main_worktree_root,
            main_branch=main_branch,
            prefix=config.window_prefix or "",
            config=config,
            git=git_ops,
            tmux=tmux or TmuxService(),
            hooks=hooks or HookService(),
        )
        logger.debug(
            f"Context: repo={repository_root} main_worktree={main_worktree_root} "
            f"main_branch={main_branch} prefix='{context.prefix}'"
        )
        return context

    def with_config(self, config: Config) -> "WorkflowContext":
        """New context for a different config snapshot, keeping resolved paths.

        The main branch is re-resolved only if the new config names one.
        """
        return WorkflowContext(
            repository_root=self.repository_root,
            main_worktree_root=self.main_worktree_root,
            main_branch=config.main_branch or self.main_branch,
            prefix=config.window_prefix or "",
            config=config,
            git=self.git,
            tmux=self.tmux,
            hooks=self.hooks,
        )

    def ensure_tmux_running(self) -> None:
        """Fail early when there is no tmux server to create windows in."""
        if not self.tmux.is_running():
            raise ExternalCommandError("tmux has-session", message="tmux is not running. Start a tmux session first.")

    def worktree_base_dir(self) -> Path:
        """Directory that holds all linked worktrees."""
        if self.config.worktree_dir:
            base = Path(os.path.expanduser(self.config.worktree_dir))
            if not base.is_absolute():
                base = self.main_worktree_root / base
            return base
        return self.main_worktree_root.parent / f"{self.main_worktree_root.name}{WORKTREE_DIR_SUFFIX}"

    def worktree_path_for(self, handle: str) -> Path:
        return self.worktree_base_dir() / handle

    def window_name(self, handle: str) -> str:
        return TmuxService.prefixed(self.prefix, handle)
