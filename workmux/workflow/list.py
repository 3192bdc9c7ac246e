"""Collect worktree status for `workmux list`"""

from typing import List, Optional, Set

from workmux.exceptions import ConfigurationRequiredError, ExternalCommandError
from workmux.models.worktree import WorktreeListing
from workmux.services.git import GitOperations
from workmux.services.tmux_service import TmuxService
from workmux.logging_config import get_logger

logger = get_logger(__name__)


def _window_names(tmux: TmuxService) -> Set[str]:
    if not tmux.is_running():
        return set()
    try:
        return tmux.all_window_names()
    except ExternalCommandError as e:
        logger.debug(f"Could not list tmux windows: {e}")
        return set()


def _unmerged(git_ops: GitOperations, main_branch: Optional[str]) -> Set[str]:
    if not main_branch:
        return set()
    try:
        return git_ops.unmerged_branches(git_ops.merge_base(main_branch))
    except ExternalCommandError as e:
        logger.debug(f"Could not compute unmerged branches: {e}")
        return set()


def list_worktrees(
    git_ops: GitOperations,
    tmux: TmuxService,
    prefix: str,
    main_branch: Optional[str] = None,
) -> List[WorktreeListing]:
    """Every worktree with its window and merge status.

    Missing tmux or an undeterminable main branch degrade the status
    columns instead of failing the listing.
    """
    worktrees = git_ops.worktree_service.list_worktrees()
    if not worktrees:
        return []

    windows = _window_names(tmux)
    if main_branch is None:
        try:
            main_branch = git_ops.default_branch()
        except ConfigurationRequiredError:
            main_branch = None
    unmerged = _unmerged(git_ops, main_branch)

    listings = []
    for wt in worktrees:
        handle = wt.handle
        is_comparable = wt.branch_name not in (main_branch, "(detached)")
        listings.append(
            WorktreeListing(
                handle=handle,
                branch=wt.branch_name,
                path=wt.path,
                is_main=wt.is_main,
                has_window=TmuxService.prefixed(prefix, handle) in windows,
                has_unmerged=is_comparable and wt.branch_name in unmerged,
            )
        )
    return listings
