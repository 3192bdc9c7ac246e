"""Handle derivation for worktrees and their tmux windows.

A handle is the slug shared by a worktree's directory name and its window
name. Priority when deriving one:

1. An explicit name (``--name``), which bypasses naming strategy and prefix
2. The configured naming strategy applied to the branch, plus the prefix
"""

from typing import Optional

from slugify import slugify

from workmux.config import Config
from workmux.exceptions import InvalidHandleError


def derive_handle(branch_name: str, explicit_name: Optional[str], config: Config) -> str:
    """Derive the handle for a branch.

    Args:
        branch_name: Branch the worktree is bound to
        explicit_name: Optional override; used verbatim (slugified)
        config: Naming strategy and prefix come from here

    Returns:
        Validated handle

    Raises:
        InvalidHandleError: If the result is empty or unsafe
    """
    if explicit_name is not None:
        handle = slugify(explicit_name)
    else:
        derived = config.worktree_naming.derive_name(branch_name)
        if config.worktree_prefix:
            derived = f"{config.worktree_prefix}{derived}"
        handle = slugify(derived)

    validate_handle(handle)
    return handle


def validate_handle(handle: str) -> None:
    """Check that a handle is safe to use as a directory and window name."""
    if not handle:
        raise InvalidHandleError(handle, "handle cannot be empty")

    # slugify should already have removed these
    if ".." in handle or "/" in handle or "\\" in handle:
        raise InvalidHandleError(handle, "handle cannot contain path traversal")

    if any(ch.isspace() for ch in handle):
        raise InvalidHandleError(handle, "handle cannot contain whitespace")
