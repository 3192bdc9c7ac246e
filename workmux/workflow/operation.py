"""Common shape of lifecycle operations"""

from typing import Any, Protocol

from workmux.workflow.context import WorkflowContext


class LifecycleOperation(Protocol):
    """A create/open/remove/merge/rescue transition over a WorkflowContext.

    Implementations resolve their target, validate preconditions before
    mutating anything, perform the mutation and return a result object.
    """

    def run(self, context: WorkflowContext) -> Any:
        ...


def is_main_worktree(path, main_worktree_root) -> bool:
    """Compare canonical paths, falling back to raw paths when either is gone."""
    try:
        return path.resolve(strict=True) == main_worktree_root.resolve(strict=True)
    except OSError:
        return path == main_worktree_root
