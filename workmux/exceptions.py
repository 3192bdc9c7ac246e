"""Custom exceptions for workmux"""

from typing import Optional


class WorkmuxError(Exception):
    """Base exception for all workmux errors."""
    pass


class NotARepositoryError(WorkmuxError):
    """Raised when workmux is invoked outside a git repository."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not in a git repository: {path}")


class ConfigurationRequiredError(WorkmuxError):
    """Raised when a required setting can neither be configured nor detected."""

    def __init__(self, key: str, message: str):
        self.key = key
        self.message = message
        super().__init__(f"{message} Please set '{key}' in .workmux.yaml.")


class InvalidConfigError(WorkmuxError):
    """Raised for malformed configuration files or pane layouts."""
    pass


class InvalidHandleError(WorkmuxError):
    """Raised when a derived handle is not filesystem/window safe."""

    def __init__(self, handle: str, reason: str):
        self.handle = handle
        self.reason = reason
        super().__init__(f"Invalid handle '{handle}': {reason}")


class AmbiguousExpansionError(WorkmuxError):
    """Raised when multi-worktree flags conflict with each other."""
    pass


class EmptyExpansionError(WorkmuxError):
    """Raised when a creation request expands to zero worktree specs."""

    def __init__(self, base_name: str):
        self.base_name = base_name
        super().__init__(f"No worktree specifications were generated for '{base_name}'")


class TemplateRenderError(WorkmuxError):
    """Raised when a branch-name or prompt template cannot be rendered."""

    def __init__(self, template: str, message: str):
        self.template = template
        self.message = message
        super().__init__(f"Failed to render template '{template}': {message}")


class AlreadyActiveError(WorkmuxError):
    """Raised when a window for the handle is already open."""

    def __init__(self, handle: str, window_name: str):
        self.handle = handle
        self.window_name = window_name
        super().__init__(
            f"A tmux window named '{window_name}' already exists for '{handle}'. "
            f"To switch to it, run: tmux select-window -t '{window_name}'"
        )


class AlreadyExistsError(WorkmuxError):
    """Raised when a branch, worktree or directory for the target already exists."""

    def __init__(self, target: str, message: str):
        self.target = target
        self.message = message
        super().__init__(f"'{target}': {message}")


class NotFoundError(WorkmuxError):
    """Raised when no resource matches a handle or branch name."""

    def __init__(self, target: str, message: Optional[str] = None):
        self.target = target
        self.message = message

        error_msg = f"Nothing found for '{target}'"
        if message:
            error_msg = f"{message}: '{target}'"

        super().__init__(error_msg)


class WorktreeNotFoundError(NotFoundError):
    """Raised when no worktree is registered for a handle or branch."""

    def __init__(self, target: str):
        super().__init__(target, "No worktree found for")


class ProtectedResourceError(WorkmuxError):
    """Raised on an attempt to remove or merge away the main worktree or branch."""

    def __init__(self, target: str, message: str):
        self.target = target
        self.message = message
        super().__init__(f"Refusing to modify '{target}': {message}")


class DirtyWorktreeError(WorkmuxError):
    """Raised when uncommitted changes block a destructive operation."""

    def __init__(self, target: str, path: str, override_flag: Optional[str] = "--force"):
        self.target = target
        self.path = path
        self.override_flag = override_flag

        error_msg = f"Worktree for '{target}' at '{path}' has uncommitted changes. "
        if override_flag:
            error_msg += f"Use {override_flag} to proceed anyway."
        else:
            error_msg += "Commit or stash them first."

        super().__init__(error_msg)


class ExternalCommandError(WorkmuxError):
    """Exception raised when git or tmux exits with a non-zero status."""

    def __init__(
        self,
        operation: str,
        target: Optional[str] = None,
        message: Optional[str] = None,
        stderr: Optional[str] = None,
        status: Optional[int] = None,
    ):
        self.operation = operation
        self.target = target
        self.message = message
        self.stderr = stderr
        self.status = status

        error_msg = f"Command '{operation}' failed"
        if target:
            error_msg += f" for '{target}'"
        if status is not None:
            error_msg += f" (exit {status})"
        if message:
            error_msg += f": {message}"
        if stderr:
            error_msg += f"\n{stderr}"

        super().__init__(error_msg)

    @classmethod
    def from_command_error(cls, operation: str, target: Optional[str], error: Exception) -> "ExternalCommandError":
        """Build from a GitPython GitCommandError or subprocess.CalledProcessError."""
        stderr = getattr(error, "stderr", None)
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace")
        stderr = (stderr or "").strip()
        # GitPython formats stderr as "stderr: '<text>'"
        if stderr.startswith("stderr:"):
            stderr = stderr[len("stderr:"):].strip().strip("'").strip()

        status = getattr(error, "status", None)
        if status is None:
            status = getattr(error, "returncode", None)
        if not isinstance(status, int):
            status = None

        return cls(operation, target=target, stderr=stderr or str(error), status=status)
