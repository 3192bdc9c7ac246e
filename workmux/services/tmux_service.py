"""Tmux window operations service"""

import os
import subprocess
from pathlib import Path
from typing import List, Optional, Set

from workmux.constants import STATUS_OPTION
from workmux.exceptions import ExternalCommandError
from workmux.logging_config import get_logger

logger = get_logger(__name__)

STATUS_FORMAT_SNIPPET = f"#{{?{STATUS_OPTION},#{{{STATUS_OPTION}}} ,}}"


class TmuxService:
    """Service for tmux windows and panes.

    Windows are addressed by their full name (prefix + handle) using tmux's
    exact-match target syntax, so "wm-foo" never matches "wm-foo-2".
    """

    def __init__(self, socket: Optional[str] = None):
        """Initialize the service.

        Args:
            socket: Optional tmux socket name (-L) for isolated servers
        """
        self.socket = socket

    def _cmd_prefix(self) -> List[str]:
        if self.socket:
            return ["tmux", "-L", self.socket]
        return ["tmux"]

    def _run(self, args: List[str], operation: str, target: Optional[str] = None) -> str:
        """Run a tmux command and return stdout, raising on failure."""
        cmd = self._cmd_prefix() + args
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise ExternalCommandError.from_command_error(f"tmux {operation}", target, e)
        except FileNotFoundError:
            raise ExternalCommandError(f"tmux {operation}", target, "tmux is not installed")
        return result.stdout.strip()

    @staticmethod
    def prefixed(prefix: str, name: str) -> str:
        """Full window name for a handle."""
        return f"{prefix}{name}"

    @staticmethod
    def _window_target(window_name: str) -> str:
        return f"={window_name}"

    def is_running(self) -> bool:
        """Check if a tmux server is reachable."""
        try:
            result = subprocess.run(self._cmd_prefix() + ["has-session"], capture_output=True)
        except FileNotFoundError:
            return False
        return result.returncode == 0

    def all_window_names(self) -> Set[str]:
        """Names of all windows across all sessions."""
        output = self._run(["list-windows", "-a", "-F", "#{window_name}"], "list-windows")
        return {line for line in output.splitlines() if line}

    def window_exists(self, prefix: str, name: str) -> bool:
        """Check if the window for a handle exists."""
        return self.prefixed(prefix, name) in self.all_window_names()

    def current_window_name(self) -> Optional[str]:
        """Name of the window this process runs in, or None outside tmux."""
        pane = os.environ.get("TMUX_PANE")
        if not os.environ.get("TMUX") or not pane:
            return None
        try:
            return self._run(["display-message", "-p", "-t", pane, "#{window_name}"], "display-message")
        except ExternalCommandError as e:
            logger.debug(f"Could not determine current window: {e}")
            return None

    def create_window(self, prefix: str, name: str, cwd: Path) -> str:
        """Create a detached window bound to cwd.

        Returns:
            The id of the window's first pane
        """
        window_name = self.prefixed(prefix, name)
        pane_id = self._run(
            ["new-window", "-d", "-n", window_name, "-c", str(cwd), "-P", "-F", "#{pane_id}"],
            "new-window",
            window_name,
        )
        logger.info(f"Created tmux window {window_name} in {cwd}")
        return pane_id

    def split_pane(
        self,
        target_pane: str,
        cwd: Path,
        horizontal: bool,
        size: Optional[int] = None,
        percentage: Optional[int] = None,
    ) -> str:
        """Split a pane. Returns the new pane's id."""
        args = ["split-window", "-h" if horizontal else "-v", "-t", target_pane, "-c", str(cwd), "-P", "-F", "#{pane_id}"]
        if size is not None:
            args += ["-l", str(size)]
        elif percentage is not None:
            args += ["-l", f"{percentage}%"]
        return self._run(args, "split-window", target_pane)

    def send_keys(self, pane: str, command: str) -> None:
        """Type a command into a pane's shell and press Enter."""
        self._run(["send-keys", "-t", pane, "-l", command], "send-keys", pane)
        self._run(["send-keys", "-t", pane, "Enter"], "send-keys", pane)

    def select_pane(self, pane: str) -> None:
        self._run(["select-pane", "-t", pane], "select-pane", pane)

    def focus_window(self, prefix: str, name: str) -> None:
        """Switch the client to a window."""
        window_name = self.prefixed(prefix, name)
        self._run(["select-window", "-t", self._window_target(window_name)], "select-window", window_name)

    def close_window(self, prefix: str, name: str) -> None:
        """Kill a window."""
        window_name = self.prefixed(prefix, name)
        self._run(["kill-window", "-t", self._window_target(window_name)], "kill-window", window_name)
        logger.info(f"Closed tmux window {window_name}")

    def set_window_status(self, pane: str, icon: str) -> None:
        """Set the status icon for the window containing pane."""
        self._run(["set-option", "-w", "-t", pane, STATUS_OPTION, icon], "set-option", pane)

    def set_auto_clear_hook(self, pane: str, icon: str) -> None:
        """Clear the status icon when the window gains focus, if it still shows icon."""
        hook_cmd = (
            f'if-shell -F "#{{==:#{{{STATUS_OPTION}}},{icon}}}" '
            f'"set-option -uw {STATUS_OPTION}"'
        )
        self._run(["set-hook", "-w", "-t", pane, "pane-focus-in", hook_cmd], "set-hook", pane)

    def clear_window_status(self, pane: str) -> None:
        self._run(["set-option", "-uw", "-t", pane, STATUS_OPTION], "set-option", pane)

    def ensure_status_format(self, pane: str) -> None:
        """Make the window list show the status icon."""
        for option in ("window-status-format", "window-status-current-format"):
            current = self._run(["show-options", "-wv", "-t", pane, option], "show-options", pane)
            if not current:
                current = self._run(["show-options", "-gwv", option], "show-options", pane)
            if STATUS_OPTION in current:
                continue
            self._run(
                ["set-option", "-w", "-t", pane, option, STATUS_FORMAT_SNIPPET + current],
                "set-option",
                pane,
            )

    def schedule_close_window(self, prefix: str, name: str, delay: float = 0.3) -> None:
        """Kill a window shortly after this process exits.

        Used when workmux runs inside the window being closed, so the command
        can finish printing before its own pane goes away.
        """
        window_name = self.prefixed(prefix, name)
        tmux_cmd = " ".join(self._cmd_prefix())
        script = f"sleep {delay}; {tmux_cmd} kill-window -t '{self._window_target(window_name)}'"
        self._run(["run-shell", "-b", script], "run-shell", window_name)
        logger.info(f"Scheduled close of tmux window {window_name}")
