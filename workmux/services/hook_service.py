"""Hook execution service for workmux"""

import os
import subprocess
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from rich.console import Console

from workmux.config import Config
from workmux.logging_config import get_logger

console = Console()
logger = get_logger(__name__)


class HookPhase(Enum):
    """Lifecycle phases with configurable hooks."""
    PRE_CREATE = "pre_create"  # before the worktree exists; runs in the invocation directory
    POST_CREATE = "post_create"
    PRE_DELETE = "pre_delete"


class HookService:
    """Runs configured shell hooks.

    Hooks are best-effort environment setup: a failing hook is logged as a
    warning and never aborts the surrounding operation.
    """

    def announce(self, phase: HookPhase, config: Config, enabled: bool = True) -> int:
        """Tell the user hooks are about to run. Returns how many are configured."""
        commands = config.hooks_for(phase.value)
        if enabled and commands:
            label = "setup" if phase is not HookPhase.PRE_DELETE else "cleanup"
            console.print(f"Running {len(commands)} {label} command(s)...")
        return len(commands) if enabled else 0

    def run(
        self,
        phase: HookPhase,
        config: Config,
        cwd: Path,
        env: Optional[Dict[str, str]] = None,
    ) -> int:
        """Run every hook configured for phase.

        Args:
            phase: Which hook list to run
            config: Source of the hook commands
            cwd: Working directory for the hooks
            env: Extra environment variables for the hooks

        Returns:
            Number of hooks run (failed ones included)
        """
        commands = config.hooks_for(phase.value)
        if not commands:
            return 0

        hook_env = {**os.environ, **(env or {})}
        for command in commands:
            logger.info(f"Running {phase.value} hook in {cwd}: {command}")
            try:
                result = subprocess.run(command, shell=True, cwd=str(cwd), env=hook_env)
            except OSError as e:
                logger.warning(f"{phase.value} hook '{command}' could not be started: {e}")
                continue
            if result.returncode != 0:
                logger.warning(f"{phase.value} hook '{command}' exited with status {result.returncode}")
                console.print(f"[yellow]Warning: hook '{command}' failed (exit {result.returncode})[/yellow]")

        return len(commands)
