"""Environment setup shared by create, open and rescue"""

import shlex
import shutil
from pathlib import Path
from typing import Dict, Optional

from rich.console import Console

from workmux.constants import PROMPT_DIR
from workmux.exceptions import InvalidConfigError
from workmux.models.results import CreateResult, SetupOptions
from workmux.services.hook_service import HookPhase
from workmux.logging_config import get_logger

console = Console()
logger = get_logger(__name__)


def hook_env(handle: str, branch_name: str, worktree_path: Path) -> Dict[str, str]:
    """Environment variables passed to hooks."""
    return {
        "WM_HANDLE": handle,
        "WM_BRANCH": branch_name,
        "WM_WORKTREE_PATH": str(worktree_path),
    }


def _resolve_sources(source_root: Path, pattern: str):
    """Yield files matching a pattern, refusing anything outside source_root."""
    if Path(pattern).is_absolute():
        raise InvalidConfigError(f"File pattern '{pattern}' must be relative to the repository")
    root = source_root.resolve()
    for match in sorted(source_root.glob(pattern)):
        resolved = match.resolve()
        if resolved != root and root not in resolved.parents:
            raise InvalidConfigError(f"File pattern '{pattern}' escapes the repository: {match}")
        yield match


def handle_file_operations(source_root: Path, worktree_path: Path, files: Dict[str, list]) -> int:
    """Copy and symlink configured files from the main worktree.

    Returns:
        Number of files copied or linked
    """
    count = 0
    for mode in ("copy", "symlink"):
        for pattern in files.get(mode, []):
            matched = False
            for source in _resolve_sources(source_root, pattern):
                matched = True
                relative = source.relative_to(source_root)
                dest = worktree_path / relative
                if dest.exists() or dest.is_symlink():
                    logger.debug(f"Skipping {relative}: already present in worktree")
                    continue
                dest.parent.mkdir(parents=True, exist_ok=True)
                if mode == "symlink":
                    dest.symlink_to(source.resolve())
                elif source.is_dir():
                    shutil.copytree(source, dest, symlinks=True)
                else:
                    shutil.copy2(source, dest)
                logger.info(f"{mode}: {relative}")
                count += 1
            if not matched:
                logger.debug(f"File pattern '{pattern}' matched nothing")
    return count


def write_prompt_file(worktree_path: Path, handle: str, prompt: str) -> Path:
    """Write a rendered prompt into the worktree for the agent pane to read."""
    prompt_dir = worktree_path / PROMPT_DIR
    prompt_dir.mkdir(parents=True, exist_ok=True)
    prompt_file = prompt_dir / f"PROMPT-{handle}.md"
    prompt_file.write_text(prompt, encoding="utf-8")
    return prompt_file


def _is_agent_command(command: str, agent: str) -> bool:
    try:
        tokens = shlex.split(command)
    except ValueError:
        return False
    return bool(tokens) and tokens[0] == shlex.split(agent)[0]


def setup_environment(
    context,
    branch_name: str,
    handle: str,
    worktree_path: Path,
    options: SetupOptions,
    prompt: Optional[str] = None,
) -> CreateResult:
    """Prepare a materialized worktree and open its window.

    Order: file operations, post-create hooks, window and panes, prompt
    delivery, focus.
    """
    config = context.config
    panes = config.window_panes()

    if options.run_file_ops:
        handle_file_operations(context.main_worktree_root, worktree_path, config.files)

    hooks_run = 0
    if options.run_hooks:
        hooks_run = context.hooks.run(
            HookPhase.POST_CREATE, config, worktree_path, hook_env(handle, branch_name, worktree_path)
        )

    first_pane = context.tmux.create_window(context.prefix, handle, worktree_path)

    prompt_file = write_prompt_file(worktree_path, handle, prompt) if prompt else None
    prompt_delivered = False

    pane_ids = []
    focus_pane = None
    for i, pane in enumerate(panes):
        if i == 0:
            pane_id = first_pane
        else:
            pane_id = context.tmux.split_pane(
                pane_ids[-1],
                worktree_path,
                horizontal=pane.get("split") == "horizontal",
                size=pane.get("size"),
                percentage=pane.get("percentage"),
            )
        pane_ids.append(pane_id)

        command = pane.get("command")
        if command and options.run_pane_commands:
            if prompt_file and _is_agent_command(command, config.agent):
                command = f'{command} "$(cat {shlex.quote(str(prompt_file))})"'
                prompt_delivered = True
            context.tmux.send_keys(pane_id, command)
        if pane.get("focus"):
            focus_pane = pane_id

    if prompt_file and not prompt_delivered:
        logger.warning(f"No pane runs '{config.agent}'; prompt saved to {prompt_file}")
        console.print(f"[yellow]Warning: no pane runs '{config.agent}'. Prompt saved to {prompt_file}[/yellow]")

    if focus_pane is not None:
        context.tmux.select_pane(focus_pane)

    if options.focus_window:
        context.tmux.focus_window(context.prefix, handle)

    return CreateResult(
        worktree_path=worktree_path,
        branch_name=branch_name,
        handle=handle,
        post_create_hooks_run=hooks_run,
    )
