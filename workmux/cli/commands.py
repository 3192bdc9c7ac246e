"""Handlers for each workmux subcommand.

Each handler returns a process exit code. Errors propagate as
WorkmuxError subclasses and are reported by the entry point.
"""

import json
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from workmux.config import Config
from workmux.exceptions import (
    AlreadyExistsError,
    AmbiguousExpansionError,
    DirtyWorktreeError,
    ExternalCommandError,
    NotARepositoryError,
    WorkmuxError,
)
from workmux.models.results import SetupOptions
from workmux.models.worktree import WorktreeSpec
from workmux.naming import derive_handle
from workmux.prompt import PromptDocument, load_prompt
from workmux.services.display_service import DisplayService
from workmux.services.git import GitOperations
from workmux.services.hook_service import HookPhase
from workmux.services.tmux_service import TmuxService
from workmux.templating import (
    create_template_env,
    generate_worktree_specs,
    parse_foreach_matrix,
    render_prompt_body,
    validate_expansion_request,
)
from workmux.workflow import (
    CreateOperation,
    MergeOperation,
    OpenOperation,
    RemoveOperation,
    RescueOperation,
    WorkflowContext,
    list_worktrees,
)
from workmux.workflow.remove import check_not_protected
from workmux.logging_config import get_logger

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)


def _setup_options(args) -> SetupOptions:
    return SetupOptions(
        run_hooks=not args.no_hooks,
        run_file_ops=not args.no_file_ops,
        run_pane_commands=not args.no_pane_cmds,
        focus_window=not args.background,
    )


def _git_for_cwd() -> GitOperations:
    cwd = os.getcwd()
    if not GitOperations.is_repo(cwd):
        raise NotARepositoryError(cwd)
    return GitOperations(cwd)


def detect_remote_branch(
    branch: str, base: Optional[str], git_ops: GitOperations
) -> Tuple[Optional[str], str]:
    """Split "<remote>/<branch>" when the prefix names a configured remote.

    Returns:
        (remote ref or None, local branch name)
    """
    if "/" not in branch:
        return None, branch
    remote, local = branch.split("/", 1)
    if not local or remote not in git_ops.list_remotes():
        return None, branch
    if base:
        raise WorkmuxError(f"--base cannot be used with remote branch '{branch}'")
    return branch, local


def _foreach_rows(args, doc: Optional[PromptDocument]):
    """Pick the row matrix from --foreach or the prompt front matter."""
    frontmatter_rows = doc.foreach_rows() if doc else None
    if frontmatter_rows is not None and args.agent:
        raise AmbiguousExpansionError(
            "Cannot use --agent when 'foreach' is defined in the prompt frontmatter. "
            "These multi-worktree generation methods are mutually exclusive."
        )
    if args.foreach is not None:
        if frontmatter_rows is not None:
            console.print("[yellow]Warning: --foreach overrides prompt frontmatter[/yellow]")
        return parse_foreach_matrix(args.foreach)
    return frontmatter_rows


class PlannedWorktree:
    """A generated spec resolved against its agent's config."""

    def __init__(self, spec: WorktreeSpec, config: Config, handle: str, prompt: Optional[str]):
        self.spec = spec
        self.config = config
        self.handle = handle
        self.prompt = prompt


def plan_worktrees(
    specs: List[WorktreeSpec],
    base_config: Config,
    explicit_name: Optional[str],
    doc: Optional[PromptDocument],
    env,
) -> List[PlannedWorktree]:
    """Derive handles and render prompts for every spec before creating any.

    Raises:
        AlreadyExistsError: If two specs would share a handle
    """
    planned = []
    seen = {}
    for spec in specs:
        config = base_config.with_agent(spec.agent)
        handle = derive_handle(spec.branch_name, explicit_name, config)
        if handle in seen:
            raise AlreadyExistsError(
                handle, f"branches '{seen[handle]}' and '{spec.branch_name}' map to the same handle"
            )
        seen[handle] = spec.branch_name
        prompt = render_prompt_body(doc.body, env, spec.template_context) if doc else None
        planned.append(PlannedWorktree(spec, config, handle, prompt))
    return planned


def _print_plan(planned: List[PlannedWorktree], context: WorkflowContext) -> None:
    table = Table(title="Worktrees to create (dry run)")
    table.add_column("Branch", no_wrap=True)
    table.add_column("Handle", no_wrap=True)
    table.add_column("Agent")
    table.add_column("Path", overflow="fold")
    for item in planned:
        table.add_row(
            item.spec.branch_name,
            item.handle,
            item.spec.agent or item.config.agent,
            str(context.worktree_path_for(item.handle)),
        )
    console.print(table)


def _run_rescue(args, options: SetupOptions) -> int:
    config = Config.load(agent=args.agent[0] if args.agent else None)
    context = WorkflowContext.new(config)
    handle = derive_handle(args.branch, args.name, config)

    if args.dry_run:
        console.print(
            f"Would move uncommitted changes from {context.repository_root} "
            f"to {context.worktree_path_for(handle)} (branch '{args.branch}')"
        )
        return 0

    context.hooks.announce(HookPhase.POST_CREATE, config, enabled=options.run_hooks)
    result = RescueOperation(
        branch_name=args.branch,
        handle=handle,
        include_untracked=args.include_untracked,
        patch=args.patch,
        options=options,
    ).run(context)

    if not result.moved:
        console.print("[yellow]No uncommitted changes to move; nothing was created[/yellow]")
        return 0

    console.print(f"[green]✓ Moved uncommitted changes to new worktree for branch '{result.branch_name}'[/green]")
    console.print(f"  Worktree: {result.worktree_path}")
    console.print("  Original worktree is now clean")
    return 0


def cmd_add(args) -> int:
    """Create one or more worktree/window pairs."""
    options = _setup_options(args)

    if (args.include_untracked or args.patch) and not args.with_changes:
        raise WorkmuxError("--include-untracked and --patch require --with-changes")
    if args.include_untracked and args.patch:
        # git stash refuses --patch with --include-untracked
        raise WorkmuxError("--patch cannot be combined with --include-untracked")

    validate_expansion_request(
        args.agent,
        args.count,
        args.foreach is not None,
        explicit_name=args.name,
        with_changes=args.with_changes,
    )

    if args.with_changes:
        return _run_rescue(args, options)

    doc = load_prompt(inline=args.prompt, prompt_file=args.prompt_file, use_editor=args.prompt_editor)
    rows = _foreach_rows(args, doc)
    if rows is not None:
        # Prompt front matter can supply a row matrix the flags didn't show
        validate_expansion_request(args.agent, args.count, True, explicit_name=args.name)

    base_config = Config.load()
    context = WorkflowContext.new(base_config)
    remote_branch, base_name = detect_remote_branch(args.branch, args.base, context.git)

    env = create_template_env()
    specs = generate_worktree_specs(
        base_name, args.agent, args.count, rows, env, branch_template=args.branch_template
    )
    planned = plan_worktrees(specs, base_config, args.name, doc, env)

    if args.dry_run:
        _print_plan(planned, context)
        return 0

    invocation_dir = Path.cwd()
    total = len(planned)
    if total > 1:
        console.print(f"Preparing to create {total} worktrees...")

    # Sequential and fail-fast; worktrees created before a failure are kept
    for i, item in enumerate(planned, start=1):
        if total > 1:
            console.print(f"\n--- [{i}/{total}] Creating worktree: {escape(item.spec.branch_name)} ---")

        spec_context = context.with_config(item.config)
        spec_context.hooks.announce(HookPhase.POST_CREATE, item.config, enabled=options.run_hooks)
        result = CreateOperation(
            branch_name=item.spec.branch_name,
            handle=item.handle,
            base_branch=args.base,
            remote_branch=remote_branch,
            prompt=item.prompt,
            options=options,
            invocation_dir=invocation_dir,
        ).run(spec_context)

        if result.post_create_hooks_run > 0:
            console.print("[green]✓ Setup complete[/green]")
        console.print(
            f"[green]✓ Successfully created worktree and tmux window for '{result.branch_name}'[/green]"
        )
        if result.base_branch:
            console.print(f"  Base: {result.base_branch}")
        console.print(f"  Worktree: {result.worktree_path}")

    return 0


def cmd_open(args) -> int:
    """Open a window for an existing worktree."""
    options = _setup_options(args)
    config = Config.load()
    context = WorkflowContext.new(config)
    context.hooks.announce(HookPhase.POST_CREATE, config, enabled=options.run_hooks)

    result = OpenOperation(args.name, options=options).run(context)
    console.print(f"[green]✓ Opened tmux window for '{result.branch_name}'[/green]")
    console.print(f"  Worktree: {result.worktree_path}")
    return 0


def find_unmerged_base(context: WorkflowContext, branch_name: str) -> Optional[str]:
    """Return the ref branch_name has unmerged commits against, or None.

    Compares against the base recorded at creation time, falling back to
    the main branch when that base can't be resolved.
    """
    git_ops = context.git
    base = git_ops.get_branch_base(branch_name) or context.main_branch
    try:
        base_ref = git_ops.merge_base(base)
    except ExternalCommandError:
        console.print(
            f"[yellow]Warning: Could not resolve base '{escape(base)}'; "
            f"falling back to '{escape(context.main_branch)}'[/yellow]"
        )
        base_ref = git_ops.merge_base(context.main_branch)

    if branch_name in git_ops.unmerged_branches(base_ref):
        return base_ref
    return None


def confirm_unmerged_removal(handle: str, branch_name: str, base_ref: str) -> bool:
    """Ask before deleting a branch with unmerged commits."""
    console.print(
        f"This will delete the worktree '{handle}', tmux window, and local branch '{branch_name}'."
    )
    console.print(
        f"[yellow]Warning: Branch '{branch_name}' has commits that are not merged into '{base_ref}'.[/yellow]"
    )
    console.print("This action cannot be undone.")
    try:
        answer = console.input(f"Are you sure you want to continue? {escape('[y/N]')} ")
    except EOFError:
        answer = ""
    return answer.strip().lower() == "y"


def _report_remote_delete(branch_name: str, error: Optional[str]) -> int:
    """Exit status for the optional remote delete, reporting a failure."""
    if error is None:
        return 0
    err_console.print(
        f"[red]Error: local teardown finished, but remote branch '{escape(branch_name)}' "
        f"was not deleted: {escape(error)}[/red]"
    )
    return 1


def cmd_remove(args) -> int:
    """Remove a worktree, its window and (usually) its branch."""
    config = Config.load()
    context = WorkflowContext.new(config)
    name = args.name or context.repository_root.name

    worktree = context.git.worktree_service.find_worktree(name)
    handle = worktree.handle
    branch_name = worktree.branch_name
    check_not_protected(context, branch_name, worktree)

    force = args.force
    if not force:
        # Dirty check first so the user isn't asked about commits only to be refused
        if worktree.path.exists() and context.git.has_uncommitted_changes(worktree.path):
            raise DirtyWorktreeError(branch_name, str(worktree.path), "--force")
        if not args.keep_branch:
            base_ref = find_unmerged_base(context, branch_name)
            if base_ref is not None:
                if not confirm_unmerged_removal(handle, branch_name, base_ref):
                    console.print("Aborted.")
                    return 0
                force = True

    context.hooks.announce(HookPhase.PRE_DELETE, config)
    result = RemoveOperation(
        handle,
        force=force,
        delete_remote=args.delete_remote,
        keep_branch=args.keep_branch,
    ).run(context)

    if result.branch_kept:
        console.print(
            f"[green]✓ Successfully removed worktree '{result.handle}' "
            f"(branch '{result.branch_removed}' was kept)[/green]"
        )
    else:
        console.print(
            f"[green]✓ Successfully removed worktree '{result.handle}' and branch '{result.branch_removed}'[/green]"
        )
    return _report_remote_delete(result.branch_removed, result.remote_delete_error)


def cmd_merge(args) -> int:
    """Merge a branch into the main branch and tear down its worktree."""
    config = Config.load()
    context = WorkflowContext.new(config)
    name = args.branch or context.git.current_branch(Path.cwd())
    if not name:
        raise WorkmuxError("HEAD is detached; name the branch to merge")

    context.hooks.announce(HookPhase.PRE_DELETE, config)
    result = MergeOperation(
        name,
        ignore_uncommitted=args.ignore_uncommitted,
        delete_remote=args.delete_remote,
        rebase=args.rebase,
        squash=args.squash,
        keep_branch=args.keep_branch,
    ).run(context)

    if result.had_staged_changes:
        console.print("[green]✓ Committed staged changes[/green]")
    console.print(f"[green]✓ Merged '{result.branch_merged}' into '{result.main_branch}'[/green]")
    if result.strategy == "squash":
        console.print(f"  Changes are staged in '{result.main_branch}'; review and commit them")
    console.print(f"[green]✓ Successfully merged and cleaned up '{result.branch_merged}'[/green]")
    return _report_remote_delete(result.branch_merged, result.remote_delete_error)


def cmd_list(args) -> int:
    """Show a table of worktrees."""
    git_ops = _git_for_cwd()
    config = Config.load()
    entries = list_worktrees(git_ops, TmuxService(), config.window_prefix, config.main_branch)
    DisplayService(verbose=args.verbose).display_worktree_table(entries)
    return 0


def cmd_path(args) -> int:
    """Print a worktree's path."""
    worktree = _git_for_cwd().worktree_service.find_worktree(args.name)
    # Plain stdout, for use in $(workmux path ...)
    print(worktree.path)
    return 0


def _read_hook_input() -> Optional[dict]:
    """Parse the JSON an agent hook may pipe in on stdin."""
    if sys.stdin is None or sys.stdin.isatty():
        return None
    try:
        data = json.loads(sys.stdin.read() or "null")
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def cmd_set_window_status(args) -> int:
    """Set or clear the status icon of the window running this pane.

    Silent no-op outside tmux. tmux failures are reported but never fail
    the command, since agents call this from their own hooks.
    """
    pane = os.environ.get("TMUX_PANE")
    if not pane:
        return 0

    hook_input = _read_hook_input()
    if args.status == "waiting" and hook_input and hook_input.get("notification_type") == "idle_prompt":
        logger.debug("Ignoring idle_prompt notification")
        return 0

    config = Config.load()
    tmux = TmuxService()
    if config.status_format and args.status != "clear":
        try:
            tmux.ensure_status_format(pane)
        except ExternalCommandError as e:
            logger.debug(f"Could not update window-status-format: {e}")

    try:
        if args.status == "clear":
            tmux.clear_window_status(pane)
            return 0
        icon = config.status_icons[args.status]
        tmux.set_window_status(pane, icon)
        if args.status in ("waiting", "done"):
            tmux.set_auto_clear_hook(pane, icon)
    except ExternalCommandError as e:
        logger.warning(f"Failed to set window status: {e}")
        err_console.print(f"workmux: failed to set window status: {escape(str(e))}")
    return 0


COMMANDS = {
    "add": cmd_add,
    "open": cmd_open,
    "remove": cmd_remove,
    "rm": cmd_remove,
    "merge": cmd_merge,
    "list": cmd_list,
    "ls": cmd_list,
    "path": cmd_path,
    "set-window-status": cmd_set_window_status,
}
