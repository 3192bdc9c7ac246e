"""Command-line argument parsing for workmux."""

import argparse

from workmux.__version__ import __version__


def _add_setup_flags(parser):
    parser.add_argument("--no-hooks", action="store_true", help="Skip post-create hooks")
    parser.add_argument("--no-file-ops", action="store_true", help="Skip copying/symlinking configured files")
    parser.add_argument("--no-pane-cmds", action="store_true", help="Create panes without running their commands")
    parser.add_argument(
        "-b", "--background", action="store_true", help="Create the window without switching to it"
    )


def _add_add_parser(subparsers):
    add = subparsers.add_parser(
        "add",
        help="Create a worktree, branch and tmux window",
        description="Create one or more worktrees with tmux windows. "
        "Use --agent, --count or --foreach to create several at once.",
    )
    add.add_argument("branch", help="Branch name, or <remote>/<branch> to track a remote branch")
    add.add_argument("--base", "--from", dest="base", help="Ref to branch from (default: current branch)")
    add.add_argument("--name", help="Explicit handle for the worktree directory and window")

    prompt = add.add_mutually_exclusive_group()
    prompt.add_argument("-p", "--prompt", help="Inline prompt for the agent")
    prompt.add_argument("-P", "--prompt-file", help="Read the prompt from a file (may have YAML front matter)")
    prompt.add_argument("-e", "--prompt-editor", action="store_true", help="Write the prompt in $EDITOR")

    _add_setup_flags(add)

    multi = add.add_argument_group("multiple worktrees")
    multi.add_argument(
        "-a", "--agent", action="append", default=[], help="Agent to run (repeat for one worktree per agent)"
    )
    multi.add_argument("-n", "--count", type=int, help="Number of worktrees to create")
    multi.add_argument("--foreach", help='Variable matrix, e.g. "platform:ios,android;lang:swift,kotlin"')
    multi.add_argument("--branch-template", help="Jinja template for generated branch names")

    rescue = add.add_argument_group("moving uncommitted changes")
    rescue.add_argument(
        "-w", "--with-changes", action="store_true", help="Move uncommitted changes into the new worktree"
    )
    rescue.add_argument(
        "-u", "--include-untracked", action="store_true", help="Also move untracked files (with --with-changes)"
    )
    rescue.add_argument("--patch", action="store_true", help="Pick hunks to move interactively (with --with-changes)")

    add.add_argument(
        "--dry-run", action="store_true", help="Show the worktrees that would be created and exit"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the workmux argument parser."""
    parser = argparse.ArgumentParser(
        prog="workmux",
        description="Git worktrees and tmux windows, one pair per task",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--debug", action="store_true", help="Show debug information for troubleshooting")
    parser.add_argument("--version", action="version", version=f"workmux {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    _add_add_parser(subparsers)

    open_parser = subparsers.add_parser("open", help="Open a tmux window for an existing worktree")
    open_parser.add_argument("name", help="Handle or branch name of the worktree")
    _add_setup_flags(open_parser)

    remove = subparsers.add_parser("remove", aliases=["rm"], help="Remove a worktree, its window and branch")
    remove.add_argument("name", nargs="?", help="Handle or branch name (default: current worktree)")
    remove.add_argument(
        "-f", "--force", action="store_true", help="Remove even with uncommitted changes or unmerged commits"
    )
    remove.add_argument("-k", "--keep-branch", action="store_true", help="Keep the local branch")
    remove.add_argument("-r", "--delete-remote", action="store_true", help="Also delete the remote branch")

    merge = subparsers.add_parser("merge", help="Merge a branch into the main branch and clean up")
    merge.add_argument("branch", nargs="?", help="Handle or branch name (default: current branch)")
    merge.add_argument(
        "--ignore-uncommitted", action="store_true", help="Merge even if the worktree has uncommitted changes"
    )
    merge.add_argument("-r", "--delete-remote", action="store_true", help="Also delete the remote branch")
    strategy = merge.add_mutually_exclusive_group()
    strategy.add_argument("--rebase", action="store_true", help="Rebase onto the main branch before merging")
    strategy.add_argument("--squash", action="store_true", help="Squash into staged changes on the main branch")
    merge.add_argument("--keep-branch", action="store_true", help="Keep the local branch after merging")

    subparsers.add_parser("list", aliases=["ls"], help="List worktrees and their status")

    path = subparsers.add_parser("path", help="Print the path of a worktree")
    path.add_argument("name", help="Handle or branch name")

    status = subparsers.add_parser("set-window-status", help="Set the agent status icon for this tmux window")
    status.add_argument("status", choices=["working", "waiting", "done", "clear"])

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
