"""Worktree operations service for workmux."""

import os
from pathlib import Path
from typing import Optional, Dict, Any, List

import git

from workmux.exceptions import ExternalCommandError, WorktreeNotFoundError
from workmux.models.worktree import WorktreeInfo
from workmux.logging_config import get_logger

logger = get_logger(__name__)

DETACHED = "(detached)"


def parse_worktree_list_porcelain(output: str) -> List[WorktreeInfo]:
    """Parse `git worktree list --porcelain` output.

    Format, one block per worktree separated by blank lines:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name   (or "detached" / "bare")

    The first block is always the main worktree. Bare entries are skipped.
    """
    worktrees: List[WorktreeInfo] = []
    is_first = True

    for block in output.strip().split("\n\n"):
        entry: Dict[str, Any] = {}
        for line in block.splitlines():
            line = line.strip()
            if line.startswith("worktree "):
                entry["path"] = line.split(" ", 1)[1]
            elif line.startswith("HEAD "):
                entry["HEAD"] = line.split(" ", 1)[1]
            elif line.startswith("branch "):
                branch_ref = line.split(" ", 1)[1]
                if branch_ref.startswith("refs/heads/"):
                    entry["branch"] = branch_ref[len("refs/heads/"):]
                else:
                    entry["branch"] = branch_ref
            elif line == "detached":
                entry["branch"] = DETACHED
            elif line == "bare":
                entry["bare"] = True

        if "path" not in entry:
            continue

        is_main = is_first
        is_first = False
        if entry.get("bare"):
            continue

        path = entry["path"]
        worktrees.append(
            WorktreeInfo(
                path=Path(path),
                branch_name=entry.get("branch", DETACHED),
                commit_sha=entry.get("HEAD", ""),
                is_main=is_main,
                is_orphaned=not os.path.exists(path),
            )
        )

    return worktrees


class WorktreeService:
    """Service for managing git worktrees."""

    def __init__(self, repo_path: str):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the git repository; commands that need no
                particular worktree run here
        """
        self.repo_path = str(repo_path)

    def _git(self, cwd: Optional[Path] = None) -> git.Git:
        """Get a git command runner bound to an explicit working directory."""
        return git.Git(str(cwd) if cwd else self.repo_path)

    def list_worktrees(self) -> List[WorktreeInfo]:
        """Get information about all worktrees, main worktree first."""
        try:
            output = self._git().worktree("list", "--porcelain")
        except git.exc.GitCommandError as e:
            raise ExternalCommandError.from_command_error("git worktree list", None, e)

        worktrees = parse_worktree_list_porcelain(output)
        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def main_worktree_root(self) -> Path:
        """Get the main (non-linked) worktree root."""
        worktrees = self.list_worktrees()
        main = next((wt for wt in worktrees if wt.is_main), None)
        if main is None:
            raise WorktreeNotFoundError("main worktree")
        return main.path

    def get_worktree_for_branch(self, branch_name: str) -> WorktreeInfo:
        """Find the worktree that has a branch checked out."""
        for wt in self.list_worktrees():
            if wt.branch_name == branch_name:
                return wt
        raise WorktreeNotFoundError(branch_name)

    def worktree_exists(self, branch_name: str) -> bool:
        """Check if a worktree already exists for a branch."""
        try:
            self.get_worktree_for_branch(branch_name)
            return True
        except WorktreeNotFoundError:
            return False

    def find_worktree(self, name: str) -> WorktreeInfo:
        """Resolve a user-supplied name: handle (directory name) first, then branch."""
        worktrees = self.list_worktrees()
        for wt in worktrees:
            if wt.path.name == name:
                return wt
        for wt in worktrees:
            if wt.branch_name == name:
                return wt
        raise WorktreeNotFoundError(name)

    def create_worktree(
        self,
        path: Path,
        branch_name: str,
        create_branch: bool,
        base: Optional[str] = None,
        track_upstream: bool = False,
    ) -> None:
        """Create a new worktree at path.

        Args:
            path: Directory for the new worktree
            branch_name: Branch to check out (or create)
            create_branch: Create branch_name (from base) instead of checking it out
            base: Start point for a new branch
            track_upstream: Keep upstream tracking when base is a remote ref
        """
        args = ["add"]
        if create_branch:
            args += ["-b", branch_name, str(path)]
            if base:
                args.append(base)
        else:
            args += [str(path), branch_name]

        try:
            self._git().worktree(*args)
        except git.exc.GitCommandError as e:
            raise ExternalCommandError.from_command_error("git worktree add", branch_name, e)
        logger.info(f"Created worktree for {branch_name} at {path}")

        # Branching from a remote ref sets up tracking automatically
        if create_branch and not track_upstream:
            self.unset_branch_upstream(branch_name)

    def unset_branch_upstream(self, branch_name: str) -> None:
        """Remove upstream tracking from a branch if it has any."""
        try:
            self._git().rev_parse("--abbrev-ref", "--symbolic-full-name", f"{branch_name}@{{upstream}}")
        except git.exc.GitCommandError:
            return

        try:
            self._git().branch("--unset-upstream", branch_name)
        except git.exc.GitCommandError as e:
            raise ExternalCommandError.from_command_error("git branch --unset-upstream", branch_name, e)

    def remove_worktree(self, path: Path, force: bool = False, cwd: Optional[Path] = None) -> None:
        """Remove a worktree at the specified path.

        Args:
            path: Path to the worktree directory
            force: Force removal even if working tree is dirty or locked
            cwd: Directory to run git from; must not be inside `path`
        """
        args = ["remove", str(path)]
        if force:
            args.append("--force")

        try:
            self._git(cwd).worktree(*args)
        except git.exc.GitCommandError as e:
            error = ExternalCommandError.from_command_error("git worktree remove", str(path), e)
            logger.error(f"Failed to remove worktree at {path}: {error}")
            raise error
        logger.info(f"Removed worktree at {path}")

    def prune_worktrees(self, cwd: Optional[Path] = None) -> None:
        """Prune orphaned worktree metadata."""
        try:
            self._git(cwd).worktree("prune")
        except git.exc.GitCommandError as e:
            raise ExternalCommandError.from_command_error("git worktree prune", None, e)
        logger.info("Pruned orphaned worktree metadata")
