"""Git operations service"""

import subprocess
from pathlib import Path
from typing import List, Optional, Set

import git

from workmux.constants import BRANCH_BASE_CONFIG_KEY
from workmux.exceptions import ConfigurationRequiredError, ExternalCommandError, NotARepositoryError
from workmux.services.git.worktrees import WorktreeService
from workmux.logging_config import get_logger

logger = get_logger(__name__)


class GitOperations:
    """Service for Git operations.

    Every method that acts on a particular worktree takes its path
    explicitly; nothing depends on the process working directory.
    """

    def __init__(self, repo_path: str, remote_name: str = "origin"):
        """Initialize the service.

        Args:
            repo_path: Path to the git repository (string path, not repo object)
            remote_name: Remote used for default-branch detection and remote deletes
        """
        self.repo_path = str(repo_path)
        self.remote_name = remote_name
        self.worktree_service = WorktreeService(self.repo_path)
        logger.debug(f"Git operations initialized for {self.repo_path}")

    def _git(self, cwd: Optional[Path] = None) -> git.Git:
        """Get a git command runner bound to an explicit working directory."""
        return git.Git(str(cwd) if cwd else self.repo_path)

    def _run(self, operation: str, target: Optional[str], *args, cwd: Optional[Path] = None) -> str:
        """Run a git command, translating failures into ExternalCommandError."""
        try:
            return self._git(cwd).execute(["git", *args])
        except git.exc.GitCommandError as e:
            raise ExternalCommandError.from_command_error(operation, target, e)

    def _check(self, *args, cwd: Optional[Path] = None) -> bool:
        """Run a git command for its exit status only."""
        try:
            self._git(cwd).execute(["git", *args])
            return True
        except git.exc.GitCommandError:
            return False

    @staticmethod
    def is_repo(path: str) -> bool:
        """Check if path is inside a git work tree."""
        try:
            git.Repo(path, search_parent_directories=True).close()
            return True
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            return False

    def repo_root(self, cwd: Optional[Path] = None) -> Path:
        """Get the root of the worktree containing cwd."""
        try:
            repo = git.Repo(str(cwd) if cwd else self.repo_path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            raise NotARepositoryError(str(cwd or self.repo_path))
        try:
            if repo.working_tree_dir is None:
                raise NotARepositoryError(str(cwd or self.repo_path))
            return Path(repo.working_tree_dir)
        finally:
            repo.close()

    def main_worktree_root(self) -> Path:
        """Get the main worktree root directory (not a linked worktree)."""
        return self.worktree_service.main_worktree_root()

    def branch_exists(self, branch_name: str) -> bool:
        """Check if a branch (local or remote-tracking) or ref exists."""
        return self._check("rev-parse", "--verify", "--quiet", branch_name)

    def local_branch_exists(self, branch_name: str) -> bool:
        """Check if a local branch exists."""
        return self._check("rev-parse", "--verify", "--quiet", f"refs/heads/{branch_name}")

    def default_branch(self) -> str:
        """Get the default branch (from origin/HEAD, else main or master)."""
        try:
            ref_name = self._git().symbolic_ref(f"refs/remotes/{self.remote_name}/HEAD")
            prefix = f"refs/remotes/{self.remote_name}/"
            if ref_name.startswith(prefix):
                return ref_name[len(prefix):]
        except git.exc.GitCommandError:
            logger.debug(f"No {self.remote_name}/HEAD; checking for main/master")

        for candidate in ("main", "master"):
            if self.local_branch_exists(candidate):
                return candidate

        raise ConfigurationRequiredError(
            "main_branch",
            "Could not determine the default branch (e.g., 'main' or 'master').",
        )

    def current_branch(self, cwd: Path) -> str:
        """Get the branch checked out in a worktree ('' when detached)."""
        return self._run("git branch --show-current", None, "branch", "--show-current", cwd=cwd).strip()

    def list_remotes(self) -> List[str]:
        """Return the configured remotes."""
        output = self._run("git remote", None, "remote")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def get_branch_base(self, branch_name: str) -> Optional[str]:
        """Get the ref a branch was created from, if recorded."""
        try:
            value = self._git().config("--local", f"branch.{branch_name}.{BRANCH_BASE_CONFIG_KEY}")
        except git.exc.GitCommandError:
            return None
        return value.strip() or None

    def set_branch_base(self, branch_name: str, base: str) -> None:
        """Record which ref a branch was created from."""
        self._run(
            "git config", branch_name,
            "config", "--local", f"branch.{branch_name}.{BRANCH_BASE_CONFIG_KEY}", base,
        )

    def merge_base(self, main_branch: str) -> str:
        """Get the ref to compare against, preferring the remote tracking branch."""
        try:
            upstream = self._git().rev_parse("--abbrev-ref", f"{main_branch}@{{upstream}}").strip()
            if upstream:
                return upstream
        except git.exc.GitCommandError:
            pass

        remote_main = f"{self.remote_name}/{main_branch}"
        if self.branch_exists(remote_main):
            return remote_main
        if self.branch_exists(main_branch):
            return main_branch
        raise ExternalCommandError("git rev-parse", main_branch, "base ref does not exist")

    def unmerged_branches(self, base: str) -> Set[str]:
        """Get the set of local branches with commits not in base."""
        try:
            output = self._git().for_each_ref("--format=%(refname:short)", f"--no-merged={base}", "refs/heads/")
        except git.exc.GitCommandError as e:
            stderr = str(e.stderr or "")
            # A missing base ref is not fatal; nothing can be compared
            if "malformed object name" in stderr or "unknown commit" in stderr:
                logger.debug(f"Base {base} not found; treating all branches as merged")
                return set()
            raise ExternalCommandError.from_command_error("git for-each-ref", base, e)
        return {line.strip() for line in output.splitlines() if line.strip()}

    def has_uncommitted_changes(self, path: Path) -> bool:
        """Check if a worktree has staged, unstaged or untracked changes."""
        output = self._run("git status", str(path), "status", "--porcelain", cwd=path)
        return bool(output.strip())

    def has_tracked_changes(self, path: Path) -> bool:
        """Check if a worktree has staged or unstaged changes to tracked files."""
        output = self._run(
            "git status", str(path), "status", "--porcelain", "--untracked-files=no", cwd=path
        )
        return bool(output.strip())

    def has_untracked_files(self, path: Path) -> bool:
        """Check if a worktree has untracked (non-ignored) files."""
        output = self._run(
            "git ls-files", str(path), "ls-files", "--others", "--exclude-standard", cwd=path
        )
        return bool(output.strip())

    def has_staged_changes(self, path: Path) -> bool:
        """Check if a worktree has staged changes."""
        return not self._check("diff", "--cached", "--quiet", cwd=path)

    def has_unstaged_changes(self, path: Path) -> bool:
        """Check if a worktree has unstaged changes to tracked files."""
        return not self._check("diff", "--quiet", cwd=path)

    def commit_with_editor(self, path: Path) -> None:
        """Commit staged changes in a worktree using the user's editor."""
        # Interactive: the editor needs the terminal, so output is not captured
        result = subprocess.run(["git", "commit"], cwd=str(path))
        if result.returncode != 0:
            raise ExternalCommandError("git commit", str(path), "Commit was aborted or failed", status=result.returncode)

    def merge_into(self, path: Path, branch_name: str) -> None:
        """Merge a branch into whatever is checked out at path."""
        self._run("git merge", branch_name, "merge", "--no-edit", branch_name, cwd=path)

    def rebase_onto(self, path: Path, base: str) -> None:
        """Rebase the branch checked out at path onto base."""
        try:
            self._run("git rebase", base, "rebase", base, cwd=path)
        except ExternalCommandError as e:
            raise ExternalCommandError(
                e.operation, e.target,
                message=f"Resolve the conflicts in {path} or run 'git rebase --abort'",
                stderr=e.stderr, status=e.status,
            ) from e

    def squash_merge(self, path: Path, branch_name: str) -> None:
        """Squash-merge a branch at path, leaving the result staged but uncommitted."""
        self._run("git merge --squash", branch_name, "merge", "--squash", branch_name, cwd=path)

    def delete_branch(self, branch_name: str, force: bool = False, cwd: Optional[Path] = None) -> None:
        """Delete a local branch.

        Args:
            branch_name: Branch to delete
            force: Use -D (delete even if unmerged) instead of -d
            cwd: Run from here; should be the main worktree root
        """
        flag = "-D" if force else "-d"
        self._run("git branch " + flag, branch_name, "branch", flag, branch_name, cwd=cwd)
        logger.info(f"Deleted local branch {branch_name}")

    def delete_remote_branch(self, branch_name: str, cwd: Optional[Path] = None) -> None:
        """Delete a branch on the remote.

        Args:
            branch_name: Branch to delete on the remote
            cwd: Run from here; should be the main worktree root
        """
        self._run(
            "git push --delete", branch_name, "push", self.remote_name, "--delete", branch_name, cwd=cwd
        )
        logger.info(f"Deleted remote branch {self.remote_name}/{branch_name}")

    def _stash_ref(self, cwd: Path) -> Optional[str]:
        try:
            return self._git(cwd).rev_parse("-q", "--verify", "refs/stash").strip() or None
        except git.exc.GitCommandError:
            return None

    def stash_push(self, path: Path, message: str, include_untracked: bool = False, patch: bool = False) -> bool:
        """Stash changes in a worktree.

        Args:
            path: Worktree to stash from
            message: Stash message
            include_untracked: Also stash untracked files
            patch: Interactively choose hunks

        Returns:
            bool: True if a stash entry was created, False if nothing was stashed
        """
        before = self._stash_ref(path)
        args = ["stash", "push", "-m", message]
        if include_untracked:
            args.append("--include-untracked")

        if patch:
            args.append("--patch")
            result = subprocess.run(["git", *args], cwd=str(path))
            if result.returncode != 0:
                raise ExternalCommandError("git stash push --patch", str(path), status=result.returncode)
        else:
            self._run("git stash push", str(path), *args, cwd=path)

        created = self._stash_ref(path) != before
        logger.debug(f"Stash in {path}: {'created' if created else 'nothing to stash'}")
        return created

    def stash_pop(self, path: Path) -> None:
        """Apply and drop the latest stash entry in a worktree."""
        try:
            self._run("git stash pop", str(path), "stash", "pop", cwd=path)
        except ExternalCommandError as e:
            raise ExternalCommandError(
                e.operation, e.target,
                message="Your changes are still in the stash. Run 'git stash pop' manually.",
                stderr=e.stderr, status=e.status,
            ) from e

    def head_commit(self, path: Path) -> str:
        """Get the commit checked out in a worktree."""
        return self._run("git rev-parse HEAD", str(path), "rev-parse", "HEAD", cwd=path).strip()
