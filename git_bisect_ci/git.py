"""Git command wrapper with logging."""

import logging
import subprocess
from typing import List, Optional

from .errors import BisectCIError
from .oid import Oid, OidParseError


class GitError(BisectCIError):
    """Exception for git command failures."""
    pass


class Git:
    """Git command wrapper with logging.

    Each query runs one git process to completion and checks how it exited
    before returning.
    """

    def __init__(self, repo_path: str, logger: Optional[logging.Logger] = None):
        """Initialize Git wrapper.

        Args:
            repo_path: Path to the git repository.
            logger: Optional logger instance. If not provided, uses module logger.
        """
        self.repo_path = repo_path
        self.logger = logger or logging.getLogger("git-bisect-ci")

    def run(
        self,
        *args,
        check: bool = True,
        cwd: Optional[str] = None
    ) -> subprocess.CompletedProcess:
        """Run a git command and capture its output.

        Args:
            *args: Git command arguments.
            check: Whether to raise on a non-zero exit status.
            cwd: Working directory (defaults to repo_path).

        Returns:
            CompletedProcess instance with command results.

        Raises:
            GitError: If git cannot be started, is killed by a signal, or
                exits non-zero and check=True.
        """
        cmd = ["git", "-C", cwd or self.repo_path] + list(args)
        name = f"git {args[0]}" if args else "git"
        self.logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise GitError(f"failed to spawn {name}: {e}") from e

        if result.returncode < 0:
            raise GitError(f"{name} killed by signal {-result.returncode}")
        if check and result.returncode != 0:
            raise self._exit_error(name, result)
        return result

    def _exit_error(self, name: str, result: subprocess.CompletedProcess) -> GitError:
        stderr = (result.stderr or "").strip()
        if stderr:
            self.logger.debug(f"stderr: {stderr}")
            return GitError(f"{name} exited {result.returncode}: {stderr}")
        return GitError(f"{name} exited {result.returncode}")

    def _run_bool(self, *args) -> bool:
        """Run a git command whose exit status 1 means "no"."""
        result = self.run(*args, check=False)
        if result.returncode == 1:
            return False
        if result.returncode != 0:
            raise self._exit_error(f"git {args[0]}", result)
        return True

    def rev_parse(self, ref: str) -> Oid:
        """Resolve a ref to its full object id."""
        result = self.run("rev-parse", ref)
        try:
            return Oid.parse(result.stdout.strip())
        except OidParseError as e:
            raise GitError(f"parsing git rev-parse output: {e}") from e

    def bisect_log_lines(self) -> List[str]:
        """List the commits of the current bisection range with their parents.

        Each line is ``"<oid> <parent>..."``; the first one is the bad tip.
        """
        result = self.run("log", "--format=%H %P", "--bisect")
        return result.stdout.splitlines()

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Check if one commit is an ancestor of (or equal to) another."""
        return self._run_bool("merge-base", "--is-ancestor", ancestor, descendant)

    def is_skipped(self, oid: Oid) -> bool:
        """Check whether ``git bisect skip`` was used on a commit."""
        return self._run_bool(
            "rev-parse", "--verify", "-q", f"refs/bisect/skip-{oid}"
        )
