"""Clone transport: the three git primitives an install needs."""
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

from repo_fetch.git.command import GitCommandError, run_git

logger = logging.getLogger(__name__)

# Zero-argument callable returning the seconds left, or None without a deadline
Budget = Callable[[], Optional[float]]


def _unbounded() -> Optional[float]:
    return None


class Repository(Protocol):
    """Handle on a cloned repository."""

    path: Path

    def checkout(self, commit: str, remaining: Optional[Budget] = None) -> None:
        ...

    def head(self, timeout: Optional[float] = None) -> str:
        ...


class RepoCloner(Protocol):
    """Clone a remote, with or without materializing the default branch."""

    def clone(
        self,
        url: str,
        dst_path: Path,
        auto_checkout: bool,
        timeout: Optional[float] = None,
    ) -> Repository:
        ...


class GitRepository:
    """A repository on disk driven through the git CLI."""

    def __init__(self, path: Path, git_executable: str = "git"):
        self.path = Path(path)
        self.git_executable = git_executable

    def checkout(self, commit: str, remaining: Optional[Budget] = None) -> None:
        """Force the working tree and index to exactly match commit.

        HEAD is detached; nothing in the working tree is preserved. A full
        hash missing from the clone (e.g. a pull request head no branch
        reaches) is fetched from origin first. remaining is asked for the
        time left before every git command.
        """
        remaining = remaining or _unbounded
        if len(commit) == 40 and not self.has_commit(commit, timeout=remaining()):
            logger.info(f"Commit {commit[:12]} not in clone, fetching it from origin")
            run_git(
                ["fetch", "--quiet", "origin", commit],
                cwd=self.path,
                timeout=remaining(),
                git_executable=self.git_executable,
            )

        run_git(
            ["-c", "advice.detachedHead=false", "checkout", "--quiet", "--force", "--detach", commit],
            cwd=self.path,
            timeout=remaining(),
            git_executable=self.git_executable,
        )

    def has_commit(self, commit: str, timeout: Optional[float] = None) -> bool:
        try:
            run_git(
                ["cat-file", "-e", f"{commit}^{{commit}}"],
                cwd=self.path,
                timeout=timeout,
                git_executable=self.git_executable,
            )
        except GitCommandError:
            return False
        return True

    def head(self, timeout: Optional[float] = None) -> str:
        """Return the full sha of the checked-out commit."""
        return run_git(
            ["rev-parse", "HEAD"],
            cwd=self.path,
            timeout=timeout,
            git_executable=self.git_executable,
        ).strip()


class GitCliCloner:
    """Full-history clones through the git executable.

    No shallow fetch: a resolved commit may sit anywhere in history, and a
    truncated clone is not guaranteed to contain it.
    """

    def __init__(self, git_executable: str = "git"):
        self.git_executable = git_executable

    def clone(
        self,
        url: str,
        dst_path: Path,
        auto_checkout: bool,
        timeout: Optional[float] = None,
    ) -> GitRepository:
        dst_path = Path(dst_path)
        dst_path.parent.mkdir(parents=True, exist_ok=True)

        args = ["clone", "--quiet"]
        if not auto_checkout:
            args.append("--no-checkout")
        args += ["--", url, str(dst_path)]

        run_git(args, timeout=timeout, git_executable=self.git_executable)
        return GitRepository(dst_path, git_executable=self.git_executable)
