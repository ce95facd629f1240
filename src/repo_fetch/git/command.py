"""Thin wrapper around the git executable."""
import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


class GitCommandError(Exception):
    """A git invocation exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str):
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(
            f"'{' '.join(self.command)}' exited with status {returncode}: {self.stderr}"
        )


def run_git(
    args: List[str],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = None,
    git_executable: str = "git",
) -> str:
    """Run a git command and return its stdout.

    Interactive credential prompts are disabled, so a private repository
    without configured credentials fails instead of blocking.

    Raises:
        GitCommandError: If git exits non-zero
        subprocess.TimeoutExpired: If the command outlives ``timeout``
        OSError: If the git executable cannot be started
    """
    cmd = [git_executable, *args]
    env = dict(os.environ, GIT_TERMINAL_PROMPT="0")
    logger.debug(f"Running {' '.join(cmd)}")
    result = subprocess.run(
        cmd,
        cwd=str(cwd) if cwd is not None else None,
        env=env,
        capture_output=True,
        text=True,
        timeout=timeout,
    )

    if result.returncode != 0:
        raise GitCommandError(cmd, result.returncode, result.stderr)

    return result.stdout
