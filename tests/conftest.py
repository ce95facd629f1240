"""Pytest fixtures for repo-fetch tests."""
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from repo_fetch.core.errors import ResolutionError
from repo_fetch.git.command import GitCommandError


def _git(repo_path: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=repo_path,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def _commit_file(repo_path: Path, name: str, content: str, message: str) -> str:
    (repo_path / name).write_text(content)
    _git(repo_path, "add", name)
    _git(repo_path, "commit", "-m", message)
    return _git(repo_path, "rev-parse", "HEAD")


@pytest.fixture
def git_repo_fixture(tmp_path: Path) -> Dict[str, any]:
    """Create a git repository with tags, a branch and pull request refs.

    History:
        first   A.h v1          <- tag v0.1 (lightweight)
        middle  A.h v1 + note   <- no ref points here
        second  A.h v2          <- main, tag v0.2 (annotated)
        dev     + B.h           <- dev, refs/pull/7/head
        orphan  + C.h           <- refs/pull/8/head only, no branch reaches it

    Returns dict with:
        - path: Path to repo (HEAD on main)
        - first_sha, middle_sha, main_sha, dev_sha, pr8_sha: commit SHAs
    """
    repo_path = tmp_path / "test_repo"
    repo_path.mkdir()

    _git(repo_path, "init")
    _git(repo_path, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(repo_path, "config", "user.email", "test@example.com")
    _git(repo_path, "config", "user.name", "Test User")
    # Lets clones fetch the orphan PR commit by hash
    _git(repo_path, "config", "uploadpack.allowAnySHA1InWant", "true")

    first_sha = _commit_file(repo_path, "A.h", "#define VERSION 1\n", "Initial commit")
    _git(repo_path, "tag", "v0.1")
    middle_sha = _commit_file(
        repo_path, "A.h", "#define VERSION 1\n// next: bump\n", "Note upcoming bump"
    )

    main_sha = _commit_file(repo_path, "A.h", "#define VERSION 2\n", "Bump version")
    _git(repo_path, "tag", "-a", "v0.2", "-m", "Release 0.2")

    _git(repo_path, "checkout", "-q", "-b", "dev")
    dev_sha = _commit_file(repo_path, "B.h", "#include <vector>\n", "Add B.h on dev")
    _git(repo_path, "update-ref", "refs/pull/7/head", dev_sha)

    _git(repo_path, "checkout", "-q", "-b", "pr-8", "main")
    pr8_sha = _commit_file(repo_path, "C.h", "#include <map>\n", "Add C.h in PR 8")
    _git(repo_path, "update-ref", "refs/pull/8/head", pr8_sha)

    _git(repo_path, "checkout", "-q", "main")
    _git(repo_path, "branch", "-D", "pr-8")

    return {
        "path": repo_path,
        "first_sha": first_sha,
        "middle_sha": middle_sha,
        "main_sha": main_sha,
        "dev_sha": dev_sha,
        "pr8_sha": pr8_sha,
    }


def read_tree(root: Path) -> Dict[str, bytes]:
    """Map repo-relative POSIX paths to file contents, ignoring .git."""
    root = Path(root)
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file() and ".git" not in path.relative_to(root).parts
    }


class FakeResolver:
    """Resolver returning canned answers and recording calls."""

    def __init__(self, answers: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        self.answers = answers or {"": ""}
        self.error = error
        self.calls: List[tuple] = []

    def resolve(self, url: str, specifier: str, timeout: Optional[float] = None) -> str:
        self.calls.append((url, specifier, timeout))
        if self.error is not None:
            raise self.error
        if specifier not in self.answers:
            raise ResolutionError(f"Reference '{specifier}' not found in {url}", url=url)
        return self.answers[specifier]


class FakeRepository:
    """Repository whose commits are dicts of file name -> content."""

    def __init__(self, path: Path, commits: Dict[str, Dict[str, str]], head: Optional[str]):
        self.path = Path(path)
        self.commits = commits
        self.current = head
        self.checkouts: List[str] = []
        if head is not None:
            self._write_tree(head)

    def checkout(self, commit: str, remaining=None) -> None:
        self.checkouts.append(commit)
        if commit not in self.commits:
            raise GitCommandError(["git", "checkout", commit], 128, f"reference is not a tree: {commit}")
        self._write_tree(commit)
        self.current = commit

    def head(self, timeout: Optional[float] = None) -> str:
        return self.current

    def _write_tree(self, commit: str) -> None:
        for child in self.path.iterdir():
            if child.name != ".git":
                child.unlink()
        for name, content in self.commits[commit].items():
            (self.path / name).write_text(content)


class FakeCloner:
    """In-memory cloner; fails the first ``failures`` clones."""

    def __init__(self, commits: Dict[str, Dict[str, str]], default_head: str, failures: int = 0):
        self.commits = commits
        self.default_head = default_head
        self.failures = failures
        self.calls: List[tuple] = []
        self.repos: List[FakeRepository] = []

    def clone(self, url: str, dst_path: Path, auto_checkout: bool, timeout: Optional[float] = None) -> FakeRepository:
        self.calls.append((url, Path(dst_path), auto_checkout, timeout))
        dst_path = Path(dst_path)
        (dst_path / ".git").mkdir(parents=True)
        if self.failures > 0:
            self.failures -= 1
            raise GitCommandError(["git", "clone", url], 128, "Could not resolve host")
        repo = FakeRepository(dst_path, self.commits, self.default_head if auto_checkout else None)
        if not auto_checkout:
            # HEAD still names the default branch, just nothing materialized
            repo.current = self.default_head
        self.repos.append(repo)
        return repo


TIP = "a" * 40
OLD = "b" * 40


@pytest.fixture
def fake_commits() -> Dict[str, Dict[str, str]]:
    return {
        TIP: {"README.md": "tip\n", "main.go": "package main\n"},
        OLD: {"README.md": "old\n"},
    }


@pytest.fixture
def fake_cloner(fake_commits) -> FakeCloner:
    return FakeCloner(fake_commits, default_head=TIP)


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver({"": "", "main": TIP, "1.4.1": OLD, "PR-9486": "c" * 40})
