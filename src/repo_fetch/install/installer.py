"""Fetch-and-checkout orchestration: resolve, clone, then check out."""
import logging
import shutil
import subprocess
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Type

from repo_fetch import __version__
from repo_fetch.config import FetchSettings
from repo_fetch.core.errors import CheckoutError, CloneError, RepoFetchError, ResolutionError
from repo_fetch.git.cloner import GitCliCloner, RepoCloner, Repository
from repo_fetch.git.command import GitCommandError
from repo_fetch.git.resolver import GitRevisionResolver, RevisionResolver, is_commit_hash
from repo_fetch.install.manifest import STRATEGY_CLONE, STRATEGY_NO_CHECKOUT, InstallManifest

logger = logging.getLogger(__name__)

# Failures a transport may raise; anything else is a bug and propagates as-is
TRANSPORT_ERRORS = (GitCommandError, subprocess.TimeoutExpired, OSError)


def get_repo_slug(repo_url: str) -> str:
    """Extract the repository name from a URL, scp-style address or path.

    Examples:
        https://github.com/kyma-project/kyma.git -> kyma
        git@github.com:kyma-project/kyma.git -> kyma
        /local/path/to/repo -> repo
    """
    clean_url = repo_url.rstrip("/")
    if clean_url.endswith(".git"):
        clean_url = clean_url[:-4]
    return clean_url.replace(":", "/").rsplit("/", 1)[-1]


class Deadline:
    """Remaining-time budget shared by every phase of one install."""

    def __init__(self, timeout: Optional[float]):
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    def remaining(
        self,
        error_cls: Type[RepoFetchError],
        url: str,
        cause: Optional[BaseException] = None,
    ) -> Optional[float]:
        """Seconds left, or None without a deadline.

        Raises error_cls once the budget is spent, so the phase about to start
        is the one reported as failed. cause is the failure that was still
        being worked around when time ran out.
        """
        if self._expires_at is None:
            return None
        left = self._expires_at - time.monotonic()
        if left <= 0:
            raise error_cls(
                f"Deadline exceeded before {error_cls.phase} of ({url})", url=url, cause=cause
            ) from cause
        return left

    def budget(self, error_cls: Type[RepoFetchError], url: str) -> Callable[[], Optional[float]]:
        """Callable giving the remaining time, for phases that run several commands."""
        return lambda: self.remaining(error_cls, url)


class Installer:
    """Produce a working tree at a requested revision of a remote repository.

    The resolver and cloner are injectable so the orchestration can be
    exercised without a network or a git binary.
    """

    def __init__(
        self,
        resolver: Optional[RevisionResolver] = None,
        cloner: Optional[RepoCloner] = None,
        settings: Optional[FetchSettings] = None,
        tool_version: str = __version__,
    ):
        self.settings = settings or FetchSettings()
        self.resolver = resolver or GitRevisionResolver(self.settings.git_executable)
        self.cloner = cloner or GitCliCloner(self.settings.git_executable)
        self.tool_version = tool_version

    def install(self, url: str, dst_path: Path, specifier: str = "") -> InstallManifest:
        """Clone url into dst_path and check out the revision specifier names.

        The specifier may be empty (default branch), a branch or release tag
        (e.g. 1.4.1), a commit hash (e.g. 34edf09a) or a PR (e.g. PR-9486).

        Raises:
            ResolutionError: If the specifier cannot be resolved; dst_path is untouched
            CloneError: If the download fails or dst_path is occupied
            CheckoutError: If the resolved commit cannot be checked out
        """
        deadline = Deadline(self.settings.timeout)
        resolved = self.resolver.resolve(
            url, specifier, timeout=deadline.remaining(ResolutionError, url)
        )
        return self._fetch_and_checkout(url, Path(dst_path), resolved, specifier, deadline)

    def fetch_and_checkout(self, url: str, dst_path: Path, resolved: str) -> InstallManifest:
        """Clone url into dst_path and check out an already resolved revision.

        An empty revision takes whatever HEAD the clone produces. Otherwise the
        clone skips the working tree and the commit is checked out explicitly.
        """
        deadline = Deadline(self.settings.timeout)
        return self._fetch_and_checkout(url, Path(dst_path), resolved, resolved, deadline)

    def _fetch_and_checkout(
        self,
        url: str,
        dst_path: Path,
        resolved: str,
        specifier: str,
        deadline: Deadline,
    ) -> InstallManifest:
        auto_checkout = resolved == ""
        if not auto_checkout and not is_commit_hash(resolved):
            raise CheckoutError(
                f"Revision '{resolved}' of ({url}) is not a commit hash", url=url
            )
        self._ensure_destination_free(url, dst_path)

        staging_dir = None
        if self.settings.atomic:
            try:
                dst_path.parent.mkdir(parents=True, exist_ok=True)
                staging_dir = Path(
                    tempfile.mkdtemp(prefix=f".{get_repo_slug(url)}-fetch-", dir=dst_path.parent)
                )
            except OSError as e:
                raise CloneError(
                    f"Error preparing destination {dst_path} for ({url})", url=url, cause=e
                ) from e
            work_path = staging_dir / "repo"
        else:
            work_path = dst_path

        try:
            repo = self._clone(url, work_path, auto_checkout, deadline)

            if not auto_checkout:
                logger.info(f"Checking out {resolved}")
                try:
                    repo.checkout(resolved, remaining=deadline.budget(CheckoutError, url))
                except TRANSPORT_ERRORS as e:
                    raise CheckoutError(
                        f"Error checking out revision {resolved} of ({url})", url=url, cause=e
                    ) from e

            head_commit = self._head(url, repo, deadline)

            if staging_dir is not None:
                logger.info(f"Installing working tree to {dst_path}")
                try:
                    if dst_path.exists():
                        dst_path.rmdir()
                    shutil.move(str(work_path), str(dst_path))
                except OSError as e:
                    raise CloneError(
                        f"Error moving working tree into {dst_path} for ({url})", url=url, cause=e
                    ) from e
        finally:
            if staging_dir is not None:
                shutil.rmtree(staging_dir, ignore_errors=True)

        return InstallManifest(
            repo_url=url,
            specifier=specifier,
            resolved_revision=resolved,
            head_commit=head_commit,
            local_path=str(dst_path.absolute()),
            strategy=STRATEGY_CLONE if auto_checkout else STRATEGY_NO_CHECKOUT,
            installed_at=datetime.now(timezone.utc).isoformat(),
            tool_version=self.tool_version,
        )

    def _clone(self, url: str, work_path: Path, auto_checkout: bool, deadline: Deadline) -> Repository:
        attempts = self.settings.clone_retries + 1
        mode = "with checkout" if auto_checkout else "without checkout"
        last_error = None

        for attempt in range(attempts):
            logger.info(f"Cloning {url} to {work_path} ({mode})")
            try:
                timeout = deadline.remaining(CloneError, url, cause=last_error)
                return self.cloner.clone(url, work_path, auto_checkout, timeout=timeout)
            except TRANSPORT_ERRORS as e:
                last_error = e
                if attempt < attempts - 1:
                    delay = self.settings.retry_backoff * (2 ** attempt)
                    logger.warning(
                        f"Clone attempt {attempt + 1}/{attempts} of {url} failed, retrying in {delay:.1f}s: {e}"
                    )
                    if work_path.exists():
                        shutil.rmtree(work_path)
                    left = deadline.remaining(CloneError, url, cause=e)
                    time.sleep(delay if left is None else min(delay, left))

        raise CloneError(
            f"Error downloading repository ({url})", url=url, cause=last_error
        ) from last_error

    @staticmethod
    def _head(url: str, repo: Repository, deadline: Deadline) -> str:
        try:
            return repo.head(timeout=deadline.remaining(CheckoutError, url))
        except TRANSPORT_ERRORS as e:
            raise CheckoutError(
                f"Error reading checked out commit of ({url})", url=url, cause=e
            ) from e

    @staticmethod
    def _ensure_destination_free(url: str, dst_path: Path) -> None:
        if dst_path.exists() and (not dst_path.is_dir() or any(dst_path.iterdir())):
            raise CloneError(
                f"Destination path {dst_path} already exists and is not an empty directory",
                url=url,
            )


def install_repo(
    url: str,
    dst_path: Path,
    specifier: str = "",
    settings: Optional[FetchSettings] = None,
) -> InstallManifest:
    """Install url at specifier into dst_path with the git-backed defaults."""
    return Installer(settings=settings).install(url, dst_path, specifier)
