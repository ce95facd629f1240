"""Revision resolution: map a specifier to a commit without fetching content."""
import logging
import re
import subprocess
from typing import Dict, List, Optional, Protocol

from repo_fetch.core.errors import ResolutionError
from repo_fetch.git.command import GitCommandError, run_git

logger = logging.getLogger(__name__)

PR_PATTERN = re.compile(r"^PR-(\d+)$", re.IGNORECASE)
COMMIT_PATTERN = re.compile(r"^[0-9a-f]{7,40}$", re.IGNORECASE)


class RevisionResolver(Protocol):
    """Maps a revision specifier to ``""`` (default branch tip) or a commit hash."""

    def resolve(self, url: str, specifier: str, timeout: Optional[float] = None) -> str:
        ...


def is_commit_hash(value: str) -> bool:
    """Return True if value looks like a full or abbreviated commit hash."""
    return bool(COMMIT_PATTERN.match(value))


def parse_ls_remote(output: str) -> Dict[str, str]:
    """Parse ``git ls-remote`` output into a ref -> sha mapping."""
    refs = {}
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) != 2:
            continue
        sha, ref = parts
        refs[ref.strip()] = sha.strip()
    return refs


class GitRevisionResolver:
    """Resolve specifiers against a remote with ``git ls-remote``.

    Accepted forms:
        ""          -> "" (use whatever HEAD the clone produces)
        PR-1234     -> sha of refs/pull/1234/head
        1.4.1, main -> sha of the tag (peeled) or branch of that name
        34edf09a    -> the full sha of the ref tip it abbreviates, else the
                       hash itself, lowercased; a ref of that name wins

    ls-remote only advertises ref tips, so a hash of an older commit cannot be
    checked here. It is passed through and fails at checkout if it does not
    exist.
    """

    def __init__(self, git_executable: str = "git"):
        self.git_executable = git_executable

    def resolve(self, url: str, specifier: str, timeout: Optional[float] = None) -> str:
        specifier = specifier.strip()
        if not specifier:
            logger.info(f"No revision requested, using default branch of {url}")
            return ""

        match = PR_PATTERN.match(specifier)
        if match:
            ref = f"refs/pull/{match.group(1)}/head"
            refs = self._ls_remote(url, [ref], timeout)
            if ref not in refs:
                raise ResolutionError(
                    f"Pull request '{specifier}' not found in {url}", url=url
                )
            return self._resolved(specifier, refs[ref])

        tag_ref = f"refs/tags/{specifier}"
        head_ref = f"refs/heads/{specifier}"
        peeled_ref = f"{tag_ref}^{{}}"
        # A hash needs every tip to expand against; a name only its own refs
        patterns = [] if is_commit_hash(specifier) else [tag_ref, peeled_ref, head_ref]
        refs = self._ls_remote(url, patterns, timeout)

        # Annotated tags point at a tag object; the peeled entry is the commit
        sha = refs.get(peeled_ref) or refs.get(tag_ref) or refs.get(head_ref)
        if sha:
            return self._resolved(specifier, sha)

        if is_commit_hash(specifier):
            return self._expand_hash(url, specifier.lower(), refs)

        raise ResolutionError(
            f"Reference '{specifier}' not found in {url}", url=url
        )

    def _ls_remote(self, url: str, patterns: List[str], timeout: Optional[float]) -> Dict[str, str]:
        try:
            output = run_git(
                ["ls-remote", url, *patterns],
                timeout=timeout,
                git_executable=self.git_executable,
            )
        except subprocess.TimeoutExpired as e:
            raise ResolutionError(
                f"Timed out resolving revision in ({url})", url=url, cause=e
            ) from e
        except (GitCommandError, OSError) as e:
            raise ResolutionError(
                f"Error resolving revision in ({url})", url=url, cause=e
            ) from e
        return parse_ls_remote(output)

    def _expand_hash(self, url: str, prefix: str, refs: Dict[str, str]) -> str:
        # Tag objects are not commits; their peeled entries stand in for them
        tips = {
            sha for ref, sha in refs.items()
            if f"{ref}^{{}}" not in refs and sha.lower().startswith(prefix)
        }
        if len(tips) > 1:
            raise ResolutionError(
                f"Commit hash '{prefix}' is ambiguous in {url}", url=url
            )
        if tips:
            return self._resolved(prefix, tips.pop())

        logger.info(f"Treating {prefix} as a commit hash not at any ref tip")
        return prefix

    @staticmethod
    def _resolved(specifier: str, sha: str) -> str:
        logger.info(f"Resolved {specifier} → {sha[:12]}")
        return sha
