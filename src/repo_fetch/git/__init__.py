"""Git transport and revision resolution."""
from repo_fetch.git.cloner import GitCliCloner, GitRepository, RepoCloner, Repository
from repo_fetch.git.command import GitCommandError, run_git
from repo_fetch.git.resolver import GitRevisionResolver, RevisionResolver, is_commit_hash

__all__ = [
    "GitCliCloner",
    "GitCommandError",
    "GitRepository",
    "GitRevisionResolver",
    "RepoCloner",
    "Repository",
    "RevisionResolver",
    "is_commit_hash",
    "run_git",
]
