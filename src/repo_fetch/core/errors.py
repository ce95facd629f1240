"""Core exception types for repo-fetch."""
from typing import Optional


class RepoFetchError(Exception):
    """Base exception for all repo-fetch errors.

    Carries the failing phase and the repository URL so callers can report
    which step of an install broke and against which remote.
    """

    phase = "fetch"

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.url = url
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class ResolutionError(RepoFetchError):
    """Raised when a revision specifier cannot be mapped to a commit."""
    phase = "resolve"


class CloneError(RepoFetchError):
    """Raised when the repository cannot be downloaded."""
    phase = "clone"


class CheckoutError(RepoFetchError):
    """Raised when the resolved commit cannot be checked out."""
    phase = "checkout"


class ConfigError(RepoFetchError):
    """Raised when a settings file cannot be read or validated."""
    phase = "config"
