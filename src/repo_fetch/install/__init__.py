"""Installing repositories: orchestration and manifests."""
from repo_fetch.core.errors import CheckoutError, CloneError, ResolutionError
from repo_fetch.install.installer import Installer, get_repo_slug, install_repo
from repo_fetch.install.manifest import InstallManifest

__all__ = [
    "CheckoutError",
    "CloneError",
    "InstallManifest",
    "Installer",
    "ResolutionError",
    "get_repo_slug",
    "install_repo",
]
