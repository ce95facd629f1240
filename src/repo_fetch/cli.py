"""repo-fetch CLI - Command line interface for repo-fetch."""
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from repo_fetch.config import FetchSettings, load_settings
from repo_fetch.core.errors import ConfigError, RepoFetchError, ResolutionError
from repo_fetch.git.resolver import GitRevisionResolver
from repo_fetch.install import Installer, get_repo_slug

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(name)s: %(message)s",
)
logger = logging.getLogger("repo_fetch")


def _settings_from_options(config: Optional[Path], **overrides) -> FetchSettings:
    settings = load_settings(config) if config else FetchSettings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return settings
    return FetchSettings.model_validate({**settings.model_dump(), **updates})


@click.group()
@click.version_option(package_name="repo-fetch")
def main():
    """repo-fetch - check out any revision of a remote git repository."""
    pass


@main.command()
@click.option(
    "--repo-url",
    required=True,
    help="Repository URL or local path",
)
@click.option(
    "--revision",
    default="",
    help="Branch, release tag, commit hash or PR-<number> (default: default branch)",
)
@click.option(
    "--dest",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Destination directory (default: repository name in the current directory)",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Overall deadline in seconds",
)
@click.option(
    "--retries",
    type=click.IntRange(min=0),
    default=None,
    help="Extra clone attempts after a failed download",
)
@click.option(
    "--no-atomic",
    is_flag=True,
    help="Clone straight into the destination instead of a staging directory",
)
@click.option(
    "--config",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON settings file",
)
@click.option(
    "--manifest",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write an install manifest to this JSON file",
)
def install(
    repo_url: str,
    revision: str,
    dest: Optional[Path],
    timeout: Optional[float],
    retries: Optional[int],
    no_atomic: bool,
    config: Optional[Path],
    manifest: Optional[Path],
):
    """Clone a repository and check out a revision.

    Examples:
        repo-fetch install --repo-url https://github.com/kyma-project/kyma.git
        repo-fetch install --repo-url https://github.com/kyma-project/kyma.git --revision PR-9486

    Exit codes:
        0: Success
        1: Generic runtime failure
        2: Invalid CLI usage
        3: Requested revision not found
        7: Configuration file error
    """
    try:
        settings = _settings_from_options(
            config,
            timeout=timeout,
            clone_retries=retries,
            atomic=False if no_atomic else None,
        )
    except (ConfigError, ValueError) as e:
        logger.error(f"Invalid configuration: {str(e)}")
        sys.exit(7)

    if dest is None:
        dest = Path(get_repo_slug(repo_url))

    try:
        result = Installer(settings=settings).install(repo_url, dest, revision)
    except ResolutionError as e:
        logger.error(f"Invalid revision: {str(e)}")
        sys.exit(3)
    except RepoFetchError as e:
        logger.error(f"Install failed during {e.phase}: {str(e)}")
        sys.exit(1)

    if manifest is not None:
        result.save(manifest)
        logger.info(f"Manifest saved to {manifest}")

    click.echo(f"[OK] Repository installed: {repo_url}")
    click.echo(f"  Revision: {revision or 'HEAD'}")
    click.echo(f"  Commit: {result.head_commit[:12]}")
    click.echo(f"  Path: {result.local_path}")
    sys.exit(0)


@main.command()
@click.option(
    "--repo-url",
    required=True,
    help="Repository URL or local path",
)
@click.option(
    "--revision",
    default="",
    help="Branch, release tag, commit hash or PR-<number>",
)
def resolve(repo_url: str, revision: str):
    """Print the commit a revision resolves to, without cloning.

    Prints HEAD when the default branch would be used.
    """
    try:
        resolved = GitRevisionResolver().resolve(repo_url, revision)
    except ResolutionError as e:
        logger.error(f"Invalid revision: {str(e)}")
        sys.exit(3)

    click.echo(resolved or "HEAD")


if __name__ == "__main__":
    main()
