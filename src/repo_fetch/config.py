"""Fetch settings: deadline, retry and staging configuration."""
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from repo_fetch.core.errors import ConfigError

logger = logging.getLogger(__name__)


class FetchSettings(BaseModel):
    """Knobs for a single install.

    The defaults reproduce a plain full-history clone with no deadline and no
    retry, staged next to the destination and moved into place on success.
    """

    model_config = ConfigDict(extra="forbid")

    timeout: Optional[float] = Field(
        default=None,
        description="Overall deadline in seconds for resolve, clone and checkout",
    )
    clone_retries: int = Field(default=0, ge=0, description="Extra clone attempts after a failure")
    retry_backoff: float = Field(default=1.0, ge=0, description="Base backoff in seconds, doubled per attempt")
    atomic: bool = Field(default=True, description="Clone into a staging directory first")
    git_executable: str = Field(default="git", description="git binary to invoke")

    @field_validator("timeout")
    @classmethod
    def validate_timeout_positive(cls, v: Optional[float]) -> Optional[float]:
        """A deadline must leave some time to work with."""
        if v is not None and v <= 0:
            raise ValueError(f"timeout must be positive; got {v}")
        return v

    @field_validator("git_executable")
    @classmethod
    def validate_git_executable(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("git_executable must not be empty")
        return v


def load_settings(path: Path) -> FetchSettings:
    """Load settings from a JSON file.

    Raises:
        ConfigError: If the file is missing, not JSON, or fails validation
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}", cause=e) from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON", cause=e) from e

    try:
        settings = FetchSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}", cause=e) from e

    logger.info(f"Loaded settings from {path}")
    return settings
