"""Install manifest: a record of what was checked out where."""
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

STRATEGY_CLONE = "clone"
STRATEGY_NO_CHECKOUT = "no-checkout+checkout"


def _validate_sha(v: str) -> str:
    if len(v) < 7 or len(v) > 40:
        raise ValueError(f"commit must be 7-40 hex characters; got '{v}' (len={len(v)})")
    if not all(c in "0123456789abcdef" for c in v.lower()):
        raise ValueError(f"commit must be hexadecimal; got '{v}'")
    return v


class InstallManifest(BaseModel):
    """Result of an install.

    resolved_revision is empty when the default branch tip was taken as-is;
    head_commit is always the commit the working tree was left at.
    """

    schema_version: str = Field(default="install_manifest_v1")
    repo_url: str = Field(..., description="Source repository URL")
    specifier: str = Field(default="", description="Requested branch/tag/commit/PR")
    resolved_revision: str = Field(default="", description="Resolved commit, empty for default branch")
    head_commit: str = Field(..., description="Commit checked out in the working tree")
    local_path: str = Field(..., description="Absolute path of the working tree")
    strategy: str = Field(..., description="How the working tree was materialized")
    installed_at: str = Field(..., description="ISO8601 timestamp of install")
    tool_version: str = Field(..., description="Version of repo-fetch that performed the install")

    @field_validator("resolved_revision")
    @classmethod
    def validate_resolved_revision(cls, v: str) -> str:
        """Empty sentinel or a commit hash."""
        if v == "":
            return v
        return _validate_sha(v)

    @field_validator("head_commit")
    @classmethod
    def validate_head_commit(cls, v: str) -> str:
        return _validate_sha(v)

    @field_validator("strategy")
    @classmethod
    def validate_strategy(cls, v: str) -> str:
        if v not in (STRATEGY_CLONE, STRATEGY_NO_CHECKOUT):
            raise ValueError(f"unknown strategy '{v}'")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "schema_version": "install_manifest_v1",
                "repo_url": "https://github.com/kyma-project/kyma.git",
                "specifier": "PR-9486",
                "resolved_revision": "34edf09a1b2c3d4e5f60718293a4b5c6d7e8f901",
                "head_commit": "34edf09a1b2c3d4e5f60718293a4b5c6d7e8f901",
                "local_path": "/home/user/src/kyma",
                "strategy": "no-checkout+checkout",
                "installed_at": "2026-10-17T10:30:00+00:00",
                "tool_version": "0.1.0",
            }
        }
    )

    def save(self, path: Path) -> None:
        """Write manifest to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, path: Path) -> "InstallManifest":
        """Load manifest from JSON file."""
        path = Path(path)
        return cls.model_validate_json(path.read_text())
