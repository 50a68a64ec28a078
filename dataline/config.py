"""Runtime settings: env-driven, read only at the edges.

Uses pydantic-settings so every option can come from ``DATALINE_*``
environment variables or a ``.env`` file.  The projection core never reads
these settings itself: the CLI turns them into an explicit
``ProjectionConfig`` and passes that down.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dataline.models.config import ProjectionConfig, ProjectionIdentity


class DatalineSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export DATALINE_REPO_PATH=/srv/repos/project
        export DATALINE_DATA_REF=refs/heads/workspace/data
        export DATALINE_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DATALINE_",
        env_file_encoding="utf-8",
    )

    # Repository
    repo_path: Path = Path(".")
    git_binary: str = "git"

    # Data-line layout
    data_ref: str = "refs/heads/workspace/data"
    manifest_path: str = ".artifacts.yaml"
    metadata_path: str = "metadata.json"
    registry_path: str = ".llm-context/registry.yaml"
    artifacts_root: str = "artifacts"
    max_retries: int = Field(default=3, ge=0)

    # Fixed commit identity
    author_name: str = "projection-bot"
    author_email: str = "projection@localhost"
    timestamp: int = 0
    timezone_offset: str = "+0000"

    # Observability
    log_level: str = "INFO"

    def projection_config(self) -> ProjectionConfig:
        """The explicit configuration value handed to the projection core."""
        return ProjectionConfig(
            data_ref=self.data_ref,
            manifest_path=self.manifest_path,
            metadata_path=self.metadata_path,
            registry_path=self.registry_path,
            artifacts_root=self.artifacts_root,
            max_retries=self.max_retries,
            identity=ProjectionIdentity(
                name=self.author_name,
                email=self.author_email,
                timestamp=self.timestamp,
                timezone_offset=self.timezone_offset,
            ),
        )
