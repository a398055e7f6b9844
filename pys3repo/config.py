"""Configuration for repository rebuild runs."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .exceptions import ConfigError
from .utils import DEFAULT_WORKERS


class Config:
    """Environment-backed defaults for pys3repo.

    Values are read from the environment every time they are accessed so
    tests and long-lived processes observe changes.
    """

    ENV_ACCESS_KEY = "S3REPO_ACCESS_KEY"
    ENV_SECRET_KEY = "S3REPO_SECRET_KEY"
    ENV_REGION = "S3REPO_REGION"
    ENV_ENDPOINT_URL = "S3REPO_ENDPOINT_URL"
    ENV_CREATEREPO = "S3REPO_CREATEREPO"
    ENV_WORKERS = "S3REPO_WORKERS"

    @property
    def access_key(self) -> Optional[str]:
        return os.environ.get(self.ENV_ACCESS_KEY) or None

    @property
    def secret_key(self) -> Optional[str]:
        return os.environ.get(self.ENV_SECRET_KEY) or None

    @property
    def region(self) -> Optional[str]:
        return os.environ.get(self.ENV_REGION) or None

    @property
    def endpoint_url(self) -> Optional[str]:
        return os.environ.get(self.ENV_ENDPOINT_URL) or None

    @property
    def createrepo(self) -> str:
        return os.environ.get(self.ENV_CREATEREPO) or "createrepo"

    @property
    def workers(self) -> int:
        """Default number of download workers.

        Raises:
            ConfigError: If the environment value is not an integer
        """
        value = os.environ.get(self.ENV_WORKERS)
        if not value:
            return DEFAULT_WORKERS
        try:
            return int(value)
        except ValueError as e:
            raise ConfigError(
                f"{self.ENV_WORKERS} must be an integer, got {value!r}"
            ) from e


config = Config()


@dataclass
class RebuildOptions:
    """Parameters of a single repository rebuild run."""

    repository_path: str
    """Location of the repository, e.g. s3://bucket/folder or /bucket/folder"""

    staging_directory: Optional[Path] = None
    """Local working copy; a fresh temporary directory when None"""

    excluded_files: list[str] = field(default_factory=list)
    """Repo-relative paths to drop from the repository"""

    skip_validate: bool = False
    """Do not validate the downloaded repository metadata"""

    remove_old_snapshots: bool = False
    """Reduce every snapshot group to its newest member"""

    skip_publish: bool = False
    """Dry run: perform no remote operations"""

    upload_metadata_only: bool = True
    """Only upload the regenerated metadata directory"""

    skip_pre_clean: bool = False
    """Keep existing staging files (they are not downloaded again)"""

    workers: int = DEFAULT_WORKERS
    """Number of parallel download workers"""

    def validate(self) -> None:
        """Check option consistency.

        Raises:
            ConfigError: If an option is out of range
        """
        if not self.repository_path or not self.repository_path.strip():
            raise ConfigError("A repository path is required")
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.staging_directory is not None and self.staging_directory.is_file():
            raise ConfigError(
                f"Staging directory is a file: {self.staging_directory}"
            )
