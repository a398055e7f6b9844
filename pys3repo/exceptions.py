"""Exceptions raised while rebuilding an S3-hosted repository."""

from typing import Optional


class S3RepoError(Exception):
    """Base exception for all repository rebuild errors."""

    stage = "Rebuild"

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ConfigError(S3RepoError):
    """Invalid run configuration."""

    stage = "Configuration"


class MalformedLocationError(S3RepoError):
    """Repository location string could not be parsed."""

    stage = "Prepare"


class ObjectStoreError(S3RepoError):
    """A remote object store operation failed."""

    stage = "Object store"


class ObjectNotFoundError(ObjectStoreError):
    """The requested remote object does not exist."""


class DownloadError(S3RepoError):
    """Fetching a remote object or writing it locally failed."""

    stage = "Download"


class ValidationError(S3RepoError):
    """The downloaded repository is missing its index or declared files."""

    stage = "Validate"


class LocalCleanupError(S3RepoError):
    """A local snapshot file could not be removed."""

    stage = "Reconcile"


class IndexerError(S3RepoError):
    """The repository indexer failed to regenerate metadata."""

    stage = "Rebuild"


class PublishError(S3RepoError):
    """Propagating changes to the remote store failed."""

    stage = "Publish"
