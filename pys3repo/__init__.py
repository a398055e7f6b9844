"""PyS3Repo - rebuild yum repositories hosted in S3."""

from .config import RebuildOptions
from .exceptions import (
    ConfigError,
    DownloadError,
    IndexerError,
    LocalCleanupError,
    MalformedLocationError,
    ObjectNotFoundError,
    ObjectStoreError,
    PublishError,
    S3RepoError,
    ValidationError,
)
from .indexer import CreaterepoIndexer
from .location import RepositoryLocation, parse_repository_location
from .store import RemoteObject, S3ObjectStore

__all__ = [
    "CreaterepoIndexer",
    "RebuildOptions",
    "RemoteObject",
    "RepositoryLocation",
    "S3ObjectStore",
    "parse_repository_location",
    "S3RepoError",
    "ConfigError",
    "DownloadError",
    "IndexerError",
    "LocalCleanupError",
    "MalformedLocationError",
    "ObjectNotFoundError",
    "ObjectStoreError",
    "PublishError",
    "ValidationError",
]
