"""Parsing of S3 repository locations."""

import re
from dataclasses import dataclass
from typing import Optional

from .exceptions import MalformedLocationError

_URI_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://([^/]*)(/.*)?$")
_PATH_PATTERN = re.compile(r"^/([^/]*)(/.*)?$")


@dataclass(frozen=True)
class RepositoryLocation:
    """Bucket and optional bucket-relative folder holding a repository."""

    bucket: str
    """Name of the bucket (container)"""

    relative_folder: Optional[str] = None
    """Folder inside the bucket, without leading or trailing separators"""

    @property
    def has_relative_folder(self) -> bool:
        return self.relative_folder is not None

    @property
    def key_prefix(self) -> str:
        """Prefix shared by every key in the repository ("" or "folder/")."""
        if self.relative_folder is None:
            return ""
        return self.relative_folder + "/"

    def to_bucket_key(self, repo_relative_path: str) -> str:
        """Convert a repo-relative path into a bucket key."""
        return self.key_prefix + repo_relative_path

    def to_repo_relative_path(self, bucket_key: str) -> str:
        """Strip the repository folder from a bucket key.

        Keys outside the folder are returned unchanged.
        """
        prefix = self.key_prefix
        if prefix and bucket_key.startswith(prefix):
            return bucket_key[len(prefix) :]
        return bucket_key

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.relative_folder or ''}"


def _join_folder(folder_part: Optional[str]) -> Optional[str]:
    if not folder_part:
        return None
    segments = [segment for segment in folder_part.split("/") if segment]
    if not segments:
        return None
    return "/".join(segments)


def parse_repository_location(text: str) -> RepositoryLocation:
    """Parse a repository location string.

    Both ``s3://bucket/folder/sub`` and ``/bucket/folder/sub`` are accepted;
    the folder part is optional.

    Args:
        text: Location string

    Returns:
        Parsed RepositoryLocation

    Raises:
        MalformedLocationError: If the string matches neither form, has
            an empty bucket or a folder with a `..` segment

    Examples:
        >>> parse_repository_location("s3://bucket/repo/")
        RepositoryLocation(bucket='bucket', relative_folder='repo')
        >>> parse_repository_location("/bucket")
        RepositoryLocation(bucket='bucket', relative_folder=None)
    """
    candidate = (text or "").strip()
    match = _URI_PATTERN.match(candidate) or _PATH_PATTERN.match(candidate)
    if match is None:
        raise MalformedLocationError(f"Malformed repository location: {text!r}")

    bucket = match.group(1)
    if not bucket:
        raise MalformedLocationError(f"Repository location has no bucket: {text!r}")

    relative_folder = _join_folder(match.group(2))
    if relative_folder is not None and ".." in relative_folder.split("/"):
        raise MalformedLocationError(
            f"Repository folder may not contain '..': {text!r}"
        )
    return RepositoryLocation(bucket=bucket, relative_folder=relative_folder)
