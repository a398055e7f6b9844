"""Classification of remote objects into snapshot artifacts."""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..location import RepositoryLocation
from ..utils import SNAPSHOT_MARKER, UNPARSEABLE_ORDINAL

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")
_SNAPSHOT_NUMERICS = re.compile(SNAPSHOT_MARKER + r"\d+\.")


@dataclass(frozen=True)
class SnapshotDescription:
    """A snapshot build of an installable found in the bucket."""

    group_key_prefix: str
    """Full bucket key up to (excluding) the SNAPSHOT marker"""

    bucket_key: str
    """Original bucket key of the object"""

    ordinal: int
    """Build number parsed from the suffix, or UNPARSEABLE_ORDINAL"""

    @property
    def filename(self) -> str:
        return self.bucket_key.rpartition("/")[2]

    def __str__(self) -> str:
        return self.bucket_key


def parse_ordinal(snapshot_suffix: str) -> int:
    """Convert the text from the SNAPSHOT marker onwards into an ordinal.

    Every non-digit character is dropped and the remaining digits are read
    as one integer.

    Examples:
        >>> parse_ordinal("SNAPSHOT42.noarch.rpm")
        42
        >>> parse_ordinal("SNAPSHOT.noarch.rpm")
        -1
    """
    digits_only = _NON_DIGITS.sub("", snapshot_suffix)
    if not digits_only:
        return UNPARSEABLE_ORDINAL
    return int(digits_only)


def classify_snapshot(
    key: str, location: RepositoryLocation
) -> Optional[SnapshotDescription]:
    """Describe a bucket key as a snapshot artifact, if it is one.

    A filename containing the SNAPSHOT marker anywhere after its first
    character is treated as a snapshot. A filename starting with the marker
    is not.

    Args:
        key: Bucket key of the object
        location: Repository location the key belongs to

    Returns:
        SnapshotDescription, or None for plain files
    """
    repo_relative_path = location.to_repo_relative_path(key)
    directory, _, filename = repo_relative_path.rpartition("/")
    if directory:
        directory += "/"

    snapshot_index = filename.find(SNAPSHOT_MARKER)
    if snapshot_index <= 0:
        return None

    group_key_prefix = location.key_prefix + directory + filename[:snapshot_index]
    ordinal = parse_ordinal(filename[snapshot_index:])
    logger.debug(
        f"Making note of snapshot '{key}'; using prefix = {group_key_prefix}"
    )
    return SnapshotDescription(
        group_key_prefix=group_key_prefix, bucket_key=key, ordinal=ordinal
    )


def strip_snapshot_numerics(filename: str) -> Optional[str]:
    """Drop the build number following the SNAPSHOT marker.

    Returns None when the filename does not contain exactly one marker,
    since such names cannot be canonicalized safely.

    Examples:
        >>> strip_snapshot_numerics("foo-1.0-SNAPSHOT42.noarch.rpm")
        'foo-1.0-SNAPSHOT.noarch.rpm'
        >>> strip_snapshot_numerics("SNAPSHOT-foo-SNAPSHOT2.rpm") is None
        True
    """
    if filename.count(SNAPSHOT_MARKER) != 1:
        return None
    return _SNAPSHOT_NUMERICS.sub(SNAPSHOT_MARKER + ".", filename)
