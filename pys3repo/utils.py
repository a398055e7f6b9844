"""Utility functions for pys3repo."""

import re
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

# Marker token identifying snapshot artifacts
SNAPSHOT_MARKER: str = "SNAPSHOT"

# Ordinal assigned to snapshots whose suffix carries no digits
UNPARSEABLE_ORDINAL: int = -1

# Name of the createrepo metadata directory
REPODATA_DIRECTORY: str = "repodata"

# Default number of parallel download workers
DEFAULT_WORKERS: int = 1


# =============================================================================
# Key normalization utilities
# =============================================================================

_SEPARATORS = re.compile(r"[\\/]+")


def normalize_key(path_text: str) -> str:
    """Normalize a path into an S3-style key.

    Backslashes are converted to forward slashes, repeated separators are
    collapsed and leading/trailing separators are stripped.

    Args:
        path_text: Path using either separator style

    Returns:
        Normalized key

    Examples:
        >>> normalize_key("\\\\repo\\\\noarch\\\\foo.rpm")
        'repo/noarch/foo.rpm'
        >>> normalize_key("/repo//repodata/")
        'repo/repodata'
    """
    return _SEPARATORS.sub("/", path_text).strip("/")


def parse_excludes(excludes: Optional[str]) -> list[str]:
    """Parse a comma-delimited list of repo-relative paths.

    Blank entries are dropped; order and first occurrence are preserved.

    Examples:
        >>> parse_excludes("a/b.rpm, ,c.rpm,a/b.rpm")
        ['a/b.rpm', 'c.rpm']
    """
    excluded: list[str] = []
    if not excludes:
        return excluded
    for entry in excludes.split(","):
        key = normalize_key(entry.strip())
        if key and key not in excluded:
            excluded.append(key)
    return excluded


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
