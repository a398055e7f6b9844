"""Local working copy of a bucket."""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import LocalCleanupError
from ..utils import normalize_key

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a file in the local mirror."""

    path: Path
    """Absolute path to the file"""

    key: str
    """Bucket key (mirror-relative path using forward slashes)"""

    size: int
    """File size in bytes"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Mirror root used to derive the key

        Returns:
            LocalFile instance
        """
        return cls(
            path=file_path,
            key=normalize_key(file_path.relative_to(base_path).as_posix()),
            size=file_path.stat().st_size,
        )


class LocalMirror:
    """Maps bucket keys to files below a local root directory.

    The directory tree mirrors the bucket key space one to one: key
    ``a/b/c.rpm`` lives at ``<root>/a/b/c.rpm``.
    """

    def __init__(self, root: Path):
        """Initialize the mirror.

        Args:
            root: Directory standing in for the bucket root
        """
        self.root = root

    def is_safe_key(self, key: str) -> bool:
        """True unless the key has a ``..`` segment escaping the root."""
        return ".." not in normalize_key(key).split("/")

    def path_for(self, key: str) -> Path:
        """Local path of a bucket key.

        Raises:
            ValueError: If the key contains a ``..`` segment
        """
        normalized = normalize_key(key)
        if not normalized:
            return self.root
        if not self.is_safe_key(normalized):
            raise ValueError(f"Key {key!r} resolves outside {self.root}")
        return self.root.joinpath(*normalized.split("/"))

    def key_for(self, path: Path) -> str:
        """Bucket key of a local path.

        Raises:
            ValueError: If the path is not below the mirror root
        """
        return normalize_key(path.relative_to(self.root).as_posix())

    def is_file(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def clean(self) -> None:
        """Create the root directory, or empty it if it already exists."""
        if not self.root.exists():
            self.root.mkdir(parents=True)
            return
        for item in self.root.iterdir():
            if item.is_dir() and not item.is_symlink():
                shutil.rmtree(item)
            else:
                item.unlink()
        logger.debug(f"Cleaned {self.root}")

    def delete(self, key: str) -> None:
        """Delete the file stored under a key.

        Raises:
            LocalCleanupError: If the file does not exist or cannot be removed
        """
        path = self.path_for(key)
        if not path.is_file():
            raise LocalCleanupError(f"Cannot delete non-existent file: {path}", key=key)
        try:
            path.unlink()
        except OSError as e:
            raise LocalCleanupError(f"Failed to delete file: {path}: {e}", key=key) from e

    def rename(self, key: str, new_filename: str) -> str:
        """Rename a file within its directory.

        Args:
            key: Key of the file to rename
            new_filename: New filename (no directory part)

        Returns:
            Key of the renamed file

        Raises:
            OSError: If the rename fails
        """
        source = self.path_for(key)
        target = source.with_name(new_filename)
        source.rename(target)
        return self.key_for(target)

    def list_files(self, subtree: Optional[Path] = None) -> list[LocalFile]:
        """List every regular file below a directory.

        Args:
            subtree: Directory to list (defaults to the mirror root); must be
                inside the mirror

        Returns:
            LocalFile objects sorted by key
        """
        base = subtree if subtree is not None else self.root
        if not base.is_dir():
            return []
        files = [
            LocalFile.from_path(item, self.root)
            for item in base.rglob("*")
            if item.is_file()
        ]
        return sorted(files, key=lambda f: f.key)
