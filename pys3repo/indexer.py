"""Repository metadata indexing via createrepo.

The indexer scans a local yum repository tree and regenerates its
``repodata/`` directory. Reading the declared package list back out of the
metadata lets the rebuild engine verify that a downloaded mirror is
complete before anything destructive happens.
"""

import gzip
import logging
import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Protocol

from .config import config
from .exceptions import IndexerError, ValidationError
from .utils import REPODATA_DIRECTORY

logger = logging.getLogger(__name__)

REPO_NAMESPACE = "http://linux.duke.edu/metadata/repo"
COMMON_NAMESPACE = "http://linux.duke.edu/metadata/common"


class RepositoryIndexer(Protocol):
    """Operations the rebuild engine needs from a repository indexer."""

    def rebuild(self, root: Path) -> None: ...

    def parse_declared_files(self, root: Path) -> list[str]: ...

    def index_exists(self, root: Path) -> bool: ...

    def index_directory(self, root: Path) -> Path: ...


class CreaterepoIndexer:
    """Indexer wrapping the ``createrepo`` executable."""

    def __init__(self, executable: Optional[str] = None):
        """Initialize the indexer.

        Args:
            executable: createrepo executable name or path (default: from
                S3REPO_CREATEREPO, else "createrepo")
        """
        self.executable = executable or config.createrepo

    def index_directory(self, root: Path) -> Path:
        return root / REPODATA_DIRECTORY

    def _repomd_path(self, root: Path) -> Path:
        return self.index_directory(root) / "repomd.xml"

    def index_exists(self, root: Path) -> bool:
        return self._repomd_path(root).is_file()

    def rebuild(self, root: Path) -> None:
        """Regenerate the repository metadata in place.

        Args:
            root: Repository root directory

        Raises:
            IndexerError: If createrepo is missing or exits non-zero
        """
        cmd = [self.executable, str(root)]
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            proc = subprocess.run(
                cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True
            )
        except FileNotFoundError as e:
            raise IndexerError(
                f"Command not found: {self.executable}", key=str(root)
            ) from e
        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise IndexerError(
                f"{self.executable} exited with status {proc.returncode}: {stderr}",
                key=str(root),
            )
        logger.debug((proc.stdout or "").strip())

    def _primary_location(self, repomd: Path) -> str:
        try:
            tree = ET.parse(repomd)
        except (ET.ParseError, OSError) as e:
            raise ValidationError(
                f"Cannot read repository metadata {repomd}: {e}", key=str(repomd)
            ) from e

        for data in tree.getroot().iter(f"{{{REPO_NAMESPACE}}}data"):
            if data.get("type") != "primary":
                continue
            location = data.find(f"{{{REPO_NAMESPACE}}}location")
            if location is not None and location.get("href"):
                return location.get("href", "")
        raise ValidationError(
            f"Repository metadata {repomd} declares no primary data",
            key=str(repomd),
        )

    def parse_declared_files(self, root: Path) -> list[str]:
        """List the package files declared by the repository metadata.

        Args:
            root: Repository root directory

        Returns:
            Repo-relative package paths, in declaration order

        Raises:
            ValidationError: If the metadata cannot be read
        """
        primary = root / self._primary_location(self._repomd_path(root))
        try:
            if primary.name.endswith(".gz"):
                with gzip.open(primary, "rb") as f:
                    tree = ET.parse(f)
            else:
                tree = ET.parse(primary)
        except (ET.ParseError, OSError, EOFError) as e:
            raise ValidationError(
                f"Cannot read primary metadata {primary}: {e}", key=str(primary)
            ) from e

        declared = []
        for package in tree.getroot().iter(f"{{{COMMON_NAMESPACE}}}package"):
            location = package.find(f"{{{COMMON_NAMESPACE}}}location")
            if location is not None and location.get("href"):
                declared.append(location.get("href", ""))
        logger.debug(f"Metadata declares {len(declared)} package(s)")
        return declared
