"""Mutable state of a single rebuild run.

A SyncContext is created at the start of a run and threaded through every
stage of the engine. Nothing in it is persisted; a new run starts from an
empty context.
"""

from dataclasses import dataclass, field
from pathlib import Path

from ..location import RepositoryLocation
from .mirror import LocalMirror
from .snapshots import SnapshotDescription


@dataclass(frozen=True)
class RemoteSnapshotRename:
    """A committed local rename that still has to be applied remotely."""

    source: SnapshotDescription
    """Snapshot whose object is renamed"""

    new_bucket_key: str
    """Key the object is copied to before the source key is deleted"""


def _empty_stats() -> dict:
    return {
        "downloads": 0,
        "download_skips": 0,
        "excluded": 0,
        "unsafe_skips": 0,
        "deletes_local": 0,
        "renames_local": 0,
        "uploads": 0,
        "deletes_remote": 0,
        "renames_remote": 0,
    }


@dataclass
class SyncContext:
    """State shared between the stages of one rebuild run."""

    location: RepositoryLocation
    """Repository being rebuilt"""

    mirror: LocalMirror
    """Local working copy of the bucket"""

    repo_root: Path
    """Repository root inside the working copy"""

    excluded_files: list[str] = field(default_factory=list)
    """Repo-relative paths removed from the repository"""

    snapshots: list[SnapshotDescription] = field(default_factory=list)
    """Snapshots discovered during download, in discovery order"""

    snapshots_to_delete: list[SnapshotDescription] = field(default_factory=list)
    """Snapshots deleted locally that must be deleted remotely"""

    snapshots_to_rename: list[RemoteSnapshotRename] = field(default_factory=list)
    """Snapshots renamed locally that must be renamed remotely"""

    stats: dict = field(default_factory=_empty_stats)
    """Counters reported at the end of the run"""

    @property
    def bucket(self) -> str:
        return self.location.bucket

    def is_excluded(self, repo_relative_path: str) -> bool:
        return repo_relative_path in self.excluded_files

    def add_snapshot(self, snapshot: SnapshotDescription) -> None:
        self.snapshots.append(snapshot)

    def add_snapshot_to_delete(self, snapshot: SnapshotDescription) -> None:
        self.snapshots_to_delete.append(snapshot)

    def add_snapshot_to_rename(self, rename: RemoteSnapshotRename) -> None:
        self.snapshots_to_rename.append(rename)
