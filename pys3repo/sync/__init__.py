"""Rebuild engine for pys3repo - mirror, reconcile and republish repositories."""

from .context import RemoteSnapshotRename, SyncContext
from .engine import SyncEngine
from .mirror import LocalFile, LocalMirror
from .operations import SyncOperations
from .reconciler import ReconciliationPlan, SnapshotReconciler
from .snapshots import (
    SnapshotDescription,
    classify_snapshot,
    parse_ordinal,
    strip_snapshot_numerics,
)

__all__ = [
    "SyncEngine",
    "SyncContext",
    "SyncOperations",
    "RemoteSnapshotRename",
    "LocalFile",
    "LocalMirror",
    "ReconciliationPlan",
    "SnapshotReconciler",
    "SnapshotDescription",
    "classify_snapshot",
    "parse_ordinal",
    "strip_snapshot_numerics",
]
