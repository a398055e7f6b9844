"""Reconciliation of competing snapshot builds."""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .snapshots import SnapshotDescription, strip_snapshot_numerics

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationPlan:
    """Local changes needed to reduce each snapshot group to one file."""

    to_delete: list[SnapshotDescription] = field(default_factory=list)
    """Older snapshots to delete, in group order"""

    to_rename: list[tuple[SnapshotDescription, str]] = field(default_factory=list)
    """Kept snapshots and the canonical filename to rename them to"""

    warnings: list[str] = field(default_factory=list)
    """Rename candidates that were left under their original name"""

    @property
    def is_empty(self) -> bool:
        return not self.to_delete and not self.to_rename


class SnapshotReconciler:
    """Selects the newest snapshot of each installable.

    Snapshots sharing a group key prefix are builds of the same installable.
    The member with the highest ordinal is kept and renamed to its canonical
    name; every other member is scheduled for deletion.
    """

    def group(
        self, snapshots: Iterable[SnapshotDescription]
    ) -> dict[str, list[SnapshotDescription]]:
        """Group snapshots by prefix, preserving discovery order."""
        groups: dict[str, list[SnapshotDescription]] = {}
        for snapshot in snapshots:
            groups.setdefault(snapshot.group_key_prefix, []).append(snapshot)
        return groups

    def order(self, members: list[SnapshotDescription]) -> list[SnapshotDescription]:
        """Order a group newest first.

        The sort is stable, so equal ordinals keep their discovery order.
        """
        return sorted(members, key=lambda s: s.ordinal, reverse=True)

    def plan(self, snapshots: Iterable[SnapshotDescription]) -> ReconciliationPlan:
        """Build the reconciliation plan for all discovered snapshots.

        Args:
            snapshots: Snapshot descriptions in discovery order

        Returns:
            ReconciliationPlan
        """
        plan = ReconciliationPlan()

        for prefix, members in self.group(snapshots).items():
            if len(members) < 2:
                continue

            ordered = self.order(members)
            kept = ordered[0]
            plan.to_delete.extend(ordered[1:])
            logger.debug(
                f"Group {prefix}: keeping {kept.bucket_key}, "
                f"dropping {len(ordered) - 1} older snapshot(s)"
            )

            canonical = strip_snapshot_numerics(kept.filename)
            if canonical is None:
                message = (
                    f"Filename {kept.filename} did not look like a normal "
                    "SNAPSHOT; keeping its name"
                )
                logger.warning(message)
                plan.warnings.append(message)
            elif canonical != kept.filename:
                plan.to_rename.append((kept, canonical))

        return plan
