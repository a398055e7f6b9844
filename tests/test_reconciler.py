"""Tests for the SnapshotReconciler."""

from pys3repo.sync.reconciler import SnapshotReconciler
from pys3repo.sync.snapshots import SnapshotDescription


def _snapshot(key: str, ordinal: int, prefix: str = "repo/pkg-1.0-"):
    return SnapshotDescription(group_key_prefix=prefix, bucket_key=key, ordinal=ordinal)


class TestSnapshotReconciler:
    """Tests for plan construction."""

    def test_empty(self):
        plan = SnapshotReconciler().plan([])
        assert plan.is_empty
        assert plan.warnings == []

    def test_single_member_group_produces_nothing(self):
        plan = SnapshotReconciler().plan([_snapshot("repo/pkg-1.0-SNAPSHOT1.rpm", 1)])
        assert plan.to_delete == []
        assert plan.to_rename == []

    def test_keeps_highest_ordinal(self):
        old = _snapshot("repo/pkg-1.0-SNAPSHOT1.rpm", 1)
        new = _snapshot("repo/pkg-1.0-SNAPSHOT3.rpm", 3)
        mid = _snapshot("repo/pkg-1.0-SNAPSHOT2.rpm", 2)

        plan = SnapshotReconciler().plan([old, new, mid])

        assert plan.to_delete == [mid, old]
        assert plan.to_rename == [(new, "pkg-1.0-SNAPSHOT.rpm")]

    def test_numeric_not_lexical_ordering(self):
        nine = _snapshot("repo/pkg-1.0-SNAPSHOT9.rpm", 9)
        ten = _snapshot("repo/pkg-1.0-SNAPSHOT10.rpm", 10)

        plan = SnapshotReconciler().plan([nine, ten])

        assert plan.to_delete == [nine]
        assert plan.to_rename[0][0] == ten

    def test_unparseable_ordinal_is_never_kept(self):
        bare = _snapshot("repo/pkg-1.0-SNAPSHOT.rpm", -1)
        built = _snapshot("repo/pkg-1.0-SNAPSHOT0.rpm", 0)

        plan = SnapshotReconciler().plan([bare, built])

        assert plan.to_delete == [bare]
        assert plan.to_rename == [(built, "pkg-1.0-SNAPSHOT.rpm")]

    def test_ties_keep_first_discovered(self):
        first = _snapshot("repo/pkg-1.0-SNAPSHOT5.rpm", 5)
        second = _snapshot("repo/pkg-1.0-SNAPSHOT05.rpm", 5)

        plan = SnapshotReconciler().plan([first, second])

        assert plan.to_delete == [second]
        assert plan.to_rename[0][0] == first

    def test_groups_are_independent(self):
        a1 = _snapshot("repo/a-SNAPSHOT1.rpm", 1, prefix="repo/a-")
        a2 = _snapshot("repo/a-SNAPSHOT2.rpm", 2, prefix="repo/a-")
        b1 = _snapshot("repo/b-SNAPSHOT1.rpm", 1, prefix="repo/b-")

        plan = SnapshotReconciler().plan([a1, b1, a2])

        assert plan.to_delete == [a1]
        assert [kept for kept, _ in plan.to_rename] == [a2]

    def test_group_of_n_keeps_exactly_one(self):
        members = [_snapshot(f"repo/pkg-1.0-SNAPSHOT{i}.rpm", i) for i in range(7)]

        plan = SnapshotReconciler().plan(members)

        assert len(plan.to_delete) == 6
        kept = {s.bucket_key for s in members} - {s.bucket_key for s in plan.to_delete}
        assert kept == {"repo/pkg-1.0-SNAPSHOT6.rpm"}
        deleted = {s.bucket_key for s in plan.to_delete}
        renamed = {s.bucket_key for s, _ in plan.to_rename}
        assert deleted.isdisjoint(renamed)

    def test_two_markers_skips_rename_with_warning(self):
        odd_old = _snapshot("repo/pkg-SNAPSHOT-SNAPSHOT1.rpm", 1, prefix="repo/pkg-")
        odd_new = _snapshot("repo/pkg-SNAPSHOT-SNAPSHOT2.rpm", 2, prefix="repo/pkg-")

        plan = SnapshotReconciler().plan([odd_old, odd_new])

        assert plan.to_delete == [odd_old]
        assert plan.to_rename == []
        assert len(plan.warnings) == 1
        assert "pkg-SNAPSHOT-SNAPSHOT2.rpm" in plan.warnings[0]

    def test_canonical_name_kept_is_not_renamed(self):
        canonical = _snapshot("repo/pkg-1.0-SNAPSHOT.rpm", -1)
        other = _snapshot("repo/pkg-1.0-SNAPSHOT-old.rpm", -1)

        plan = SnapshotReconciler().plan([canonical, other])

        assert plan.to_delete == [other]
        assert plan.to_rename == []
        assert plan.warnings == []
