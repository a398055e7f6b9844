"""Tests for snapshot classification."""

from pys3repo.location import RepositoryLocation
from pys3repo.sync.snapshots import (
    SnapshotDescription,
    classify_snapshot,
    parse_ordinal,
    strip_snapshot_numerics,
)
from pys3repo.utils import UNPARSEABLE_ORDINAL


class TestParseOrdinal:
    """Tests for parse_ordinal."""

    def test_simple_suffix(self):
        assert parse_ordinal("SNAPSHOT42.noarch.rpm") == 42

    def test_no_digits(self):
        assert parse_ordinal("SNAPSHOT.noarch.rpm") == UNPARSEABLE_ORDINAL

    def test_all_digits_are_concatenated(self):
        assert parse_ordinal("SNAPSHOT1.el7.x86_64.rpm") == 1786


class TestClassifySnapshot:
    """Tests for classify_snapshot."""

    def test_plain_file(self):
        location = RepositoryLocation("bucket", "repo")
        assert classify_snapshot("repo/readme.txt", location) is None

    def test_snapshot_in_folder(self):
        location = RepositoryLocation("bucket", "repo")
        snapshot = classify_snapshot("repo/noarch/pkg-1.0-SNAPSHOT3.rpm", location)

        assert snapshot == SnapshotDescription(
            group_key_prefix="repo/noarch/pkg-1.0-",
            bucket_key="repo/noarch/pkg-1.0-SNAPSHOT3.rpm",
            ordinal=3,
        )
        assert snapshot.filename == "pkg-1.0-SNAPSHOT3.rpm"

    def test_snapshot_without_folder(self):
        snapshot = classify_snapshot("pkg-SNAPSHOT7.rpm", RepositoryLocation("bucket"))
        assert snapshot is not None
        assert snapshot.group_key_prefix == "pkg-"
        assert snapshot.ordinal == 7

    def test_marker_at_start_is_not_a_snapshot(self):
        location = RepositoryLocation("bucket", "repo")
        assert classify_snapshot("repo/SNAPSHOT1-pkg.rpm", location) is None

    def test_marker_in_directory_only_is_not_a_snapshot(self):
        location = RepositoryLocation("bucket")
        assert classify_snapshot("pkg-SNAPSHOT/readme.txt", location) is None

    def test_unparseable_ordinal(self):
        snapshot = classify_snapshot("pkg-SNAPSHOT.rpm", RepositoryLocation("bucket"))
        assert snapshot is not None
        assert snapshot.ordinal == UNPARSEABLE_ORDINAL

    def test_prefix_never_contains_marker(self):
        location = RepositoryLocation("bucket", "repo")
        snapshot = classify_snapshot("repo/a-SNAPSHOT/b-SNAPSHOT2.rpm", location)
        assert snapshot is not None
        assert snapshot.group_key_prefix == "repo/a-SNAPSHOT/b-"
        assert "SNAPSHOT" not in snapshot.group_key_prefix.rpartition("/")[2]

    def test_same_installable_in_different_folders(self):
        location = RepositoryLocation("bucket")
        first = classify_snapshot("el6/pkg-SNAPSHOT1.rpm", location)
        second = classify_snapshot("el7/pkg-SNAPSHOT1.rpm", location)
        assert first.group_key_prefix != second.group_key_prefix


class TestStripSnapshotNumerics:
    """Tests for strip_snapshot_numerics."""

    def test_strips_build_number(self):
        assert (
            strip_snapshot_numerics("foo-1.0-SNAPSHOT42.noarch.rpm")
            == "foo-1.0-SNAPSHOT.noarch.rpm"
        )

    def test_already_canonical(self):
        assert strip_snapshot_numerics("foo-SNAPSHOT.rpm") == "foo-SNAPSHOT.rpm"

    def test_two_markers(self):
        assert strip_snapshot_numerics("foo-SNAPSHOT1-SNAPSHOT2.rpm") is None

    def test_no_marker(self):
        assert strip_snapshot_numerics("foo-1.0.rpm") is None
