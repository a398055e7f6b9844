"""Tests for configuration handling."""

from pathlib import Path

import pytest

from pys3repo.config import Config, RebuildOptions
from pys3repo.exceptions import ConfigError


class TestConfig:
    """Tests for environment-backed defaults."""

    def test_defaults(self, monkeypatch):
        for name in (
            Config.ENV_ACCESS_KEY,
            Config.ENV_SECRET_KEY,
            Config.ENV_CREATEREPO,
            Config.ENV_WORKERS,
        ):
            monkeypatch.delenv(name, raising=False)
        config = Config()
        assert config.access_key is None
        assert config.secret_key is None
        assert config.createrepo == "createrepo"
        assert config.workers == 1

    def test_environment_values(self, monkeypatch):
        monkeypatch.setenv(Config.ENV_CREATEREPO, "/usr/bin/createrepo_c")
        monkeypatch.setenv(Config.ENV_WORKERS, "8")
        config = Config()
        assert config.createrepo == "/usr/bin/createrepo_c"
        assert config.workers == 8

    def test_invalid_workers(self, monkeypatch):
        monkeypatch.setenv(Config.ENV_WORKERS, "many")
        with pytest.raises(ConfigError):
            Config().workers


class TestRebuildOptions:
    """Tests for RebuildOptions.validate."""

    def test_defaults(self):
        options = RebuildOptions("s3://bucket/repo")
        options.validate()
        assert options.upload_metadata_only is True
        assert options.remove_old_snapshots is False
        assert options.excluded_files == []

    def test_missing_repository_path(self):
        with pytest.raises(ConfigError):
            RebuildOptions("  ").validate()

    def test_workers_must_be_positive(self):
        with pytest.raises(ConfigError, match="workers"):
            RebuildOptions("s3://bucket", workers=0).validate()

    def test_staging_directory_is_a_file(self, tmp_path: Path):
        staging = tmp_path / "file"
        staging.write_text("x")
        with pytest.raises(ConfigError, match="file"):
            RebuildOptions("s3://bucket", staging_directory=staging).validate()
