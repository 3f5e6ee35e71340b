"""
Unit tests for settings and the archival configuration derived from them.
"""

import pytest

from vault_core.config import ArchivalConfig, Settings
from vault_core.domain.models import StoragePolicy


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BACKUP_AUTO_STORAGE", raising=False)
        settings = Settings(_env_file=None)

        assert settings.BACKUP_AUTO_STORAGE == 0
        assert settings.FILE_PERMISSIONS == 0o666
        assert settings.SCRATCH_TTL_HOURS == 4

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BACKUP_AUTO_STORAGE", "2")
        monkeypatch.setenv("BACKUP_AUTO_DESTINATION", "s3://bucket/nightly")

        settings = Settings(_env_file=None)

        assert settings.BACKUP_AUTO_STORAGE == 2
        assert settings.BACKUP_AUTO_DESTINATION == "s3://bucket/nightly"


class TestArchivalConfig:
    """Tests for ArchivalConfig.from_settings()."""

    @pytest.mark.parametrize(
        "flag, policy",
        [(0, StoragePolicy.OFF), (1, StoragePolicy.EXTERNAL_ONLY), (2, StoragePolicy.EXTERNAL_AND_STORE)],
    )
    def test_policy_from_flag(self, flag, policy):
        settings = Settings(_env_file=None, BACKUP_AUTO_STORAGE=flag)

        assert ArchivalConfig.from_settings(settings).storage_policy is policy

    def test_copies_destination_and_permissions(self):
        settings = Settings(
            _env_file=None,
            BACKUP_AUTO_DESTINATION="/mnt/backups",
            FILE_PERMISSIONS=0o640,
            SITE_IDENTIFIER="site-x",
        )

        config = ArchivalConfig.from_settings(settings)

        assert config.external_destination == "/mnt/backups"
        assert config.file_permissions == 0o640
        assert config.site_identifier == "site-x"

    def test_is_immutable(self):
        config = ArchivalConfig()

        with pytest.raises(Exception):
            config.external_destination = "/tmp"
