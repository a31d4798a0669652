"""Unit tests for configuration management."""
import pytest
from fairshares.config import Settings, WorkerInfo, get_settings, load_monitor_config
from fairshares.core.enums import NotificationFailurePolicy
from fairshares.core.exceptions import ConfigError


class TestSettings:
    """Test Settings configuration class."""

    def test_settings_has_default_values(self, monkeypatch):
        """Test scheduling defaults match the monitor's fixed constants."""
        monkeypatch.delenv("FETCH_TIMEOUT", raising=False)

        settings = Settings()

        assert settings.APP_NAME == "Fairshares"
        assert settings.POOL_NAMES == ["flexpool"]
        assert settings.FETCH_TIMEOUT == 10.0
        assert settings.WORKER_TICK_INTERVAL == 1800.0
        assert settings.BALANCE_TICK_INTERVAL == 600.0
        assert settings.JOB_PACING == 2.0
        assert settings.WORKER_POOL_SIZE == 1
        assert settings.MAX_IN_FLIGHT_FETCHES is None
        assert settings.NOTIFICATION_FAILURE_POLICY == NotificationFailurePolicy.LOG

    def test_settings_loaded_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:////tmp/other.db")
        monkeypatch.setenv("WORKER_POOL_SIZE", "4")
        monkeypatch.setenv("POOL_NAMES", '["flexpool", "otherpool"]')
        monkeypatch.setenv("NOTIFICATION_FAILURE_POLICY", "fatal")

        settings = Settings()

        assert settings.DATABASE_URL == "sqlite:////tmp/other.db"
        assert settings.WORKER_POOL_SIZE == 4
        assert settings.POOL_NAMES == ["flexpool", "otherpool"]
        assert settings.NOTIFICATION_FAILURE_POLICY == NotificationFailurePolicy.FATAL

    def test_pool_size_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(WORKER_POOL_SIZE=0)

    def test_get_settings_returns_cached_instance(self):
        """Test get_settings returns cached Settings instance."""
        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2
        get_settings.cache_clear()


class TestMonitorConfig:
    """Test loading the TOML monitor config."""

    def test_load(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[flexpool]\naddress = "0xABC"\n\n'
            '[mailjet]\nkey = "k"\nsecret = "s"\nemail = "monitor@example.com"\n\n'
            '[[worker]]\nname = "rig1"\nnotify = "owner@example.com"\n\n'
            '[[worker]]\nname = "rig2"\nnotify = "other@example.com"\n'
        )

        config = load_monitor_config(path)

        assert config.flexpool.address == "0xABC"
        assert config.mailjet.is_configured is True
        assert [w.name for w in config.worker] == ["rig1", "rig2"]
        assert [w.notify for w in config.find_workers("rig2")] == ["other@example.com"]

    def test_mailjet_and_workers_optional(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[flexpool]\naddress = "0xABC"\n')

        config = load_monitor_config(path)

        assert config.mailjet.is_configured is False
        assert config.worker == []

    def test_find_workers_exact_match(self, monitor_config):
        assert [w.name for w in monitor_config.find_workers("rig1")] == ["rig1"]
        assert monitor_config.find_workers("RIG1") == []
        assert monitor_config.find_workers("rig") == []

    def test_find_workers_returns_every_contact(self, monitor_config):
        monitor_config.worker.append(WorkerInfo(name="rig1", notify="backup@example.com"))

        contacts = monitor_config.find_workers("rig1")

        assert [w.notify for w in contacts] == ["owner@example.com", "backup@example.com"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Config file not found"):
            load_monitor_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[flexpool\naddress = ")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_monitor_config(path)

    def test_missing_address(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[mailjet]\nkey = \"k\"\n")

        with pytest.raises(ConfigError, match="Invalid monitor config"):
            load_monitor_config(path)
