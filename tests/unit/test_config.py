"""Unit tests for configuration loading."""

import pytest

from stagingreview.config import AppConfig, get_config, reset_config


class TestAppConfig:
    def test_defaults(self, monkeypatch):
        for name in ("STORE_API_URL", "SCRAPER_API_URL", "REVIEWER_NAME", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env()

        assert config.store.base_url == "http://localhost:8080/api/admin"
        assert config.scraper.base_url == "http://localhost:8081/api"
        assert config.store.timeout_seconds == 30.0
        assert config.review.reviewer == "admin"
        assert config.review.confirm_deletes is True
        assert config.log_level == "INFO"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("STORE_API_URL", "https://store.example.com/api/admin/")
        monkeypatch.setenv("STORE_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("REVIEWER_NAME", "alice")
        monkeypatch.setenv("CONFIRM_DELETES", "false")
        monkeypatch.setenv("JSON_LOGS", "true")
        monkeypatch.setenv("LOG_LEVEL", "warning")

        config = AppConfig.from_env()

        assert config.store.base_url == "https://store.example.com/api/admin"
        assert config.store.timeout_seconds == 5.0
        assert config.review.reviewer == "alice"
        assert config.review.confirm_deletes is False
        assert config.json_logs is True
        assert config.log_level == "WARNING"

    def test_action_notes_are_fixed(self):
        review = AppConfig.from_env().review

        assert review.approve_notes == "Approved via UI"
        assert review.reject_notes == "Rejected via UI"
        assert review.bulk_approve_notes == "Bulk approved via UI"

    def test_invalid_url_raises(self, monkeypatch):
        monkeypatch.setenv("STORE_API_URL", "localhost:8080")

        with pytest.raises(ValueError, match="STORE_API_URL"):
            AppConfig.from_env()

    @pytest.mark.parametrize("value", ["abc", "0", "-3"])
    def test_invalid_timeout_raises(self, monkeypatch, value):
        monkeypatch.setenv("SCRAPER_TIMEOUT_SECONDS", value)

        with pytest.raises(ValueError, match="SCRAPER_TIMEOUT_SECONDS"):
            AppConfig.from_env()


class TestConfigSingleton:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reset_rereads_environment(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("REVIEWER_NAME", "bob")
        reset_config()

        second = get_config()

        assert second is not first
        assert second.review.reviewer == "bob"
