"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from config import (
    AdminConfig,
    AppConfig,
    CaptureConfig,
    DatabaseConfig,
    LicenseConfig,
    ClientConfig,
    DEFAULT_ADMIN_PASSWORD,
    get_config,
    reload_config,
)


class TestDatabaseConfig:
    def test_env_aliases(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "db.internal")
        monkeypatch.setenv("DB_PORT", "6543")
        monkeypatch.setenv("POSTGRES_DB", "licenses")
        monkeypatch.setenv("POSTGRES_USER", "svc")
        monkeypatch.setenv("POSTGRES_PASSWORD", "pw")

        config = DatabaseConfig()

        assert config.connection_string == "postgresql://svc:pw@db.internal:6543/licenses"


class TestAdminConfig:
    def test_default_password_flagged(self, monkeypatch):
        monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
        config = AdminConfig()
        assert config.password == DEFAULT_ADMIN_PASSWORD
        assert config.uses_default_password is True

    def test_env_password(self, monkeypatch):
        monkeypatch.setenv("ADMIN_PASSWORD", "hunter2-but-longer")
        config = AdminConfig()
        assert config.password == "hunter2-but-longer"
        assert config.uses_default_password is False


class TestLicenseConfig:
    def test_defaults(self):
        config = LicenseConfig()
        assert (config.key_segments, config.key_segment_length, config.max_key_attempts) == (4, 4, 5)

    @pytest.mark.parametrize("field,value", [
        ("key_segments", 0),
        ("max_key_attempts", -1),
        ("key_segment_length", 0),
        ("key_segment_length", 33),
    ])
    def test_rejects_bad_values(self, field, value):
        with pytest.raises(ValidationError):
            LicenseConfig(**{field: value})


class TestCaptureConfig:
    def test_defaults(self):
        config = CaptureConfig()
        assert config.min_selection_px == 5
        assert config.filename_prefix == "capture"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CAPTURE_MIN_SELECTION_PX", "12")
        assert CaptureConfig().min_selection_px == 12

    def test_rejects_negative_threshold(self):
        with pytest.raises(ValidationError):
            CaptureConfig(min_selection_px=-1)

    def test_rejects_zero_interval(self):
        with pytest.raises(ValidationError):
            CaptureConfig(frame_interval_ms=0)


def test_client_defaults():
    assert ClientConfig().server_url == "http://localhost:8000"


class TestAppConfig:
    def test_production_refuses_default_password(self):
        with pytest.raises(ValidationError):
            AppConfig(environment="production", admin=AdminConfig(password=DEFAULT_ADMIN_PASSWORD))

    def test_production_with_custom_password(self):
        config = AppConfig(environment="production", admin=AdminConfig(password="something-else"))
        assert config.is_production()

    def test_reload_config_picks_up_env(self, monkeypatch):
        original = get_config()
        try:
            monkeypatch.setenv("CLIENT_TIMEOUT", "3.5")
            assert reload_config().client.timeout == 3.5
            assert get_config().client.timeout == 3.5
        finally:
            monkeypatch.delenv("CLIENT_TIMEOUT")
            reload_config()
        assert get_config() is not original
