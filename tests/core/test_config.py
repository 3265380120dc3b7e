"""Settings + load_settings 单元测试"""

from pathlib import Path

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs
from taskhub.core.config import Settings, get_db_path, load_settings

_ENV_VARS = [
    "TASKHUB_DATA_DIR",
    "TASKHUB_DB_PATH",
    "TASKHUB_CACHE_TTL_S",
    "TASKHUB_JOB_ATTEMPTS",
    "TASKHUB_JOB_BACKOFF_S",
    "TASKHUB_QUEUE_CONCURRENCY",
    "TASKHUB_BUS_MAX_DELIVERIES",
    "TASKHUB_REMINDER_LEAD_H",
    "TASKHUB_REMINDER_DEDUPE",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    def test_defaults(self, clean_env):
        settings = Settings()
        assert settings.cache_ttl_s == 300
        assert settings.job_attempts == 3
        assert settings.job_backoff_s == 1.0
        assert settings.reminder_lead_h == 24
        assert settings.reminder_dedupe is False

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(cache_ttl_s=0)


class TestLoadSettings:
    def test_db_path_follows_data_dir(self, clean_env, tmp_path):
        clean_env.setenv("TASKHUB_DATA_DIR", str(tmp_path))
        assert Path(get_db_path()) == tmp_path / "sqlite" / "taskhub.db"
        assert Path(load_settings().db_path) == tmp_path / "sqlite" / "taskhub.db"

    def test_env_overrides(self, clean_env):
        clean_env.setenv("TASKHUB_DB_PATH", "/tmp/x.db")
        clean_env.setenv("TASKHUB_CACHE_TTL_S", "60")
        clean_env.setenv("TASKHUB_JOB_BACKOFF_S", "0.5")
        clean_env.setenv("TASKHUB_REMINDER_DEDUPE", "true")

        settings = load_settings()
        assert settings.db_path == "/tmp/x.db"
        assert settings.cache_ttl_s == 60
        assert settings.job_backoff_s == 0.5
        assert settings.reminder_dedupe is True

    def test_invalid_number_falls_back(self, clean_env):
        clean_env.setenv("TASKHUB_JOB_ATTEMPTS", "three")

        with capture_logs() as logs:
            settings = load_settings()

        assert settings.job_attempts == 3
        assert any(
            entry["event"] == "invalid_config_value"
            and entry["env_var"] == "TASKHUB_JOB_ATTEMPTS"
            for entry in logs
        )
