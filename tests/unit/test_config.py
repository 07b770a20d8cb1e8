"""Unit tests for configuration loading."""

import pytest
from pydantic import ValidationError

from copro.config import Settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "DUE_DATE_OFFSET_DAYS", "LOG_LEVEL", "LOG_FILE"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite:///./copro.db"
        assert settings.due_date_offset_days == 0
        assert settings.log_level == "INFO"
        assert settings.log_file == "logs/server.log"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://copro@localhost/copro")
        monkeypatch.setenv("DUE_DATE_OFFSET_DAYS", "30")

        settings = Settings(_env_file=None)

        assert settings.database_url == "postgresql://copro@localhost/copro"
        assert settings.due_date_offset_days == 30

    def test_reads_env_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DUE_DATE_OFFSET_DAYS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("DUE_DATE_OFFSET_DAYS=15\nUNRELATED_KEY=ignored\n")

        settings = Settings(_env_file=str(env_file))

        assert settings.due_date_offset_days == 15

    def test_negative_due_date_offset_rejected(self, monkeypatch):
        monkeypatch.setenv("DUE_DATE_OFFSET_DAYS", "-1")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
