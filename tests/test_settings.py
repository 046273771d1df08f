"""Tests for environment-driven settings."""

from src.config.settings import Environment, LogLevel, Settings


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        for name in ("DATABASE_URL", "ENVIRONMENT", "LOG_LEVEL", "AUTO_CREATE_TABLES"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.DATABASE_URL == "sqlite+aiosqlite:///./allocation.db"
        assert settings.ENVIRONMENT == Environment.DEV
        assert settings.LOG_LEVEL == LogLevel.INFO
        assert settings.AUTO_CREATE_TABLES is True
        assert settings.is_production is False

    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "prod")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("CORS_ORIGINS", '["https://planner.example"]')
        settings = Settings(_env_file=None)
        assert settings.is_production is True
        assert settings.LOG_LEVEL == LogLevel.DEBUG
        assert settings.CORS_ORIGINS == ["https://planner.example"]
