"""
Tests for environment-driven configuration.
"""

from utils.config import Config


class TestConfig:

    def test_defaults(self, monkeypatch):
        for name in ("PORT", "DEBUG", "ALLOWED_ORIGINS", "GOOGLE_PLACES_API_KEY", "ACCESS_PASS_TTL_MINUTES"):
            monkeypatch.delenv(name, raising=False)

        config = Config.load()

        assert config.port == 8000
        assert config.debug is False
        assert config.allowed_origins == ["http://localhost:8000"]
        assert config.google_places_api_key is None
        assert config.access_pass_ttl_minutes == 30

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
        monkeypatch.setenv("GOOGLE_PLACES_API_KEY", "key-123")

        config = Config.load()

        assert config.port == 9000
        assert config.debug is True
        assert config.allowed_origins == ["https://a.example", "https://b.example"]
        assert config.google_places_api_key == "key-123"

    def test_to_dict_redacts_secrets(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_PLACES_API_KEY", "key-123")
        data = Config.load().to_dict()
        assert data["google_places_api_key"] == "***"
        assert data["access_pass_secret"] == "***"
