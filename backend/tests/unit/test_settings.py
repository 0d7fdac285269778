"""Unit tests for environment-driven settings."""

from docflow.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        """Test workflow defaults when nothing is configured"""
        for name in (
            "BULK_SEND_MAX_DOCUMENTS",
            "DISTRICT_BA_CODE",
            "JWT_ALGORITHM",
            "JWT_EXPIRY_MINUTES",
            "IDENTITY_SYNC_KEY",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.BULK_SEND_MAX_DOCUMENTS == 50
        assert settings.DISTRICT_BA_CODE == 1059
        assert settings.JWT_ALGORITHM == "HS256"
        assert settings.JWT_EXPIRY_MINUTES == 60
        assert settings.DEFAULT_PAGE_SIZE == 20
        assert settings.MAX_PAGE_SIZE == 100
        assert settings.IDENTITY_SYNC_KEY is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BULK_SEND_MAX_DOCUMENTS", "10")
        monkeypatch.setenv("DISTRICT_BA_CODE", "2000")

        settings = Settings(_env_file=None)

        assert settings.BULK_SEND_MAX_DOCUMENTS == 10
        assert settings.DISTRICT_BA_CODE == 2000

    def test_manager_keywords_are_split_and_lowered(self, monkeypatch):
        monkeypatch.setenv("BRANCH_MANAGER_POSITION_KEYWORDS", "หัวหน้า, Manager ,,")

        settings = Settings(_env_file=None)

        assert settings.manager_position_keywords == ["หัวหน้า", "manager"]

    def test_cors_origins_list(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example")

        assert Settings(_env_file=None).cors_origins == ["http://a.example", "http://b.example"]

    def test_get_settings_is_cached(self):
        """Test get_settings returns one instance until cache_clear"""
        first = get_settings()
        assert get_settings() is first

        get_settings.cache_clear()
        assert get_settings() is not first
