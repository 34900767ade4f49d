"""
Unit tests for settings.
"""
from siteaudit.config import Settings


class TestSettings:

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, CORS_ORIGINS="http://a.test, http://b.test,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_single_cors_origin(self):
        assert Settings(_env_file=None).cors_origins_list == ["http://localhost:3000"]

    def test_async_database_url(self):
        settings = Settings(_env_file=None, DATABASE_URL="postgresql://u:p@db:5432/siteaudit")
        assert settings.async_database_url == "postgresql+asyncpg://u:p@db:5432/siteaudit"
