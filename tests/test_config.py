import os
import unittest
from unittest.mock import patch

from quizroom.config import (
    DevelopmentSettings,
    ProductionSettings,
    Settings,
    TestingSettings,
    get_settings,
)


class SettingsTests(unittest.TestCase):
    def test_allowed_hosts_from_comma_separated_env(self):
        with patch.dict(os.environ, {"ALLOWED_HOSTS": "quiz.example.com, api.example.com"}):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.ALLOWED_HOSTS, ["quiz.example.com", "api.example.com"])

    def test_development_falls_back_to_sqlite(self):
        settings = DevelopmentSettings(_env_file=None, DATABASE_URL=None)
        self.assertEqual(settings.database_url, "sqlite:///./quizroom.db")

    def test_production_builds_postgres_url(self):
        settings = Settings(
            _env_file=None,
            ENVIRONMENT="production",
            DB_USER="quiz",
            DB_PASSWORD="p@ss word",
            DB_HOST="db",
            DB_NAME="quizroom"
        )
        self.assertEqual(
            settings.database_url,
            "postgresql://quiz:p%40ss+word@db:5432/quizroom"
        )

    def test_production_requires_secrets(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                ProductionSettings(_env_file=None)

    def test_testing_profile_uses_in_memory_database(self):
        settings = TestingSettings(_env_file=None)
        self.assertEqual(settings.database_url, "sqlite+aiosqlite:///:memory:")
        self.assertFalse(settings.ENABLE_RATE_LIMITING)

    def test_profile_selected_by_environment(self):
        get_settings.cache_clear()
        try:
            with patch.dict(os.environ, {"ENVIRONMENT": "testing"}):
                self.assertIsInstance(get_settings(), TestingSettings)
        finally:
            get_settings.cache_clear()


if __name__ == "__main__":
    unittest.main()
