import os
import unittest
from unittest.mock import patch

from engage.config import Settings


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)
        self.assertEqual(settings.api_prefix, "/api")
        self.assertIsNone(settings.database_url)
        self.assertFalse(settings.use_in_memory_backends)
        self.assertEqual(settings.leadergrid_cooldown_seconds, 180)

    def test_reads_environment(self):
        env = {
            "DATABASE_URL": "sqlite+pysqlite:///:memory:",
            "REDIS_URL": "redis://localhost:6379/0",
            "S3_BUCKET": "engage-uploads",
            "HISTORY_LIMIT": "25",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)
        self.assertEqual(settings.database_url, "sqlite+pysqlite:///:memory:")
        self.assertEqual(settings.redis_url, "redis://localhost:6379/0")
        self.assertEqual(settings.s3_bucket, "engage-uploads")
        self.assertEqual(settings.history_limit, 25)

    def test_in_memory_toggle_accepts_prefixed_name(self):
        for name in ("ENGAGE_USE_IN_MEMORY_BACKENDS", "USE_IN_MEMORY_BACKENDS"):
            with patch.dict(os.environ, {name: "true"}, clear=True):
                self.assertTrue(Settings(_env_file=None).use_in_memory_backends)

    def test_fields_can_be_passed_by_name(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None, use_in_memory_backends=True)
        self.assertTrue(settings.use_in_memory_backends)


if __name__ == "__main__":
    unittest.main()
