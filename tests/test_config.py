import os
import unittest
from unittest import mock

from medtracker.config import Settings


class TestSettings(unittest.TestCase):
    def test_environment_overrides(self):
        env = {
            "MEDTRACKER_PORT": "9000",
            "MEDTRACKER_POLL_INTERVAL_SECONDS": "2.5",
            "MEDTRACKER_REFILL_SETTLE_SECONDS": "not-a-number",
            "MEDTRACKER_CORS_ALLOW_ORIGINS": "http://a.test, http://b.test",
            "MEDTRACKER_ENABLE_DOCS": "0",
        }
        with mock.patch.dict(os.environ, env):
            settings = Settings()

        self.assertEqual(settings.server_port, 9000)
        self.assertEqual(settings.poll_interval_seconds, 2.5)
        self.assertEqual(settings.refill_settle_seconds, 30.0)
        self.assertEqual(settings.cors_allow_origins, ["http://a.test", "http://b.test"])
        self.assertIsNone(settings.resolved_docs_url)

    def test_store_configured_needs_both_credentials(self):
        with mock.patch.dict(os.environ, {"SUPABASE_URL": "https://example.supabase.co", "SUPABASE_KEY": ""}):
            self.assertFalse(Settings().store_configured)
        with mock.patch.dict(os.environ, {"SUPABASE_URL": "https://example.supabase.co", "SUPABASE_KEY": "key"}):
            self.assertTrue(Settings().store_configured)

    def test_wildcard_cors(self):
        with mock.patch.dict(os.environ, {"MEDTRACKER_CORS_ALLOW_ORIGINS": "*"}):
            self.assertEqual(Settings().cors_allow_origins, ["*"])


if __name__ == "__main__":
    unittest.main()
