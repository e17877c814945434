import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from weightrack.config import DEFAULT_API_URL, Settings


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.env_file = Path(self.tmpdir.name) / ".env"

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_defaults(self) -> None:
        with patch.dict(os.environ, {"BOT_TOKEN": "token"}, clear=True):
            settings = Settings.from_env(self.env_file)
        self.assertEqual(settings.bot_token, "token")
        self.assertEqual(settings.api_url, DEFAULT_API_URL)
        self.assertEqual(settings.api_timeout, 10.0)
        self.assertEqual(settings.log_level, "INFO")

    def test_env_file_does_not_override_environment(self) -> None:
        self.env_file.write_text(
            "# comment\nBOT_TOKEN=from-file\nWEIGHT_API_URL=http://localhost:5000/api/weights\nWEIGHT_API_TIMEOUT=2.5\n"
        )
        with patch.dict(os.environ, {"BOT_TOKEN": "from-env", "LOG_LEVEL": "debug"}, clear=True):
            settings = Settings.from_env(self.env_file)
        self.assertEqual(settings.bot_token, "from-env")
        self.assertEqual(settings.api_url, "http://localhost:5000/api/weights")
        self.assertEqual(settings.api_timeout, 2.5)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_missing_token(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(RuntimeError):
                Settings.from_env(self.env_file)

    def test_bad_timeout(self) -> None:
        for value in ("soon", "0", "-1"):
            with self.subTest(value=value):
                with patch.dict(os.environ, {"BOT_TOKEN": "t", "WEIGHT_API_TIMEOUT": value}, clear=True):
                    with self.assertRaises(RuntimeError):
                        Settings.from_env(self.env_file)


if __name__ == "__main__":
    unittest.main()
