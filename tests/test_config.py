import os
import tempfile
import unittest
from unittest.mock import patch

from fitforge.config import DEFAULT_DB_PATH, get_api_key, get_db_path, load_config


class ConfigTests(unittest.TestCase):
    def test_missing_file_returns_defaults(self):
        config = load_config("/nonexistent/config.yaml")
        self.assertEqual(config["claude"]["timeout"], 30)
        self.assertEqual(get_db_path(config), DEFAULT_DB_PATH)

    def test_file_values_override_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "config.yaml")
            with open(path, "w", encoding="utf-8") as f:
                f.write("claude:\n  model: claude-custom\ndatabase:\n  path: /tmp/custom.db\n")

            config = load_config(path)

        self.assertEqual(config["claude"]["model"], "claude-custom")
        self.assertEqual(config["claude"]["api_key_env"], "ANTHROPIC_API_KEY")
        self.assertEqual(config["generation"]["plan_temperature"], 0.7)
        self.assertEqual(get_db_path(config), "/tmp/custom.db")

    def test_api_key_from_named_variable(self):
        config = {"claude": {"api_key_env": "FITFORGE_TEST_KEY"}}
        with patch("fitforge.config.load_dotenv"), patch.dict(os.environ, {"FITFORGE_TEST_KEY": "sk-123"}):
            self.assertEqual(get_api_key(config), "sk-123")


if __name__ == "__main__":
    unittest.main()
