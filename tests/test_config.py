import logging
import tempfile
import unittest
from logging.handlers import RotatingFileHandler
from pathlib import Path

from collegeadmin.config import Settings, configure_logging, default_data_dir, load_settings
from collegeadmin.errors import ConfigurationError


class TestLoadSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = load_settings(env={})
        self.assertEqual(settings.backend, "memory")
        self.assertEqual(settings.data_dir, default_data_dir())
        self.assertEqual(settings.timeout, 30.0)
        self.assertEqual(settings.log_level, "WARNING")
        self.assertIsNone(settings.log_file)
        settings.validate()

    def test_packaged_mock_data_exists(self) -> None:
        for table in ("student", "course", "faculty", "schedule", "enrollment"):
            self.assertTrue((default_data_dir() / f"{table}.json").exists(), table)

    def test_environment_values(self) -> None:
        settings = load_settings(
            env={
                "COLLEGEADMIN_BACKEND": "Remote",
                "RECORD_STORE_URL": "https://records.example.com/api/",
                "RECORD_STORE_API_KEY": "k",
                "RECORD_STORE_PROJECT_ID": "p",
                "RECORD_STORE_TIMEOUT": "12.5",
                "LOG_LEVEL": "debug",
                "COLLEGEADMIN_DATA_DIR": "/tmp/mock",
            }
        )
        self.assertEqual(settings.backend, "remote")
        self.assertEqual(settings.store_url, "https://records.example.com/api")
        self.assertEqual((settings.api_key, settings.project_id), ("k", "p"))
        self.assertEqual(settings.timeout, 12.5)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.data_dir, Path("/tmp/mock"))
        settings.validate()

    def test_bad_timeout(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_settings(env={"RECORD_STORE_TIMEOUT": "soon"})
        with self.assertRaises(ConfigurationError):
            Settings(timeout=0).validate()

    def test_remote_requires_url(self) -> None:
        with self.assertRaises(ConfigurationError):
            Settings(backend="remote").validate()

    def test_unknown_backend(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_settings(env={"COLLEGEADMIN_BACKEND": "sqlite"}).validate()


class TestConfigureLogging(unittest.TestCase):
    def test_log_file_handler(self) -> None:
        root = logging.getLogger()
        before = list(root.handlers)
        with tempfile.TemporaryDirectory() as d:
            log_path = Path(d) / "app.log"
            try:
                configure_logging(Settings(log_level="INFO", log_file=str(log_path)))
                added = [h for h in root.handlers if h not in before]
                self.assertTrue(any(isinstance(h, RotatingFileHandler) for h in added))

                logging.getLogger("collegeadmin.test").warning("hello from the test")
                for h in added:
                    h.flush()
                self.assertIn("hello from the test", log_path.read_text(encoding="utf-8"))
            finally:
                for h in root.handlers[:]:
                    if h not in before:
                        root.removeHandler(h)
                        h.close()


if __name__ == "__main__":
    unittest.main()
