import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from app.core import config


class TestSettings(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = Path(tempfile.mkdtemp())
        self.env_file = self.temp_dir / "md2pdf.env"
        config.reset_settings()

    def tearDown(self) -> None:
        config.reset_settings()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _env(self, **values: str) -> dict:
        return {"MD2PDF_ENV_FILE": str(self.env_file), **values}

    def test_defaults(self) -> None:
        with patch.dict(os.environ, self._env(), clear=True):
            settings = config.get_settings()

        self.assertEqual(settings.storage_backends, ("google_drive", "local"))
        self.assertEqual(settings.response_mode, "upload")
        self.assertEqual(settings.backend_timeout_seconds, 8.0)
        self.assertEqual(settings.local_output_dir, "./public/pdfs")
        self.assertIsNone(settings.google_refresh_token)
        self.assertEqual(settings.cors_origins, ("*",))

    def test_settings_are_cached_until_reset(self) -> None:
        with patch.dict(os.environ, self._env(RESPONSE_MODE="direct"), clear=True):
            first = config.get_settings()
            os.environ["RESPONSE_MODE"] = "upload"
            self.assertIs(config.get_settings(), first)
            config.reset_settings()
            self.assertEqual(config.get_settings().response_mode, "upload")

    def test_env_file_values_do_not_override_environment(self) -> None:
        self.env_file.write_text(
            "# comment\n"
            "GOOGLE_REFRESH_TOKEN='from-file'\n"
            "PUBLIC_BASE_URL=https://pdf.example.com/\n"
            "STORAGE_BACKENDS=local\n",
            encoding="utf-8",
        )
        with patch.dict(os.environ, self._env(STORAGE_BACKENDS="google_drive, local"), clear=True):
            settings = config.get_settings()

        self.assertEqual(settings.google_refresh_token, "from-file")
        self.assertEqual(settings.public_base_url, "https://pdf.example.com")
        self.assertEqual(settings.storage_backends, ("google_drive", "local"))

    def test_invalid_values_fail_fast(self) -> None:
        for key, value in (
            ("RESPONSE_MODE", "email"),
            ("STORAGE_BACKENDS", "s3,local"),
            ("BACKEND_TIMEOUT_SECONDS", "soon"),
            ("BACKEND_TIMEOUT_SECONDS", "0"),
        ):
            with self.subTest(key=key, value=value):
                config.reset_settings()
                with patch.dict(os.environ, self._env(**{key: value}), clear=True):
                    with self.assertRaises(ValueError):
                        config.get_settings()

    def test_working_directory_env_file_is_not_read_under_tests(self) -> None:
        self.env_file.write_text("RESPONSE_MODE=bogus\nSTORAGE_BACKENDS=s3\n")
        suite_env_file = os.environ["MD2PDF_ENV_FILE"]
        self.assertFalse(Path(suite_env_file).exists())

        cwd = os.getcwd()
        os.chdir(self.temp_dir)
        try:
            with patch.dict(os.environ, {"MD2PDF_ENV_FILE": suite_env_file}, clear=True):
                settings = config.get_settings()
        finally:
            os.chdir(cwd)

        self.assertEqual(settings.response_mode, "upload")
        self.assertEqual(settings.storage_backends, ("google_drive", "local"))


if __name__ == "__main__":
    unittest.main()
