import shutil
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from app.core.errors import BackendAttemptError
from app.services.file_storage import (
    SAFE_FILE_NAME,
    LocalFilesystemStore,
    resolve_download_path,
    save_pdf_file,
)
from app.services.storage import make_object_name


class TestObjectNames(unittest.TestCase):
    def test_unsafe_characters_are_replaced(self) -> None:
        name = make_object_name("My Report: Q1/Q2!", now=datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))
        self.assertTrue(name.startswith("My_Report__Q1_Q2__20240501120000_"))
        self.assertTrue(name.endswith(".pdf"))
        self.assertRegex(name, SAFE_FILE_NAME)

    def test_same_title_gives_distinct_names(self) -> None:
        self.assertNotEqual(make_object_name("Same"), make_object_name("Same"))

    def test_empty_title_uses_placeholder(self) -> None:
        self.assertTrue(make_object_name("   ").startswith("document_"))


class TestFileStorage(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_save_pdf_file_creates_directory(self) -> None:
        target_dir = self.temp_dir / "nested" / "pdfs"
        result_path = save_pdf_file(target_dir, "doc_20240101000000_abcdef12.pdf", b"%PDF-1.4 test")

        self.assertTrue(result_path.exists())
        self.assertEqual(result_path.read_bytes(), b"%PDF-1.4 test")

    def test_resolve_download_path(self) -> None:
        file_name = "doc_20240101000000_abcdef12.pdf"
        save_pdf_file(self.temp_dir, file_name, b"%PDF")

        self.assertEqual(resolve_download_path(self.temp_dir, file_name), self.temp_dir / file_name)
        self.assertIsNone(resolve_download_path(self.temp_dir, "doc_20240101000000_00000000.pdf"))
        self.assertIsNone(resolve_download_path(self.temp_dir, "../etc/passwd"))
        self.assertIsNone(resolve_download_path(self.temp_dir, "notes.txt"))


class TestLocalFilesystemStore(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def test_upload_writes_file_and_returns_public_url(self) -> None:
        store = LocalFilesystemStore(self.temp_dir, "http://example.test/")

        stored = await store.upload(b"%PDF-1.4 data", "Hello World")

        self.assertTrue(stored.url.startswith("http://example.test/downloads/Hello_World_"))
        self.assertIsNone(stored.warning)
        file_name = stored.url.rsplit("/", 1)[-1]
        self.assertEqual((self.temp_dir / file_name).read_bytes(), b"%PDF-1.4 data")

    async def test_unwritable_directory_is_backend_failure(self) -> None:
        blocker = self.temp_dir / "blocker"
        blocker.write_bytes(b"")
        store = LocalFilesystemStore(blocker / "pdfs", "http://example.test")

        with self.assertRaises(BackendAttemptError) as ctx:
            await store.upload(b"%PDF", "x")
        self.assertEqual(ctx.exception.backend, "local")
        self.assertEqual(ctx.exception.stage, "write")


if __name__ == "__main__":
    unittest.main()
