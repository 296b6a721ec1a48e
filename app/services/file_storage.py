"""Local filesystem storage for rendered PDFs."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from app.core.errors import BackendAttemptError
from app.core.logging import get_logger
from app.services.storage import StoredObject, make_object_name

logger = get_logger(__name__)

# Matches names produced by make_object_name; anything else is refused when serving.
SAFE_FILE_NAME = re.compile(r"^[A-Za-z0-9_]+_\d{14}_[0-9a-f]{8}\.pdf$")


def save_pdf_file(output_dir: Path, file_name: str, data: bytes) -> Path:
    """Write PDF bytes to {output_dir}/{file_name}.

    Args:
        output_dir: Directory holding delivered PDFs (created if missing)
        file_name: Unique file name for this document
        data: Rendered PDF bytes

    Returns:
        Absolute path to the saved file
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    file_path = output_dir / file_name

    with open(file_path, "wb") as dest:
        dest.write(data)

    return file_path.resolve()


def resolve_download_path(output_dir: str | Path, file_name: str) -> Path | None:
    """Map a requested download name to a stored file.

    Returns None for names that were not generated by this service or no
    longer exist on disk.
    """
    if not SAFE_FILE_NAME.match(file_name):
        return None
    file_path = Path(output_dir) / file_name
    if not file_path.is_file():
        return None
    return file_path


class LocalFilesystemStore:
    """Terminal backend of the delivery chain; needs no credentials."""

    name = "local"

    def __init__(self, output_dir: str | Path, public_base_url: str) -> None:
        self._output_dir = Path(output_dir)
        self._public_base_url = public_base_url.rstrip("/")

    async def upload(self, data: bytes, title: str) -> StoredObject:
        file_name = make_object_name(title)
        try:
            file_path = await asyncio.to_thread(save_pdf_file, self._output_dir, file_name, data)
        except OSError as exc:
            raise BackendAttemptError(self.name, "write", str(exc)) from exc

        logger.info("Saved PDF locally at %s", file_path)
        return StoredObject(url=f"{self._public_base_url}/downloads/{file_name}")
