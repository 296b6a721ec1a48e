"""Storage backend interface shared by the delivery chain."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

PDF_CONTENT_TYPE = "application/pdf"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True)
class StoredObject:
    url: str
    warning: str | None = None


class StorageBackend(Protocol):
    """A destination that accepts PDF bytes and returns a download URL."""

    name: str

    async def upload(self, data: bytes, title: str) -> StoredObject:
        """Store ``data`` and return where it can be fetched.

        Raises:
            BackendAttemptError: On missing credentials or any storage failure.
        """
        ...


def make_object_name(title: str, *, now: datetime | None = None) -> str:
    """Build a unique ``.pdf`` object name from a document title.

    Non-alphanumeric characters become underscores; a UTC timestamp and a short
    random id keep repeated uploads of the same title from overwriting each other.
    """
    safe_title = _UNSAFE_CHARS.sub("_", title.strip()) or "document"
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")
    return f"{safe_title[:100]}_{stamp}_{uuid.uuid4().hex[:8]}.pdf"
