"""Ordered storage backend chain with fallback."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Sequence

from app.core.config import Settings, get_settings
from app.core.errors import BackendAttemptError, DeliveryError
from app.core.logging import get_logger
from app.services.file_storage import LocalFilesystemStore
from app.services.google_drive import (
    REQUESTS_PER_UPLOAD,
    GoogleDriveCredentials,
    GoogleDriveStore,
)
from app.services.storage import StorageBackend, StoredObject

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    url: str
    source: str
    warning: str | None = None


class DeliveryPipeline:
    """Tries each backend in order until one stores the document.

    Args:
        backends: Backends in preference order, most durable first
        attempt_timeout: Upper bound in seconds for a single backend attempt
    """

    def __init__(self, backends: Sequence[StorageBackend], *, attempt_timeout: float = 8.0) -> None:
        self._backends = list(backends)
        self._attempt_timeout = attempt_timeout

    def get_backend(self, name: str) -> StorageBackend | None:
        for backend in self._backends:
            if backend.name == name:
                return backend
        return None

    async def _attempt(self, backend: StorageBackend, data: bytes, title: str) -> StoredObject:
        try:
            return await asyncio.wait_for(backend.upload(data, title), timeout=self._attempt_timeout)
        except BackendAttemptError:
            raise
        except asyncio.TimeoutError as exc:
            raise BackendAttemptError(
                backend.name, "timeout", f"no response within {self._attempt_timeout:g}s"
            ) from exc
        except Exception as exc:
            raise BackendAttemptError(backend.name, "upload", f"{type(exc).__name__}: {exc}") from exc

    async def deliver(self, data: bytes, title: str) -> DeliveryResult:
        """Store rendered PDF bytes on the first backend that succeeds.

        Raises:
            DeliveryError: If every configured backend fails.
        """
        failures: list[BackendAttemptError] = []

        for backend in self._backends:
            try:
                stored = await self._attempt(backend, data, title)
            except BackendAttemptError as exc:
                logger.warning(
                    "Backend %s failed at stage %s: %s", exc.backend, exc.stage, exc
                )
                failures.append(exc)
                continue

            warnings = []
            if failures:
                tried = ", ".join(failure.backend for failure in failures)
                warnings.append(f"Stored with {backend.name} after {tried} failed.")
            if stored.warning:
                warnings.append(stored.warning)

            logger.info("Delivered '%s' via %s", title, backend.name)
            return DeliveryResult(
                url=stored.url,
                source=backend.name,
                warning=" ".join(warnings) or None,
            )

        logger.error("All %d storage backends failed for '%s'", len(failures), title)
        raise DeliveryError(failures)


def build_backends(settings: Settings) -> list[StorageBackend]:
    """Instantiate backends in the order named by STORAGE_BACKENDS."""
    backends: list[StorageBackend] = []
    for name in settings.storage_backends:
        if name == "google_drive":
            credentials = GoogleDriveCredentials(
                settings.google_client_id,
                settings.google_client_secret,
                refresh_token=settings.google_refresh_token,
                access_token=settings.google_access_token,
            )
            backends.append(
                GoogleDriveStore(
                    credentials,
                    folder_id=settings.google_drive_folder_id,
                    # Each call gets a share of the attempt budget so one slow call
                    # still leaves room for the rest before the attempt times out.
                    timeout=settings.backend_timeout_seconds / REQUESTS_PER_UPLOAD,
                )
            )
        elif name == "local":
            backends.append(LocalFilesystemStore(settings.local_output_dir, settings.public_base_url))
        else:
            raise ValueError(f"Unknown storage backend '{name}'.")
    return backends


def build_pipeline(settings: Settings) -> DeliveryPipeline:
    return DeliveryPipeline(build_backends(settings), attempt_timeout=settings.backend_timeout_seconds)


_pipeline: DeliveryPipeline | None = None


def get_delivery_pipeline() -> DeliveryPipeline:
    """Lazy initialization of the process-wide delivery pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline(get_settings())
    return _pipeline


def reset_pipeline() -> None:
    """Drop the cached pipeline. Call after changing storage settings."""
    global _pipeline
    _pipeline = None
