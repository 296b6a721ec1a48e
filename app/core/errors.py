"""Error types raised by the conversion pipeline."""

from __future__ import annotations


class ConversionServiceError(Exception):
    """Base class for all service errors."""


class InputError(ConversionServiceError, ValueError):
    """Missing or invalid markdown, or an unsupported content type."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class RenderError(ConversionServiceError):
    """The PDF layout engine failed while building the document."""


class BackendAttemptError(ConversionServiceError):
    """A single storage backend failed; the delivery chain moves on."""

    def __init__(self, backend: str, stage: str, message: str) -> None:
        super().__init__(f"{backend} failed during {stage}: {message}")
        self.backend = backend
        self.stage = stage


class DeliveryError(ConversionServiceError):
    """Every configured storage backend failed."""

    def __init__(self, failures: list[BackendAttemptError]) -> None:
        summary = "; ".join(str(failure) for failure in failures) or "no backends configured"
        super().__init__(f"All storage backends failed: {summary}")
        self.failures = failures
