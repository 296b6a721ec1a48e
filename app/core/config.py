"""Runtime configuration and environment loading."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_SETTINGS: "Settings | None" = None

KNOWN_BACKENDS = ("google_drive", "local")
RESPONSE_MODES = ("upload", "direct")


def reset_settings() -> None:
    """Reset cached settings. Call after changing environment variables."""
    global _SETTINGS
    _SETTINGS = None


@dataclass(frozen=True)
class Settings:
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_redirect_uri: str = "http://localhost:3000/auth/callback"
    google_refresh_token: str | None = None
    google_access_token: str | None = None
    google_drive_folder_id: str | None = None
    storage_backends: tuple[str, ...] = KNOWN_BACKENDS
    local_output_dir: str = "./public/pdfs"
    public_base_url: str = "http://localhost:3000"
    response_mode: str = "upload"
    backend_timeout_seconds: float = 8.0
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def load_env_file(path: str, *, override: bool = False) -> None:
    """Load key=value pairs from a .env-style file into os.environ.

    Keeps existing env values unless override=True.
    """
    env_path = Path(path)
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if not override and key in os.environ:
            continue
        os.environ[key] = value


def _optional_env(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_backends() -> tuple[str, ...]:
    backends = _env_list("STORAGE_BACKENDS", KNOWN_BACKENDS)
    unknown = [name for name in backends if name not in KNOWN_BACKENDS]
    if unknown:
        raise ValueError(
            f"Unknown storage backend(s) {', '.join(unknown)}. "
            f"Must be among: {', '.join(KNOWN_BACKENDS)}"
        )
    if not backends:
        raise ValueError("STORAGE_BACKENDS must name at least one backend.")
    return backends


def _parse_response_mode() -> str:
    mode = os.getenv("RESPONSE_MODE", "upload").strip().lower() or "upload"
    if mode not in RESPONSE_MODES:
        raise ValueError(
            f"Invalid RESPONSE_MODE '{mode}'. Must be one of: {', '.join(RESPONSE_MODES)}"
        )
    return mode


def _parse_timeout() -> float:
    raw = os.getenv("BACKEND_TIMEOUT_SECONDS", "8").strip() or "8"
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise ValueError(f"BACKEND_TIMEOUT_SECONDS must be a number, got '{raw}'.") from exc
    if timeout <= 0:
        raise ValueError("BACKEND_TIMEOUT_SECONDS must be positive.")
    return timeout


def get_settings() -> Settings:
    """Load settings from md2pdf.env and environment variables."""
    global _SETTINGS
    if _SETTINGS is not None:
        return _SETTINGS

    env_file = os.getenv("MD2PDF_ENV_FILE", "md2pdf.env")
    load_env_file(env_file)

    _SETTINGS = Settings(
        google_client_id=_optional_env("GOOGLE_CLIENT_ID"),
        google_client_secret=_optional_env("GOOGLE_CLIENT_SECRET"),
        google_redirect_uri=(
            os.getenv("GOOGLE_REDIRECT_URI", "").strip()
            or "http://localhost:3000/auth/callback"
        ),
        google_refresh_token=_optional_env("GOOGLE_REFRESH_TOKEN"),
        google_access_token=_optional_env("GOOGLE_ACCESS_TOKEN"),
        google_drive_folder_id=_optional_env("GOOGLE_DRIVE_FOLDER_ID"),
        storage_backends=_parse_backends(),
        local_output_dir=os.getenv("LOCAL_OUTPUT_DIR", "").strip() or "./public/pdfs",
        public_base_url=(
            os.getenv("PUBLIC_BASE_URL", "").strip().rstrip("/") or "http://localhost:3000"
        ),
        response_mode=_parse_response_mode(),
        backend_timeout_seconds=_parse_timeout(),
        cors_origins=_env_list("CORS_ORIGINS", ("*",)),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
    return _SETTINGS
