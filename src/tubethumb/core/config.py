"""Application configuration utilities.

This module defines application settings loaded from environment variables and
ensures the directories backing history storage and downloads exist at startup.
"""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application settings loaded from the environment.

    Notes
    -----
    - Environment variables are read with the ``TT_`` prefix (e.g., ``TT_HISTORY_CAPACITY``).
    - The Gemini credential is also accepted as plain ``GEMINI_API_KEY`` or ``API_KEY``;
      when none is set the AI analysis feature is disabled rather than failing.
    - Downloads saved to disk are sandboxed under ``allowed_base_dir``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TT_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="TubeThumb Pro", description="Application display name")
    debug: bool = Field(default=False, description="Enable debug mode")

    history_path: Path = Field(
        default=Path.home() / ".tubethumb" / "storage.json",
        description="JSON key-value file backing the lookup history",
    )
    history_key: str = Field(default="thumb_history", description="Storage key holding the history list")
    history_capacity: int = Field(default=9, ge=1, description="Maximum number of history records kept")

    settle_delay_sec: float = Field(
        default=1.5,
        ge=0.0,
        description="Delay before a lookup settles; drives the cosmetic progress indicator",
    )
    progress_cap_percent: float = Field(
        default=90.0,
        ge=0.0,
        le=100.0,
        description="Highest progress value reported while a lookup is still in flight",
    )
    fetch_timeout_sec: float = Field(default=15.0, gt=0.0, description="Timeout for thumbnail fetches")

    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TT_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY"),
        description="Gemini API key; AI analysis is disabled when unset",
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model used for analysis")

    default_download_dir: Path = Field(
        default=Path.home() / "Downloads" / "thumbnails",
        description="Default directory where saved thumbnails are stored",
    )
    allowed_base_dir: Path = Field(
        default=Path.home() / "Downloads",
        description="Base directory under which saved thumbnails are allowed",
    )

    # Optional: absolute path on the host that maps to allowed_base_dir inside a container.
    # Used only for display so the UI can show a user-friendly path when the app runs in Docker.
    host_downloads_dir: Path | None = Field(
        default=None,
        description="Host path that backs the container downloads mount; used for display only",
    )

    @property
    def ai_enabled(self) -> bool:
        """Whether a Gemini credential is configured."""

        return bool(self.gemini_api_key)


def ensure_directories(settings: Settings) -> None:
    """Create required directories if they do not exist.

    Notes
    -----
    - Idempotent: safe to call multiple times.
    - Creates the parent of the history file and the default download directory;
      target directories provided at runtime are validated/created by
      ``infra.fs.resolve_target_dir``.

    Parameters
    ----------
    settings: Settings
        The resolved application settings instance.
    """

    settings.history_path.expanduser().parent.mkdir(parents=True, exist_ok=True)
    settings.default_download_dir.expanduser().mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache application settings.

    Notes
    -----
    - Cached with ``functools.lru_cache(maxsize=1)``; tests call ``get_settings.cache_clear()``
      after changing the environment.
    - When ``DOWNLOADS_HOST_DIR`` is set (Docker), saved files go to ``/downloads`` and the
      host path is kept for display.

    Returns
    -------
    Settings
        The application settings instance.
    """

    settings: Settings = Settings()
    host_env: str | None = os.environ.get("DOWNLOADS_HOST_DIR")
    if host_env:
        settings.host_downloads_dir = Path(host_env).expanduser().resolve()
        downloads_path: Path = Path("/downloads")
        if downloads_path.exists() or os.access(downloads_path.parent, os.W_OK):
            settings.allowed_base_dir = downloads_path
            settings.default_download_dir = downloads_path
    ensure_directories(settings)
    return settings
