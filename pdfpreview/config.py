# pdfpreview/config.py
"""
pdfpreview configuration via Pydantic Settings.

Resolution order: CLI flags > env vars (PDFPREVIEW_*) > .env file > defaults.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PdfPreviewConfig(BaseSettings):
    """Settings consumed by the preview extraction and cache pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="PDFPREVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Processing ---
    generate_on_upload: bool = True
    preview_quality: Literal["low", "medium", "high"] = "medium"
    # Only consulted when Pillow was built without a WebP encoder.
    jpeg_fallback: bool = True
    bulk_batch_size: int = Field(default=50, ge=1)

    # --- Cache ---
    cache_retention_days: int = Field(default=30, ge=1)
    capability_ttl_seconds: int = Field(default=3600, ge=0)

    # --- Paths ---
    home_dir: Path = Field(default_factory=lambda: Path.home() / ".pdfpreview")
    upload_dir: Optional[Path] = None
    upload_url: str = "/uploads"

    @property
    def uploads_path(self) -> Path:
        return self.upload_dir if self.upload_dir is not None else self.home_dir / "uploads"

    @property
    def state_file(self) -> Path:
        return self.home_dir / "state.json"

    @property
    def log_dir(self) -> Path:
        return self.home_dir / "logs"


@lru_cache(maxsize=1)
def get_config() -> PdfPreviewConfig:
    """Return the process-wide config used by the CLI entry point."""
    return PdfPreviewConfig()
