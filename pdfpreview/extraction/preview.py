# pdfpreview/extraction/preview.py
"""First-page preview generation: pdfium rasterization + Pillow encoding."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Optional

from PIL import Image

from ..cache import CacheStore
from ..capabilities import CapabilityCache
from ..events import EventBus, EventKind, PreviewGenerated
from ..models import ExtractionMethod, PreviewResult, QualityPreset
from .raster import render_first_page

logger = logging.getLogger(__name__)

QUALITY_PRESETS: dict[str, QualityPreset] = {
    "low": QualityPreset("low", resolution=72, quality=70),
    "medium": QualityPreset("medium", resolution=150, quality=85),
    "high": QualityPreset("high", resolution=300, quality=95),
}
DEFAULT_PRESET = "medium"

# Memory guard: big files tend to carry heavy pages.
LARGE_FILE_BYTES = 10 * 1024 * 1024
LARGE_FILE_MAX_DPI = 100
HUGE_FILE_BYTES = 50 * 1024 * 1024
HUGE_FILE_DPI = 72

Rasterizer = Callable[[Path, int], Image.Image]


def resolve_preset(name: Optional[str]) -> QualityPreset:
    """Map a preset name to its values; unknown names fall back to medium."""
    return QUALITY_PRESETS.get(name or DEFAULT_PRESET, QUALITY_PRESETS[DEFAULT_PRESET])


def effective_resolution(file_size: int, resolution: int) -> int:
    """Downgrade *resolution* for large source files."""
    if file_size > HUGE_FILE_BYTES:
        return HUGE_FILE_DPI
    if file_size > LARGE_FILE_BYTES:
        return min(resolution, LARGE_FILE_MAX_DPI)
    return resolution


class PreviewGenerator:
    """Render page 1 of a PDF into the preview cache.

    WebP is the output of the primary path.  When Pillow lacks a WebP
    encoder the generator takes the explicit JPEG path instead, if
    ``jpeg_fallback`` allows it; it never re-encodes a failed WebP attempt
    as JPEG.
    """

    def __init__(
        self,
        capabilities: CapabilityCache,
        cache: CacheStore,
        events: Optional[EventBus] = None,
        jpeg_fallback: bool = True,
        rasterize: Rasterizer = render_first_page,
    ) -> None:
        self.capabilities = capabilities
        self.cache = cache
        self.events = events
        self.jpeg_fallback = jpeg_fallback
        self._rasterize = rasterize

    def generate_preview(
        self,
        doc_id: int,
        pdf_path: Path,
        quality_preset: Optional[str] = DEFAULT_PRESET,
    ) -> PreviewResult:
        """Write ``{doc_id}-p1.webp`` (or ``.jpg``); never raises."""
        pdf_path = Path(pdf_path)

        if not self.cache.ensure_directory():
            return PreviewResult(success=False, error="Failed to create cache directory")

        snapshot = self.capabilities.get()
        if not snapshot.extraction_available:
            return PreviewResult(
                success=False,
                error=(
                    "No preview extraction method available. "
                    "Install pypdfium2 to enable preview generation."
                ),
            )

        preset = resolve_preset(quality_preset)
        try:
            file_size = pdf_path.stat().st_size
        except OSError as exc:
            return PreviewResult(success=False, error=f"PDF file not readable: {exc}")

        resolution = effective_resolution(file_size, preset.resolution)
        if resolution != preset.resolution:
            logger.info(
                "Document %s is %.1f MB; rendering at %d DPI instead of %d",
                doc_id,
                file_size / (1024 * 1024),
                resolution,
                preset.resolution,
            )

        if snapshot.webp:
            return self.render_webp(doc_id, pdf_path, resolution, preset.quality)

        if self.jpeg_fallback and snapshot.jpeg:
            logger.info("WebP encoder unavailable; using JPEG for document %s", doc_id)
            return self.render_jpeg(doc_id, pdf_path, resolution, preset.quality)

        return PreviewResult(
            success=False,
            resolution=resolution,
            error="No image encoder available (Pillow built without WebP or JPEG support).",
        )

    def render_webp(self, doc_id: int, pdf_path: Path, resolution: int, quality: int) -> PreviewResult:
        """Primary path: WebP output only."""
        return self._write(doc_id, pdf_path, resolution, "WEBP", "webp", {"quality": quality, "method": 4})

    def render_jpeg(self, doc_id: int, pdf_path: Path, resolution: int, quality: int) -> PreviewResult:
        """Secondary path for servers whose Pillow cannot encode WebP."""
        return self._write(
            doc_id,
            pdf_path,
            resolution,
            "JPEG",
            "jpg",
            {"quality": quality, "optimize": True, "progressive": True},
        )

    def _write(
        self,
        doc_id: int,
        pdf_path: Path,
        resolution: int,
        image_format: str,
        extension: str,
        params: dict[str, Any],
    ) -> PreviewResult:
        filename = self.cache.preview_filename(doc_id, extension)
        output_path = self.cache.cache_dir() / filename
        tmp_path = output_path.with_name(f".{filename}.tmp")
        t0 = time.time()

        try:
            image = self._rasterize(pdf_path, resolution)
            image.save(tmp_path, format=image_format, **params)
            if tmp_path.stat().st_size <= 0:
                raise OSError(f"{image_format} encoder wrote an empty file")
            os.replace(tmp_path, output_path)
        except Exception as exc:
            logger.warning("Preview generation failed for document %s: %s", doc_id, exc)
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove partial file %s", tmp_path)
            return PreviewResult(
                success=False,
                resolution=resolution,
                error=f"Preview generation failed: {exc}",
            )

        # A regenerated preview may have changed format.
        self.cache.remove_preview_files(doc_id, keep=output_path)

        logger.info(
            "Preview for document %s written to %s (%d DPI) in %.2fs",
            doc_id,
            filename,
            resolution,
            time.time() - t0,
        )
        if self.events is not None:
            self.events.emit(
                EventKind.PREVIEW_GENERATED,
                PreviewGenerated(
                    doc_id=doc_id,
                    output_path=output_path,
                    pdf_path=pdf_path,
                    method=ExtractionMethod.PDFIUM,
                ),
            )
        return PreviewResult(
            success=True,
            relative_path=self.cache.relative_path(filename),
            method=ExtractionMethod.PDFIUM,
            output_path=output_path,
            image_format=extension,
            resolution=resolution,
        )
