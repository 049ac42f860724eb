# pdfpreview/capabilities.py
"""Backend capability detection for PDF preview extraction.

This is the foundation module for ``pdfpreview doctor``.  It checks, in
process and without spawning any external command, whether the pdfium
raster backend can open PDFs and which encoders the Pillow build ships
(WebP, JPEG).  Results are wrapped in a :class:`CapabilityCache` that the
caller owns, so tests can inject a fake probe and a fake clock.
"""
from __future__ import annotations

import importlib.metadata
import logging
import threading
import time
from typing import Any, Callable, Optional

from .models import CapabilitySnapshot

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_TTL_SECONDS: int = 3600
"""Capability snapshots are trusted for one hour."""

RASTER_DISTRIBUTION = "pypdfium2"
IMAGE_DISTRIBUTION = "Pillow"

# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def has_pdfium() -> bool:
    """Return True when the pdfium bindings import cleanly."""
    try:
        import pypdfium2  # noqa: F401
    except ImportError:
        return False
    return True


def has_pdfium_pdf_support() -> bool:
    """Return True when pdfium exposes a usable PDF document loader."""
    try:
        import pypdfium2 as pdfium
    except ImportError:
        return False
    return callable(getattr(pdfium, "PdfDocument", None))


def has_pillow() -> bool:
    try:
        from PIL import Image  # noqa: F401
    except ImportError:
        return False
    return True


def _pillow_can_save(format_name: str, feature: str) -> bool:
    try:
        from PIL import Image, features
    except ImportError:
        return False
    Image.init()
    return format_name in Image.SAVE and bool(features.check(feature))


def has_webp_encoder() -> bool:
    """Return True when Pillow was built with libwebp."""
    return _pillow_can_save("WEBP", "webp")


def has_jpeg_encoder() -> bool:
    """Return True when Pillow was built with libjpeg."""
    return _pillow_can_save("JPEG", "jpg")


def _distribution_version(name: str) -> Optional[str]:
    try:
        return importlib.metadata.version(name)
    except importlib.metadata.PackageNotFoundError:
        return None


def _safe(check: Callable[[], bool]) -> bool:
    """Run *check*, treating any exception as "not available"."""
    try:
        return bool(check())
    except Exception as exc:
        logger.debug("Capability check %s failed: %s", check.__name__, exc)
        return False


# ---------------------------------------------------------------------------
# Probe
# ---------------------------------------------------------------------------


def probe() -> CapabilitySnapshot:
    """Run every check once and return a fresh snapshot."""
    raster = _safe(has_pdfium)
    image = _safe(has_pillow)
    snapshot = CapabilitySnapshot(
        raster_engine=raster,
        raster_engine_pdf=raster and _safe(has_pdfium_pdf_support),
        image_library=image,
        webp=image and _safe(has_webp_encoder),
        jpeg=image and _safe(has_jpeg_encoder),
        raster_engine_version=_distribution_version(RASTER_DISTRIBUTION) if raster else None,
        image_library_version=_distribution_version(IMAGE_DISTRIBUTION) if image else None,
    )
    logger.debug("Capability probe: %s", snapshot.to_dict())
    return snapshot


class CapabilityCache:
    """Time-bounded holder of the last :class:`CapabilitySnapshot`.

    Concurrent readers inside the TTL window share one snapshot.  The lock
    only protects the two fields; a probe racing another probe is harmless
    because the result is static for a given server.
    """

    def __init__(
        self,
        probe_fn: Callable[[], CapabilitySnapshot] = probe,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._probe = probe_fn
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[CapabilitySnapshot] = None
        self._computed_at: Optional[float] = None

    @property
    def computed_at(self) -> Optional[float]:
        return self._computed_at

    def _fresh(self, now: float) -> bool:
        return (
            self._snapshot is not None
            and self._computed_at is not None
            and now - self._computed_at < self.ttl_seconds
        )

    def get(self, force_refresh: bool = False) -> CapabilitySnapshot:
        now = self._clock()
        with self._lock:
            if not force_refresh and self._fresh(now):
                assert self._snapshot is not None
                return self._snapshot

        snapshot = self._probe()
        with self._lock:
            self._snapshot = snapshot
            self._computed_at = now
        return snapshot

    def invalidate(self) -> None:
        """Drop the cached snapshot so the next :meth:`get` re-probes."""
        with self._lock:
            self._snapshot = None
            self._computed_at = None


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


def overall_status(snapshot: CapabilitySnapshot) -> str:
    """Return ``"good"``, ``"limited"`` or ``"unavailable"``."""
    if not snapshot.extraction_available:
        return "unavailable"
    if snapshot.webp:
        return "good"
    return "limited"


_STATUS_MESSAGES = {
    "good": "Server fully configured for PDF preview extraction.",
    "limited": (
        "PDF extraction available via pdfium, but WebP encoding is not. "
        "Preview images will use JPEG format."
    ),
    "unavailable": (
        "No PDF extraction backend available. Install pypdfium2 to enable "
        "preview generation; metadata falls back to structural parsing."
    ),
}


def diagnostic_report(snapshot: CapabilitySnapshot) -> dict[str, Any]:
    """Human-readable capability report for administrators."""
    status = overall_status(snapshot)
    message = _STATUS_MESSAGES[status]
    if status == "limited" and not snapshot.jpeg:
        message = (
            "PDF metadata available via pdfium, but Pillow has neither a WebP "
            "nor a JPEG encoder. Previews cannot be generated."
        )
    engine_version = f" ({snapshot.raster_engine_version})" if snapshot.raster_engine_version else ""
    image_version = f" ({snapshot.image_library_version})" if snapshot.image_library_version else ""
    checks = [
        {
            "name": "pdfium",
            "status": snapshot.raster_engine_pdf,
            "message": (
                f"Available with PDF support{engine_version}"
                if snapshot.raster_engine_pdf
                else "Not available"
            ),
        },
        {
            "name": "Pillow",
            "status": snapshot.image_library,
            "message": f"Available{image_version}" if snapshot.image_library else "Not available",
        },
        {
            "name": "WebP encoder",
            "status": snapshot.webp,
            "message": "Pillow built with WebP support" if snapshot.webp else "Not available",
        },
        {
            "name": "JPEG encoder",
            "status": snapshot.jpeg,
            "message": "Pillow built with JPEG support" if snapshot.jpeg else "Not available",
        },
    ]
    return {
        "status": status,
        "message": message,
        "checks": checks,
        "capabilities": snapshot.to_dict(),
    }
