# pdfpreview/models.py
"""Data models for the preview extraction and cache pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

PDF_MIME_TYPE = "application/pdf"


class PdfPreviewError(Exception):
    """Base class for errors surfaced at the service boundary."""


class DocumentNotFoundError(PdfPreviewError):
    """Raised when a document ID is unknown to the host library."""


class UnsupportedDocumentError(PdfPreviewError):
    """Raised when a document is not a PDF."""


class ExtractionMethod(str, Enum):
    """How metadata or a preview was produced.

    ``PDFIUM`` is the in-process raster backend and fills the role of the
    "imagemagick-equivalent" method: it reads the page geometry and renders
    the preview.  ``STRUCTURAL`` only ever produces metadata.
    """

    NONE = "none"
    PDFIUM = "pdfium"
    STRUCTURAL = "structural"


@dataclass
class Document:
    """One uploaded file as known to the host system."""

    doc_id: int
    path: Path
    mime_type: str = PDF_MIME_TYPE
    title: str = ""

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME_TYPE

    def to_dict(self) -> dict[str, Any]:
        return {
            "doc_id": self.doc_id,
            "path": str(self.path),
            "mime_type": self.mime_type,
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        return cls(
            doc_id=int(data["doc_id"]),
            path=Path(data["path"]),
            mime_type=str(data.get("mime_type") or PDF_MIME_TYPE),
            title=str(data.get("title") or ""),
        )


class ProcessingRecord(BaseModel):
    """Persisted extraction and preview state for a single document."""

    doc_id: int
    processed: bool = False
    page_count: int = Field(default=0, ge=0)
    width: int = 0
    height: int = 0
    title: str = ""
    author: str = ""
    preview_relative_path: Optional[str] = None
    preview_generated_at: Optional[datetime] = None
    extraction_method: ExtractionMethod = ExtractionMethod.NONE
    metadata_method: Optional[ExtractionMethod] = None
    extraction_error: Optional[str] = None
    preview_error: Optional[str] = None

    @property
    def has_preview(self) -> bool:
        return bool(self.preview_relative_path) and self.extraction_method != ExtractionMethod.NONE

    def apply_metadata(self, metadata: Metadata) -> None:
        self.page_count = metadata.page_count
        self.width = metadata.width
        self.height = metadata.height
        self.title = metadata.title
        self.author = metadata.author
        self.metadata_method = metadata.method

    def clear_preview(self) -> None:
        """Reset every preview-related field; metadata fields are kept."""
        self.processed = False
        self.preview_relative_path = None
        self.preview_generated_at = None
        self.extraction_method = ExtractionMethod.NONE
        self.extraction_error = None
        self.preview_error = None


@dataclass
class Metadata:
    """Page count, page-1 geometry (points) and document info."""

    page_count: int = 1
    width: int = 612
    height: int = 792
    title: str = ""
    author: str = ""
    method: ExtractionMethod = ExtractionMethod.STRUCTURAL

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["method"] = self.method.value
        return data


@dataclass
class MetadataResult:
    """Outcome of a metadata extraction attempt."""

    metadata: Optional[Metadata] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.metadata is not None


@dataclass(frozen=True)
class QualityPreset:
    """A named (resolution, encode quality) pair."""

    name: str
    resolution: int
    quality: int


@dataclass
class PreviewResult:
    """Outcome of a preview generation attempt."""

    success: bool
    relative_path: Optional[str] = None
    method: ExtractionMethod = ExtractionMethod.NONE
    error: Optional[str] = None
    output_path: Optional[Path] = None
    image_format: Optional[str] = None
    resolution: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "relative_path": self.relative_path,
            "method": self.method.value,
            "error": self.error,
            "format": self.image_format,
            "resolution": self.resolution,
        }


@dataclass
class CapabilitySnapshot:
    """Availability of the in-process raster backend and image encoders."""

    raster_engine: bool = False
    raster_engine_pdf: bool = False
    image_library: bool = False
    webp: bool = False
    jpeg: bool = False
    raster_engine_version: Optional[str] = None
    image_library_version: Optional[str] = None

    @property
    def extraction_available(self) -> bool:
        return self.raster_engine_pdf

    @property
    def recommended_method(self) -> str:
        return ExtractionMethod.PDFIUM.value if self.extraction_available else ExtractionMethod.NONE.value

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["extraction_available"] = self.extraction_available
        data["recommended_method"] = self.recommended_method
        return data


@dataclass
class CacheStats:
    """Aggregate view of the preview cache directory."""

    file_count: int = 0
    total_size_bytes: int = 0
    oldest_file_timestamp: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_count": self.file_count,
            "total_size_bytes": self.total_size_bytes,
            "oldest_file_timestamp": (
                self.oldest_file_timestamp.isoformat() if self.oldest_file_timestamp else None
            ),
        }


@dataclass
class BulkResult:
    """Counters returned by one bulk processing call."""

    processed: int = 0
    failed: int = 0
    remaining: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class DocumentInfo:
    """Read-only view of a document for viewers and data APIs."""

    doc_id: int
    filename: str
    processed: bool
    page_count: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    preview_url: Optional[str] = None
    pdf_title: Optional[str] = None
    pdf_author: Optional[str] = None
    method: Optional[str] = None
    generated: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.doc_id,
            "filename": self.filename,
            "processed": self.processed,
            "page_count": self.page_count,
            "width": self.width,
            "height": self.height,
            "preview_url": self.preview_url,
            "metadata": {
                "pdf_title": self.pdf_title,
                "pdf_author": self.pdf_author,
            },
            "extraction": {
                "method": self.method,
                "generated": self.generated.isoformat() if self.generated else None,
                "error": self.error,
            },
        }
