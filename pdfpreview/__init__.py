"""
pdfpreview - PDF metadata extraction and first-page preview cache.

Main Components:
    - pdfpreview.service: PreviewService, the entry point for host applications
    - pdfpreview.processor: per-document processing and bulk runs
    - pdfpreview.extraction: metadata extraction and preview rendering
    - pdfpreview.cache: preview cache directory, eviction and statistics
    - pdfpreview.capabilities: backend detection and diagnostics
"""

__version__ = "1.0.0"

from .config import PdfPreviewConfig, get_config
from .events import DocumentProcessed, EventBus, EventKind, PreviewGenerated
from .models import (
    BulkResult,
    CacheStats,
    CapabilitySnapshot,
    Document,
    DocumentInfo,
    DocumentNotFoundError,
    ExtractionMethod,
    PdfPreviewError,
    ProcessingRecord,
    UnsupportedDocumentError,
)
from .service import PreviewService

__all__ = [
    "__version__",
    "PdfPreviewConfig",
    "get_config",
    "PreviewService",
    "EventBus",
    "EventKind",
    "DocumentProcessed",
    "PreviewGenerated",
    "BulkResult",
    "CacheStats",
    "CapabilitySnapshot",
    "Document",
    "DocumentInfo",
    "ExtractionMethod",
    "ProcessingRecord",
    "PdfPreviewError",
    "DocumentNotFoundError",
    "UnsupportedDocumentError",
]
