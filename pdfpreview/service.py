"""Entry points for the host application: hooks, queries and actions.

:class:`PreviewService` is built once at start-up and handed to whatever
needs it (the CLI, a web handler, a scheduler).  It holds no global state.

Usage
-----
    from pdfpreview import PdfPreviewConfig, PreviewService

    service = PreviewService.from_config(PdfPreviewConfig())
    doc = service.register_document("report.pdf")
    print(service.document_info(doc.doc_id).to_dict())
"""

from __future__ import annotations

import logging
import mimetypes
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .cache import CacheStore
from .capabilities import CapabilityCache, diagnostic_report, probe
from .config import PdfPreviewConfig
from .events import EventBus
from .extraction.metadata import MetadataExtractor
from .extraction.preview import PreviewGenerator
from .extraction.raster import render_first_page
from .models import (
    PDF_MIME_TYPE,
    BulkResult,
    CapabilitySnapshot,
    Document,
    DocumentInfo,
    DocumentNotFoundError,
    UnsupportedDocumentError,
)
from .processor import ProcessingOrchestrator
from .store import RecordStore

logger = logging.getLogger(__name__)


class PreviewService:
    """Explicitly wired container of every pipeline component."""

    def __init__(
        self,
        config: PdfPreviewConfig,
        store: RecordStore,
        events: EventBus,
        capabilities: CapabilityCache,
        cache: CacheStore,
        extractor: MetadataExtractor,
        generator: PreviewGenerator,
        orchestrator: ProcessingOrchestrator,
    ) -> None:
        self.config = config
        self.store = store
        self.events = events
        self.capabilities_cache = capabilities
        self.cache = cache
        self.extractor = extractor
        self.generator = generator
        self.orchestrator = orchestrator

    @classmethod
    def from_config(
        cls,
        config: PdfPreviewConfig,
        store: Optional[RecordStore] = None,
        probe_fn: Callable[[], CapabilitySnapshot] = probe,
        clock: Callable[[], float] = time.monotonic,
        rasterize: Callable[..., Any] = render_first_page,
    ) -> PreviewService:
        """Wire the default component graph for *config*."""
        if store is None:
            store = RecordStore(config.state_file)
        events = EventBus()
        capabilities = CapabilityCache(
            probe_fn=probe_fn,
            ttl_seconds=config.capability_ttl_seconds,
            clock=clock,
        )
        cache = CacheStore(config, store)
        extractor = MetadataExtractor(capabilities)
        generator = PreviewGenerator(
            capabilities,
            cache,
            events=events,
            jpeg_fallback=config.jpeg_fallback,
            rasterize=rasterize,
        )
        orchestrator = ProcessingOrchestrator(config, store, extractor, generator, cache, events=events)
        return cls(config, store, events, capabilities, cache, extractor, generator, orchestrator)

    # ------------------------------------------------------------------
    # Boundary checks
    # ------------------------------------------------------------------

    def _require_document(self, doc_id: int) -> Document:
        document = self.store.get_document(doc_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {doc_id} not found")
        return document

    def _require_pdf(self, doc_id: int) -> Document:
        document = self._require_document(doc_id)
        if not document.is_pdf:
            raise UnsupportedDocumentError(
                f"Document {doc_id} is not a PDF ({document.mime_type})"
            )
        return document

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def on_upload(self, doc_id: int) -> bool:
        return self.orchestrator.process_upload(doc_id)

    def on_delete(self, doc_id: int) -> None:
        """Drop the preview and the processing record of a deleted document."""
        self.cache.delete_preview(doc_id)
        self.store.delete_record(doc_id)

    def run_scheduled_cleanup(self) -> int:
        """Daily sweep; returns the number of evicted files."""
        return self.cache.cleanup_old_files()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def document_info(self, doc_id: int) -> DocumentInfo:
        """Processing state and preview URL of one PDF."""
        document = self._require_pdf(doc_id)
        record = self.store.get_record(doc_id)
        info = DocumentInfo(
            doc_id=doc_id,
            filename=document.path.name,
            processed=bool(record and record.processed),
        )
        if record is None:
            return info

        if record.processed:
            info.page_count = record.page_count
            info.width = record.width
            info.height = record.height
            info.pdf_title = record.title or None
            info.pdf_author = record.author or None
        info.preview_url = self.cache.preview_url(doc_id)
        info.method = record.extraction_method.value
        info.generated = record.preview_generated_at
        info.error = record.extraction_error or record.preview_error
        return info

    def preview_path(self, doc_id: int) -> Optional[Path]:
        self._require_pdf(doc_id)
        return self.cache.preview_path(doc_id)

    def capabilities(self, force_refresh: bool = False) -> CapabilitySnapshot:
        return self.capabilities_cache.get(force_refresh=force_refresh)

    def diagnostics(self) -> dict[str, Any]:
        return diagnostic_report(self.capabilities_cache.get())

    def stats(self) -> dict[str, Any]:
        total = self.store.count_pdfs()
        processed = self.store.count_processed()
        last_cleanup: Optional[datetime] = self.cache.last_cleanup()
        return {
            "documents": {
                "total": total,
                "processed": processed,
                "unprocessed": total - processed,
                "pending": self.store.count_pending(),
            },
            "cache": self.cache.get_stats().to_dict(),
            "last_cleanup": last_cleanup.isoformat() if last_cleanup else None,
        }

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def process(self, doc_id: int, force: bool = False) -> bool:
        self._require_pdf(doc_id)
        return self.orchestrator.process(doc_id, force=force)

    def bulk_process(
        self,
        limit: Optional[int] = None,
        on_progress: Optional[Callable[[int, bool], None]] = None,
    ) -> BulkResult:
        return self.orchestrator.bulk_process(limit, on_progress=on_progress)

    def clear_cache(self) -> int:
        return self.cache.clear_all()

    def refresh_capabilities(self) -> CapabilitySnapshot:
        self.capabilities_cache.invalidate()
        return self.capabilities_cache.get(force_refresh=True)

    def register_document(
        self,
        path: Union[str, Path],
        doc_id: Optional[int] = None,
        mime_type: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Document:
        """Add a file to the document library and fire the upload hook."""
        path = Path(path).expanduser().resolve()
        if not path.is_file():
            raise DocumentNotFoundError(f"File not found: {path}")
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        if doc_id is None:
            doc_id = self.store.next_document_id()
        elif self.store.get_document(doc_id) is not None:
            # Replacing a file invalidates whatever was derived from the old one.
            self.on_delete(doc_id)

        document = self.store.add_document(
            Document(doc_id=doc_id, path=path, mime_type=mime_type, title=title or path.stem)
        )
        logger.info("Registered document %s: %s (%s)", doc_id, path.name, mime_type)
        if mime_type == PDF_MIME_TYPE:
            self.on_upload(doc_id)
        return document

    def delete_document(self, doc_id: int) -> None:
        """Remove a document from the library, firing the delete hook first."""
        self._require_document(doc_id)
        self.on_delete(doc_id)
        self.store.remove_document(doc_id)
        logger.info("Deleted document %s", doc_id)
