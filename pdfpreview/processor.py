"""Per-document processing: metadata, preview, record update, notification."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from .cache import CacheStore
from .config import PdfPreviewConfig
from .events import DocumentProcessed, EventBus, EventKind
from .extraction.metadata import MetadataExtractor
from .extraction.preview import PreviewGenerator
from .models import BulkResult, ExtractionMethod, ProcessingRecord
from .store import RecordStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProcessingOrchestrator:
    """Drive one document through extraction and preview generation.

    Every :meth:`process` call runs synchronously under a lock keyed by the
    document ID, so at most one attempt per document is in flight inside
    this process.
    """

    def __init__(
        self,
        config: PdfPreviewConfig,
        store: RecordStore,
        extractor: MetadataExtractor,
        generator: PreviewGenerator,
        cache: CacheStore,
        events: Optional[EventBus] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self.store = store
        self.extractor = extractor
        self.generator = generator
        self.cache = cache
        self.events = events
        self._now = now
        # doc_id -> [lock, holders and waiters]
        self._locks: dict[int, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _document_lock(self, doc_id: int) -> Iterator[None]:
        """Serialise work on *doc_id*; the entry is dropped once unused."""
        with self._locks_guard:
            entry = self._locks.get(doc_id)
            if entry is None:
                entry = self._locks[doc_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[doc_id]

    # ------------------------------------------------------------------
    # Single document
    # ------------------------------------------------------------------

    def process(self, doc_id: int, force: bool = False) -> bool:
        """Extract metadata and render the preview for *doc_id*.

        Returns True when metadata was extracted, even if the preview step
        failed; False when the file is missing or unreadable.
        """
        with self._document_lock(doc_id):
            ok, event = self._process(doc_id, force)
        # Subscribers may call back into process() for the same document.
        if event is not None and self.events is not None:
            self.events.emit(EventKind.DOCUMENT_PROCESSED, event)
        return ok

    def _process(self, doc_id: int, force: bool) -> tuple[bool, Optional[DocumentProcessed]]:
        record = self.store.get_record(doc_id)
        if record is not None and record.processed and not force:
            logger.debug("Document %s already processed; skipping", doc_id)
            return True, None
        if record is None:
            record = ProcessingRecord(doc_id=doc_id)

        document = self.store.get_document(doc_id)
        if document is None or not document.path.is_file():
            return self._fail(record, "PDF file not found"), None

        logger.info("Processing document %s (%s)", doc_id, document.path.name)

        result = self.extractor.extract_metadata(document.path)
        if not result.ok:
            return self._fail(record, result.error or "Failed to extract metadata"), None
        assert result.metadata is not None
        metadata = result.metadata

        record.apply_metadata(metadata)
        self.store.save_record(record)

        preview = self.generator.generate_preview(doc_id, document.path, self.config.preview_quality)
        if preview.success:
            record.preview_relative_path = preview.relative_path
            record.preview_generated_at = self._now()
            record.extraction_method = preview.method
            record.preview_error = None
        else:
            logger.warning("No preview for document %s: %s", doc_id, preview.error)
            self.cache.remove_preview_files(doc_id)
            record.preview_relative_path = None
            record.preview_generated_at = None
            record.extraction_method = ExtractionMethod.NONE
            record.preview_error = preview.error

        record.processed = True
        record.extraction_error = None
        self.store.save_record(record)

        logger.info(
            "Document %s processed: %d page(s), %dx%d, preview=%s",
            doc_id,
            metadata.page_count,
            metadata.width,
            metadata.height,
            record.extraction_method.value,
        )
        return True, DocumentProcessed(doc_id=doc_id, metadata=metadata, preview=preview)

    def _fail(self, record: ProcessingRecord, error: str) -> bool:
        logger.error("Processing document %s failed: %s", record.doc_id, error)
        # A preview from an earlier run no longer describes this document.
        self.cache.remove_preview_files(record.doc_id)
        record.clear_preview()
        record.extraction_error = error
        self.store.save_record(record)
        return False

    def process_upload(self, doc_id: int) -> bool:
        """Upload hook: process new PDFs when auto-processing is enabled."""
        document = self.store.get_document(doc_id)
        if document is None or not document.is_pdf:
            return False
        if not self.config.generate_on_upload:
            logger.debug("Auto-processing disabled; document %s left pending", doc_id)
            return False
        return self.process(doc_id)

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def bulk_process(
        self,
        limit: Optional[int] = None,
        on_progress: Optional[Callable[[int, bool], None]] = None,
    ) -> BulkResult:
        """Process up to *limit* pending documents, one after another.

        Meant to be called repeatedly until ``remaining`` reaches zero.
        """
        if limit is None:
            limit = self.config.bulk_batch_size
        result = BulkResult()

        for doc_id in self.store.pending_document_ids(limit):
            try:
                ok = self.process(doc_id)
            except Exception:
                logger.exception("Unexpected error processing document %s", doc_id)
                ok = False
            if ok:
                result.processed += 1
            else:
                result.failed += 1
            if on_progress:
                on_progress(doc_id, ok)

        result.remaining = self.store.count_pending()
        logger.info(
            "Bulk run: %d processed, %d failed, %d remaining",
            result.processed,
            result.failed,
            result.remaining,
        )
        return result
