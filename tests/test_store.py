# tests/test_store.py
"""Tests for the JSON-backed record store."""

from datetime import datetime, timezone
from pathlib import Path

import pytest


def _doc(doc_id: int, mime_type: str = "application/pdf"):
    from pdfpreview.models import Document

    return Document(doc_id=doc_id, path=Path(f"/docs/{doc_id}.pdf"), mime_type=mime_type)


@pytest.mark.unit
class TestRecordStore:

    def test_state_survives_reload(self, tmp_path):
        from pdfpreview.models import ProcessingRecord
        from pdfpreview.store import RecordStore

        path = tmp_path / "state.json"
        store = RecordStore(path)
        store.add_document(_doc(1))
        store.save_record(ProcessingRecord(doc_id=1, processed=True, page_count=2))
        store.set_option("last_cleanup", datetime(2024, 5, 1, tzinfo=timezone.utc))

        reloaded = RecordStore(path)
        assert reloaded.get_document(1) == _doc(1)
        assert reloaded.get_record(1).page_count == 2
        assert reloaded.get_option("last_cleanup") == "2024-05-01T00:00:00+00:00"

    def test_in_memory_store_writes_nothing(self, tmp_path):
        from pdfpreview.store import RecordStore

        store = RecordStore()
        store.add_document(_doc(1))
        assert store.get_document(1) is not None
        assert list(tmp_path.iterdir()) == []

    def test_corrupt_state_file_starts_empty(self, tmp_path):
        from pdfpreview.store import RecordStore

        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")
        store = RecordStore(path)
        assert store.list_documents() == []

    def test_get_record_returns_detached_copy(self):
        from pdfpreview.models import ProcessingRecord
        from pdfpreview.store import RecordStore

        store = RecordStore()
        store.save_record(ProcessingRecord(doc_id=1))
        record = store.get_record(1)
        record.processed = True
        assert store.get_record(1).processed is False

    def test_remove_document_drops_record(self):
        from pdfpreview.models import ProcessingRecord
        from pdfpreview.store import RecordStore

        store = RecordStore()
        store.add_document(_doc(1))
        store.save_record(ProcessingRecord(doc_id=1))
        store.remove_document(1)
        assert store.get_document(1) is None
        assert store.get_record(1) is None

    def test_next_document_id(self):
        from pdfpreview.store import RecordStore

        store = RecordStore()
        assert store.next_document_id() == 1
        store.add_document(_doc(41))
        assert store.next_document_id() == 42

    def test_pending_excludes_processed_failed_and_non_pdf(self):
        from pdfpreview.models import ProcessingRecord
        from pdfpreview.store import RecordStore

        store = RecordStore()
        for doc_id in range(1, 6):
            store.add_document(_doc(doc_id))
        store.add_document(_doc(6, mime_type="image/png"))
        store.save_record(ProcessingRecord(doc_id=2, processed=True))
        store.save_record(ProcessingRecord(doc_id=3, extraction_error="PDF file not found"))
        # Reset by eviction: not processed, no error.
        store.save_record(ProcessingRecord(doc_id=4))

        assert store.pending_document_ids() == [1, 4, 5]
        assert store.pending_document_ids(limit=2) == [1, 4]
        assert store.count_pending() == 3
        assert store.count_pdfs() == 5
        assert store.count_processed() == 1

    def test_clear_all_previews(self):
        from pdfpreview.models import ExtractionMethod, ProcessingRecord
        from pdfpreview.store import RecordStore

        store = RecordStore()
        for doc_id in (1, 2):
            store.save_record(
                ProcessingRecord(
                    doc_id=doc_id,
                    processed=True,
                    preview_relative_path=f"pdfpreview-cache/{doc_id}-p1.webp",
                    extraction_method=ExtractionMethod.PDFIUM,
                )
            )
        assert store.clear_all_previews() == 2
        for doc_id in (1, 2):
            record = store.get_record(doc_id)
            assert record.processed is False
            assert record.preview_relative_path is None
