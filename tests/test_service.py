# tests/test_service.py
"""Tests for the PreviewService entry points."""

from pathlib import Path

import pytest

from conftest import make_pdf


@pytest.mark.unit
class TestRegisterAndHooks:

    def test_register_pdf_processes_on_upload(self, service_factory, sample_pdf):
        service = service_factory()
        doc = service.register_document(sample_pdf)
        assert doc.doc_id == 1
        assert doc.is_pdf
        assert doc.title == "sample"
        assert service.store.get_record(1).processed

    def test_register_with_explicit_id(self, service_factory, sample_pdf):
        service = service_factory()
        doc = service.register_document(sample_pdf, doc_id=42)
        assert doc.doc_id == 42
        assert service.document_info(42).preview_url.endswith("/pdfpreview-cache/42-p1.webp")

    def test_register_missing_file(self, service_factory, tmp_path):
        from pdfpreview.models import DocumentNotFoundError

        with pytest.raises(DocumentNotFoundError):
            service_factory().register_document(tmp_path / "nope.pdf")

    def test_register_non_pdf_is_not_processed(self, service_factory, tmp_path):
        image = tmp_path / "photo.png"
        image.write_bytes(b"\x89PNG\r\n")
        service = service_factory()
        doc = service.register_document(image)
        assert doc.mime_type == "image/png"
        assert service.store.get_record(doc.doc_id) is None

    def test_replacing_a_document_drops_old_preview(self, service_factory, tmp_path):
        service = service_factory()
        service.register_document(make_pdf(tmp_path / "a.pdf"), doc_id=5)
        service.register_document(make_pdf(tmp_path / "b.pdf", size=(595, 842)), doc_id=5)
        info = service.document_info(5)
        assert info.filename == "b.pdf"
        assert (info.width, info.height) == (595, 842)
        assert service.cache.get_stats().file_count == 1

    def test_on_delete(self, service_factory, sample_pdf):
        service = service_factory()
        service.register_document(sample_pdf, doc_id=3)
        preview = service.cache.preview_path(3)
        assert preview is not None

        service.on_delete(3)
        assert not preview.exists()
        assert service.store.get_record(3) is None

    def test_delete_document(self, service_factory, sample_pdf):
        from pdfpreview.models import DocumentNotFoundError

        service = service_factory()
        service.register_document(sample_pdf, doc_id=3)
        service.delete_document(3)
        assert service.store.get_document(3) is None
        assert service.cache.get_stats().file_count == 0
        with pytest.raises(DocumentNotFoundError):
            service.delete_document(3)

    def test_scheduled_cleanup_stamps_last_run(self, service_factory):
        service = service_factory()
        assert service.run_scheduled_cleanup() == 0
        assert service.stats()["last_cleanup"] is not None


@pytest.mark.unit
class TestQueries:

    def test_document_info_unprocessed(self, service_factory, sample_pdf):
        service = service_factory()
        service.config.generate_on_upload = False
        service.register_document(sample_pdf, doc_id=1)

        info = service.document_info(1)
        assert info.processed is False
        assert info.preview_url is None
        assert info.page_count is None

    def test_document_info_processed(self, service_factory, tmp_path):
        pdf = make_pdf(tmp_path / "report.pdf", title="Quarterly", author="Roe")
        service = service_factory()
        service.register_document(pdf, doc_id=1)

        data = service.document_info(1).to_dict()
        assert data["processed"] is True
        assert data["filename"] == "report.pdf"
        assert data["page_count"] == 1
        assert (data["width"], data["height"]) == (612, 792)
        assert data["metadata"]["pdf_title"] == "Quarterly"
        assert data["extraction"]["method"] == "pdfium"
        assert data["extraction"]["generated"] is not None
        assert data["preview_url"] == "https://example.test/uploads/pdfpreview-cache/1-p1.webp"

    def test_document_info_reports_failure(self, service_factory, tmp_path):
        service = service_factory()
        pdf = make_pdf(tmp_path / "x.pdf")
        service.register_document(pdf, doc_id=1)
        pdf.unlink()
        service.process(1, force=True)
        assert service.document_info(1).error == "PDF file not found"

    def test_input_errors(self, service_factory, tmp_path):
        from pdfpreview.models import DocumentNotFoundError, UnsupportedDocumentError

        service = service_factory()
        image = tmp_path / "photo.png"
        image.write_bytes(b"\x89PNG")
        service.register_document(image, doc_id=2)

        with pytest.raises(DocumentNotFoundError):
            service.document_info(99)
        with pytest.raises(DocumentNotFoundError):
            service.process(99)
        with pytest.raises(UnsupportedDocumentError):
            service.process(2)
        with pytest.raises(UnsupportedDocumentError):
            service.document_info(2)

    def test_stats(self, service_factory, tmp_path):
        service = service_factory()
        service.register_document(make_pdf(tmp_path / "a.pdf"))
        service.config.generate_on_upload = False
        service.register_document(make_pdf(tmp_path / "b.pdf"))

        stats = service.stats()
        assert stats["documents"] == {"total": 2, "processed": 1, "unprocessed": 1, "pending": 1}
        assert stats["cache"]["file_count"] == 1
        assert stats["cache"]["total_size_bytes"] > 0
        assert stats["last_cleanup"] is None


@pytest.mark.unit
class TestActions:

    def test_clear_cache(self, service_factory, tmp_path):
        service = service_factory()
        for name in ("a", "b"):
            service.register_document(make_pdf(tmp_path / f"{name}.pdf"))
        assert service.clear_cache() == 2
        assert service.stats()["documents"]["pending"] == 2

    def test_refresh_capabilities_reprobes(self, config):
        from conftest import make_snapshot
        from pdfpreview.service import PreviewService

        calls = []

        def probe():
            calls.append(1)
            return make_snapshot()

        service = PreviewService.from_config(config, probe_fn=probe)
        service.capabilities()
        service.capabilities()
        assert len(calls) == 1
        service.refresh_capabilities()
        assert len(calls) == 2

    def test_diagnostics(self, service_factory):
        report = service_factory(webp=False).diagnostics()
        assert report["status"] == "limited"

    def test_bulk_process(self, service_factory, sample_pdf):
        service = service_factory()
        service.config.generate_on_upload = False
        for _ in range(3):
            service.register_document(sample_pdf)
        result = service.bulk_process(2)
        assert result.to_dict() == {"processed": 2, "failed": 0, "remaining": 1}
