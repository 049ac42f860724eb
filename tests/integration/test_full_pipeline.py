# tests/integration/test_full_pipeline.py
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from conftest import make_pdf


@pytest.mark.integration
@pytest.mark.slow
class TestPreviewPipeline:
    """Upload -> process -> query -> evict with the real backends."""

    def test_upload_to_eviction(self, config, tmp_path: Path):
        from PIL import Image

        from pdfpreview.events import EventKind
        from pdfpreview.models import ExtractionMethod
        from pdfpreview.service import PreviewService

        service = PreviewService.from_config(config)
        processed, generated = [], []
        service.events.subscribe(EventKind.DOCUMENT_PROCESSED, processed.append)
        service.events.subscribe(EventKind.PREVIEW_GENERATED, generated.append)

        pdf = make_pdf(tmp_path / "contract.pdf", pages=2, title="Contract")
        doc = service.register_document(pdf, doc_id=42)

        record = service.store.get_record(doc.doc_id)
        assert record.processed
        assert record.page_count == 2
        assert record.title == "Contract"
        assert record.extraction_method == ExtractionMethod.PDFIUM
        assert len(processed) == 1
        assert len(generated) == 1

        preview = service.preview_path(42)
        assert preview is not None
        assert preview.name in {"42-p1.webp", "42-p1.jpg"}
        with Image.open(preview) as img:
            # medium preset: 150 DPI, within a pixel
            expected = (612 * 150 / 72, 792 * 150 / 72)
            assert all(abs(got - want) <= 1 for got, want in zip(img.size, expected))

        # Age the file past the retention window.
        old = (datetime.now(timezone.utc) - timedelta(days=config.cache_retention_days + 1)).timestamp()
        os.utime(preview, (old, old))
        assert service.run_scheduled_cleanup() == 1
        assert service.document_info(42).preview_url is None
        assert service.stats()["documents"]["pending"] == 1

        result = service.bulk_process()
        assert (result.processed, result.remaining) == (1, 0)
        assert service.document_info(42).preview_url is not None

    def test_state_survives_restart(self, config, tmp_path: Path):
        from pdfpreview.service import PreviewService

        first = PreviewService.from_config(config)
        first.register_document(make_pdf(tmp_path / "a.pdf"), doc_id=1)

        second = PreviewService.from_config(config)
        info = second.document_info(1)
        assert info.processed
        assert info.preview_url is not None
