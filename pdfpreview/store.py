# pdfpreview/store.py
"""JSON-backed persistence for the document library and processing records.

Stands in for the host system's key-value storage: one processing record per
document, the document library itself, and a handful of scalar options such
as the last cache cleanup time.  Every mutation is written through to a single
state file with an atomic replace; reads are served from memory.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .models import Document, ProcessingRecord

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class RecordStore:
    """Documents, processing records and options keyed by document ID.

    Parameters
    ----------
    path : State file location.  ``None`` keeps everything in memory.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else None
        self._lock = threading.RLock()
        self._documents: dict[int, Document] = {}
        self._records: dict[int, ProcessingRecord] = {}
        self._options: dict[str, Any] = {}
        if self.path is not None:
            self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        assert self.path is not None
        if not self.path.exists():
            return
        try:
            state = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, ValueError):
            logger.warning("State file %s unreadable; starting empty", self.path)
            return
        if not isinstance(state, dict):
            return

        for raw in (state.get("documents") or {}).values():
            try:
                doc = Document.from_dict(raw)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed document entry: %r", raw)
                continue
            self._documents[doc.doc_id] = doc

        for raw in (state.get("records") or {}).values():
            try:
                record = ProcessingRecord.model_validate(raw)
            except ValidationError:
                logger.warning("Skipping malformed processing record: %r", raw)
                continue
            self._records[record.doc_id] = record

        options = state.get("options")
        if isinstance(options, dict):
            self._options = options

    def _flush(self) -> None:
        if self.path is None:
            return
        state = {
            "version": STATE_VERSION,
            "documents": {str(k): d.to_dict() for k, d in sorted(self._documents.items())},
            "records": {
                str(k): r.model_dump(mode="json") for k, r in sorted(self._records.items())
            },
            "options": self._options,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f".{self.path.name}.tmp")
        tmp.write_text(json.dumps(state, indent=2, default=str), encoding="utf-8")
        os.replace(tmp, self.path)

    # ------------------------------------------------------------------
    # Document library
    # ------------------------------------------------------------------

    def add_document(self, document: Document) -> Document:
        with self._lock:
            self._documents[document.doc_id] = document
            self._flush()
        return document

    def get_document(self, doc_id: int) -> Optional[Document]:
        with self._lock:
            return self._documents.get(doc_id)

    def remove_document(self, doc_id: int) -> None:
        """Forget a document and its processing record."""
        with self._lock:
            self._documents.pop(doc_id, None)
            self._records.pop(doc_id, None)
            self._flush()

    def list_documents(self) -> list[Document]:
        with self._lock:
            return [self._documents[k] for k in sorted(self._documents)]

    def next_document_id(self) -> int:
        with self._lock:
            return max(self._documents, default=0) + 1

    # ------------------------------------------------------------------
    # Processing records
    # ------------------------------------------------------------------

    def get_record(self, doc_id: int) -> Optional[ProcessingRecord]:
        """Return a detached copy; call :meth:`save_record` to persist edits."""
        with self._lock:
            record = self._records.get(doc_id)
            return record.model_copy(deep=True) if record is not None else None

    def save_record(self, record: ProcessingRecord) -> None:
        with self._lock:
            self._records[record.doc_id] = record.model_copy(deep=True)
            self._flush()

    def delete_record(self, doc_id: int) -> None:
        with self._lock:
            if self._records.pop(doc_id, None) is not None:
                self._flush()

    def clear_all_previews(self) -> int:
        """Reset preview fields on every record in one write."""
        with self._lock:
            for record in self._records.values():
                record.clear_preview()
            self._flush()
            return len(self._records)

    def _is_pending(self, doc: Document) -> bool:
        if not doc.is_pdf:
            return False
        record = self._records.get(doc.doc_id)
        if record is None:
            return True
        return not record.processed and record.extraction_error is None

    def pending_document_ids(self, limit: Optional[int] = None) -> list[int]:
        """PDF documents that have never been processed (or were reset)."""
        with self._lock:
            pending = [k for k in sorted(self._documents) if self._is_pending(self._documents[k])]
        return pending if limit is None else pending[: max(0, limit)]

    def count_pending(self) -> int:
        return len(self.pending_document_ids())

    def count_pdfs(self) -> int:
        with self._lock:
            return sum(1 for d in self._documents.values() if d.is_pdf)

    def count_processed(self) -> int:
        with self._lock:
            return sum(
                1
                for doc_id, record in self._records.items()
                if record.processed
                and doc_id in self._documents
                and self._documents[doc_id].is_pdf
            )

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def get_option(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._options.get(key, default)

    def set_option(self, key: str, value: Any) -> None:
        with self._lock:
            self._options[key] = value.isoformat() if isinstance(value, datetime) else value
            self._flush()
