# pdfpreview/events.py
"""Typed lifecycle events for external subscribers (indexers, UI refresh)."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Union

from .models import ExtractionMethod, Metadata, PreviewResult

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    DOCUMENT_PROCESSED = "document_processed"
    PREVIEW_GENERATED = "preview_generated"


@dataclass(frozen=True)
class DocumentProcessed:
    """Fired once ``process()`` has persisted metadata and preview state."""

    doc_id: int
    metadata: Metadata
    preview: PreviewResult


@dataclass(frozen=True)
class PreviewGenerated:
    """Fired after a preview file has been written and verified."""

    doc_id: int
    output_path: Path
    pdf_path: Path
    method: ExtractionMethod


Event = Union[DocumentProcessed, PreviewGenerated]
Handler = Callable[[Event], None]

_PAYLOAD_TYPES: dict[EventKind, type] = {
    EventKind.DOCUMENT_PROCESSED: DocumentProcessed,
    EventKind.PREVIEW_GENERATED: PreviewGenerated,
}


class EventBus:
    """Synchronous fire-and-forget dispatcher keyed by :class:`EventKind`."""

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[Handler]] = {kind: [] for kind in EventKind}
        self._lock = threading.Lock()

    def subscribe(self, kind: EventKind, handler: Handler) -> None:
        with self._lock:
            self._handlers[kind].append(handler)

    def unsubscribe(self, kind: EventKind, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers[kind]:
                self._handlers[kind].remove(handler)

    def emit(self, kind: EventKind, payload: Event) -> None:
        """Deliver *payload* to every subscriber of *kind*.

        Handler failures are logged and never reach the emitter.
        """
        expected = _PAYLOAD_TYPES[kind]
        if not isinstance(payload, expected):
            raise TypeError(f"{kind.value} expects {expected.__name__}, got {type(payload).__name__}")

        with self._lock:
            handlers = list(self._handlers[kind])

        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Event handler %r failed for %s", handler, kind.value)
