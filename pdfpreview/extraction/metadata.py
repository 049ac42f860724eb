# pdfpreview/extraction/metadata.py
"""PDF metadata extraction: pdfium first, structural byte parsing second.

The structural parser needs no backend at all.  It scans only the head of
the file, where well-formed PDFs keep their page tree and info dictionary,
and is best-effort: object streams and cross-reference streams hide page
objects from it, in which case it reports a single page.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from ..capabilities import CapabilityCache
from ..models import ExtractionMethod, Metadata, MetadataResult
from .raster import read_document_info, round_half_up

logger = logging.getLogger(__name__)

HEAD_BYTES = 100 * 1024
DEFAULT_WIDTH = 612  # US Letter, points
DEFAULT_HEIGHT = 792

_PAGE_RE = re.compile(rb"/Type\s*/Page(?!s)", re.IGNORECASE)
_NUMBER = rb"([-+]?[\d.]+)"
_MEDIABOX_RE = re.compile(
    rb"/MediaBox\s*\[\s*" + rb"\s+".join([_NUMBER] * 4) + rb"\s*\]",
    re.IGNORECASE,
)
_ESCAPE_RE = re.compile(rb"\\([nrt\\()])")
_ESCAPES = {b"n": b"\n", b"r": b"\r", b"t": b"\t", b"\\": b"\\", b"(": b"(", b")": b")"}
_UTF16_BOM = b"\xfe\xff"


def _info_patterns(key: bytes) -> tuple[re.Pattern[bytes], re.Pattern[bytes]]:
    literal = re.compile(rb"/" + key + rb"\s*\(((?:\\.|[^\\)])*)\)", re.IGNORECASE | re.DOTALL)
    hexstr = re.compile(rb"/" + key + rb"\s*<([0-9A-Fa-f\s]*)>", re.IGNORECASE)
    return literal, hexstr


_TITLE_RES = _info_patterns(b"Title")
_AUTHOR_RES = _info_patterns(b"Author")


# ---------------------------------------------------------------------------
# String decoding
# ---------------------------------------------------------------------------


def decode_literal(raw: bytes) -> bytes:
    """Resolve the ``\\n \\r \\t \\\\ \\( \\)`` escapes of a literal string."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], raw)


def decode_hex(raw: bytes) -> bytes:
    digits = re.sub(rb"\s+", b"", raw)
    if len(digits) % 2:
        digits += b"0"
    return bytes.fromhex(digits.decode("ascii"))


def bytes_to_text(raw: bytes) -> str:
    """UTF-16BE when the BOM is present, otherwise PDFDocEncoding (~latin-1)."""
    if raw.startswith(_UTF16_BOM):
        text = raw[len(_UTF16_BOM):].decode("utf-16-be", errors="replace")
    else:
        text = raw.decode("latin-1")
    # Collapse whitespace and drop control characters.
    return " ".join("".join(ch for ch in text if ch.isprintable() or ch.isspace()).split())


def _find_string(data: bytes, patterns: tuple[re.Pattern[bytes], re.Pattern[bytes]]) -> str:
    literal_re, hex_re = patterns
    literal = literal_re.search(data)
    hexed = hex_re.search(data)
    if literal is None and hexed is None:
        return ""
    if hexed is None or (literal is not None and literal.start() < hexed.start()):
        assert literal is not None
        return bytes_to_text(decode_literal(literal.group(1)))
    try:
        return bytes_to_text(decode_hex(hexed.group(1)))
    except ValueError:
        return ""


# ---------------------------------------------------------------------------
# Structural parser
# ---------------------------------------------------------------------------


def _media_box(data: bytes) -> Optional[tuple[int, int]]:
    match = _MEDIABOX_RE.search(data)
    if match is None:
        return None
    try:
        x1 = float(match.group(3))
        y1 = float(match.group(4))
    except ValueError:
        return None
    width, height = round_half_up(x1), round_half_up(y1)
    if width <= 0 or height <= 0:
        return None
    return width, height


def parse_structure(data: bytes) -> Metadata:
    """Heuristic metadata from raw PDF bytes; never fails.

    Any input, including bytes with no PDF structure at all, yields at least
    one page and US Letter dimensions.
    """
    metadata = Metadata(method=ExtractionMethod.STRUCTURAL)

    pages = len(_PAGE_RE.findall(data))
    metadata.page_count = max(1, pages)

    box = _media_box(data)
    if box is not None:
        metadata.width, metadata.height = box

    metadata.title = _find_string(data, _TITLE_RES)
    metadata.author = _find_string(data, _AUTHOR_RES)
    return metadata


def read_head(path: Path, size: int = HEAD_BYTES) -> bytes:
    with open(path, "rb") as fh:
        return fh.read(size)


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class MetadataExtractor:
    """Ordered fallback: pdfium (when available), then structural parsing."""

    def __init__(self, capabilities: CapabilityCache, head_bytes: int = HEAD_BYTES) -> None:
        self.capabilities = capabilities
        self.head_bytes = head_bytes

    def extract_metadata(self, pdf_path: Path) -> MetadataResult:
        """Return metadata for *pdf_path*; never raises.

        Fails only when the file itself cannot be read.
        """
        pdf_path = Path(pdf_path)

        if self.capabilities.get().raster_engine_pdf:
            try:
                metadata = read_document_info(pdf_path)
                logger.debug("pdfium metadata for %s: %s", pdf_path.name, metadata)
                return MetadataResult(metadata=metadata)
            except Exception as exc:
                logger.warning(
                    "pdfium metadata failed for %s (%s); using structural parser",
                    pdf_path.name,
                    exc,
                )

        try:
            data = read_head(pdf_path, self.head_bytes)
        except OSError as exc:
            logger.error("Cannot read %s: %s", pdf_path, exc)
            return MetadataResult(error=f"Failed to extract metadata: {exc}")

        metadata = parse_structure(data)
        logger.debug("Structural metadata for %s: %s", pdf_path.name, metadata)
        return MetadataResult(metadata=metadata)
