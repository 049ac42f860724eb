# pdfpreview/extraction/raster.py
"""In-process pdfium access and image utilities.

Uses pypdfium2, so no system dependencies (unlike ImageMagick or poppler)
and no external commands.  pdfium is not thread-safe: every call into it
goes through :data:`PDFIUM_LOCK`.
"""

from __future__ import annotations

import math
import threading
from pathlib import Path

from PIL import Image

from ..models import ExtractionMethod, Metadata

POINTS_PER_INCH = 72
WHITE = (255, 255, 255)

PDFIUM_LOCK = threading.Lock()


def round_half_up(value: float) -> int:
    """Round point sizes the same way on every extraction path."""
    return int(math.floor(value + 0.5))


def read_document_info(path: Path) -> Metadata:
    """Page count, page-1 size in points and the info dictionary.

    Only the page geometry is loaded; nothing is rendered.  Raises whatever
    pdfium raises for unreadable or encrypted files.
    """
    import pypdfium2 as pdfium

    with PDFIUM_LOCK:
        pdf = pdfium.PdfDocument(str(path))
        try:
            page_count = len(pdf)
            if page_count < 1:
                raise ValueError(f"{path.name} has no pages")
            page = pdf[0]
            try:
                width, height = page.get_size()
            finally:
                page.close()
            info = pdf.get_metadata_dict()
        finally:
            pdf.close()

    return Metadata(
        page_count=page_count,
        width=round_half_up(width),
        height=round_half_up(height),
        title=(info.get("Title") or "").strip(),
        author=(info.get("Author") or "").strip(),
        method=ExtractionMethod.PDFIUM,
    )


def render_first_page(path: Path, dpi: int) -> Image.Image:
    """Rasterize page 1 at *dpi* and return an opaque RGB image.

    The scale is handed to pdfium before decoding, so the page is drawn at
    the target resolution rather than resampled afterwards.  Form fields
    and annotations are drawn into the same bitmap.
    """
    import pypdfium2 as pdfium

    with PDFIUM_LOCK:
        pdf = pdfium.PdfDocument(str(path))
        try:
            page = pdf[0]
            try:
                bitmap = page.render(
                    scale=dpi / POINTS_PER_INCH,
                    fill_color=(255, 255, 255, 255),
                    may_draw_forms=True,
                )
                try:
                    image = flatten_to_rgb(bitmap.to_pil())
                finally:
                    bitmap.close()
            finally:
                page.close()
        finally:
            pdf.close()
    return image


def flatten_to_rgb(image: Image.Image) -> Image.Image:
    """Composite *image* onto a white canvas.

    Transparent regions become white instead of black, and the result is a
    new image carrying no ``info`` (EXIF, ICC, XMP) from the source.
    """
    canvas = Image.new("RGB", image.size, WHITE)
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if has_alpha:
        rgba = image.convert("RGBA")
        canvas.paste(rgba, mask=rgba.getchannel("A"))
    else:
        canvas.paste(image.convert("RGB"))
    return canvas
