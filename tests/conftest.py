# tests/conftest.py
"""Shared fixtures: isolated config, fake capability probes, fixture PDFs."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest


def make_pdf(
    path: Path,
    size: tuple[int, int] = (612, 792),
    pages: int = 1,
    title: str | None = None,
    author: str | None = None,
) -> Path:
    """Write a real PDF with Pillow; one pixel per point at 72 DPI."""
    from PIL import Image

    images = [Image.new("RGB", size, "white") for _ in range(pages)]
    extra = {}
    if title:
        extra["title"] = title
    if author:
        extra["author"] = author
    images[0].save(
        path,
        "PDF",
        resolution=72,
        save_all=True,
        append_images=images[1:],
        **extra,
    )
    return path


def make_snapshot(**overrides):
    """A fully capable server unless told otherwise."""
    from pdfpreview.models import CapabilitySnapshot

    values = dict(
        raster_engine=True,
        raster_engine_pdf=True,
        image_library=True,
        webp=True,
        jpeg=True,
    )
    values.update(overrides)
    return CapabilitySnapshot(**values)


def fake_rasterize(path: Path, dpi: int):
    from PIL import Image

    return Image.new("RGB", (17, 22), "white")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep host PDFPREVIEW_* variables out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("PDFPREVIEW_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config(tmp_path: Path):
    from pdfpreview.config import PdfPreviewConfig

    return PdfPreviewConfig(
        _env_file=None,
        home_dir=tmp_path / "home",
        upload_dir=tmp_path / "uploads",
        upload_url="https://example.test/uploads",
    )


@pytest.fixture
def store(config):
    from pdfpreview.store import RecordStore

    return RecordStore(config.state_file)


@pytest.fixture
def sample_pdf(tmp_path: Path) -> Path:
    return make_pdf(tmp_path / "sample.pdf")


@pytest.fixture
def service_factory(config) -> Callable[..., object]:
    """Build a PreviewService with a fake probe; rendering is faked by default."""
    from pdfpreview.service import PreviewService

    def _factory(rasterize=fake_rasterize, **snapshot_overrides):
        snapshot = make_snapshot(**snapshot_overrides)
        return PreviewService.from_config(config, probe_fn=lambda: snapshot, rasterize=rasterize)

    return _factory
