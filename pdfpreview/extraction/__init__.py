"""Metadata extraction and first-page preview rendering."""
from .metadata import MetadataExtractor, parse_structure
from .preview import QUALITY_PRESETS, PreviewGenerator, effective_resolution, resolve_preset

__all__ = [
    "MetadataExtractor",
    "PreviewGenerator",
    "QUALITY_PRESETS",
    "effective_resolution",
    "parse_structure",
    "resolve_preset",
]
