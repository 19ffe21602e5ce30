"""Extraction de palette et rendu des templates de thème."""

from theme_sync.theme.sync_extractor import (
    ExtractionResult,
    SourceCandidate,
    SourceKind,
    build_theme_source,
    extract_palette,
    resolve_theme_dir,
)
from theme_sync.theme.sync_renderer import TemplateRenderer, build_context

__all__ = [
    "ExtractionResult",
    "SourceCandidate",
    "SourceKind",
    "TemplateRenderer",
    "build_context",
    "build_theme_source",
    "extract_palette",
    "resolve_theme_dir",
]
