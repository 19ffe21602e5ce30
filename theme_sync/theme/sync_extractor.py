"""Extraction de la palette depuis le thème courant.

Les candidats sont essayés dans l'ordre de priorité; le premier qui fournit
les 18 emplacements l'emporte. Un fichier valide mais incomplet est un échec
et l'extraction continue avec le suivant.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from loguru import logger

from ..io.sync_source_parsers import ParsedColors, parse_generic_object, parse_key_value, parse_nested_table
from ..models.sync_models_palette import Palette, missing_slots
from ..sync_exceptions import ExtractionError, SourceAttempt

REASON_NOT_FOUND = "not found"
REASON_PARSE_ERROR = "parse error"
REASON_INCOMPLETE = "incomplete"


class SourceKind(Enum):
    """Format d'un fichier source."""

    KEY_VALUE = "key_value"
    NESTED_TABLE = "nested_table"
    GENERIC_OBJECT = "generic_object"

    @classmethod
    def for_path(cls, path: Path) -> SourceKind:
        """Devine le format d'après l'extension."""
        suffix = path.suffix.lower()
        if suffix == ".toml":
            return cls.NESTED_TABLE
        if suffix == ".json":
            return cls.GENERIC_OBJECT
        return cls.KEY_VALUE


_PARSERS: dict[SourceKind, Callable[[str], ParsedColors]] = {
    SourceKind.KEY_VALUE: parse_key_value,
    SourceKind.NESTED_TABLE: parse_nested_table,
    SourceKind.GENERIC_OBJECT: parse_generic_object,
}


@dataclass(frozen=True)
class SourceCandidate:
    """Fichier candidat et son format."""

    path: Path
    kind: SourceKind


@dataclass(frozen=True)
class ExtractionResult:
    """Palette extraite et candidat retenu."""

    palette: Palette
    source: SourceCandidate


def resolve_theme_dir(watch_path: Path) -> Path:
    """Résout le dossier du thème courant.

    `watch_path` est en général un lien symbolique vers le dossier du thème;
    une cible relative est résolue par rapport au dossier parent du lien.
    """
    if watch_path.is_symlink():
        target = Path(os.readlink(watch_path))
        if not target.is_absolute():
            target = watch_path.parent / target
        logger.debug(f"[resolve_theme_dir] {watch_path} -> {target}")
        return target
    return watch_path


def build_theme_source(theme_dir: Path, priority: Iterable[str]) -> list[SourceCandidate]:
    """Construit la liste ordonnée des candidats pour `theme_dir`."""
    return [SourceCandidate(theme_dir / name, SourceKind.for_path(Path(name))) for name in priority]


def _try_candidate(candidate: SourceCandidate) -> tuple[Palette | None, SourceAttempt | None]:
    path = candidate.path
    if not path.is_file():
        return None, SourceAttempt(path, REASON_NOT_FOUND)

    try:
        text = path.read_text(encoding="utf-8")
        slots, extras = _PARSERS[candidate.kind](text)
    except (OSError, UnicodeDecodeError, ValueError) as e:
        return None, SourceAttempt(path, REASON_PARSE_ERROR, str(e))

    missing = missing_slots(slots)
    if missing:
        return None, SourceAttempt(path, REASON_INCOMPLETE, "manquants: " + ", ".join(missing))

    return Palette.from_slots(slots, extras), None


def extract_from_candidates(candidates: Iterable[SourceCandidate]) -> ExtractionResult:
    """Retourne la palette du premier candidat complet.

    Raises:
        ExtractionError: si aucun candidat ne fournit une palette complète
    """
    attempts: list[SourceAttempt] = []
    for candidate in candidates:
        palette, attempt = _try_candidate(candidate)
        if palette is not None:
            logger.success(f"[extract_from_candidates] Palette extraite de {candidate.path}")
            return ExtractionResult(palette, candidate)
        assert attempt is not None
        logger.debug(f"[extract_from_candidates] Échec: {attempt}")
        attempts.append(attempt)

    raise ExtractionError("Aucune source de thème valide (NoValidSource)", attempts)


def extract_palette(watch_path: Path, priority: Iterable[str]) -> ExtractionResult:
    """Extrait la palette du thème pointé par `watch_path`.

    Raises:
        ExtractionError: si aucun candidat ne fournit une palette complète
    """
    logger.debug(f"[extract_palette] Début - watch_path={watch_path}")
    theme_dir = resolve_theme_dir(watch_path)
    return extract_from_candidates(build_theme_source(theme_dir, priority))
