"""Détection des programmes thémables installés (standard et Flatpak)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..config.sync_paths import (
    CAVA_CONFIG_DIRS,
    SPICETIFY_EXTRA_PATHS,
    SPICETIFY_THEMES_DIRS,
    VENCORD_THEMES_DIRS,
    first_existing_dir,
)
from .sync_activators import vencord_settings_path
from .sync_system_commands import resolve_executable


@dataclass(frozen=True)
class DetectedProgram:
    """Programme détecté (ou non) sur la machine."""

    name: str
    installed: bool
    theme_dir: Path | None = None
    config_file: Path | None = None
    cli_path: str | None = None

    def describe(self) -> str:
        """Ligne lisible pour la commande `detect`."""
        if not self.installed:
            return f"{self.name}: non détecté"
        parts = [f"{self.name}: {self.theme_dir}"]
        if self.config_file is not None:
            parts.append(f"config={self.config_file}")
        if self.name != "vencord":
            parts.append(f"cli={self.cli_path or 'indisponible'}")
        return " | ".join(parts)


def detect_vencord() -> DetectedProgram:
    themes_dir = first_existing_dir(VENCORD_THEMES_DIRS)
    if themes_dir is None:
        return DetectedProgram("vencord", installed=False)
    return DetectedProgram("vencord", True, themes_dir, vencord_settings_path(themes_dir))


def detect_spicetify() -> DetectedProgram:
    themes_dir = first_existing_dir(SPICETIFY_THEMES_DIRS)
    if themes_dir is None:
        return DetectedProgram("spicetify", installed=False)
    cli = resolve_executable("spicetify", SPICETIFY_EXTRA_PATHS)
    return DetectedProgram("spicetify", True, themes_dir, cli_path=cli)


def detect_cava() -> DetectedProgram:
    config_dir = first_existing_dir(CAVA_CONFIG_DIRS)
    cli = resolve_executable("cava")
    if config_dir is None and cli is None:
        return DetectedProgram("cava", installed=False)
    config_file = config_dir / "config" if config_dir is not None else None
    return DetectedProgram("cava", True, config_dir, config_file, cli)


def detect_all() -> list[DetectedProgram]:
    """Sonde tous les programmes pris en charge."""
    programs = [detect_vencord(), detect_spicetify(), detect_cava()]
    for program in programs:
        logger.debug(f"[detect_all] {program.describe()}")
    return programs
