"""Chemins par défaut de Theme Sync.

Module séparé pour éviter les dépendances circulaires et clarifier les responsabilités.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final

CONFIG_ENV_VAR: Final[str] = "OMARCHY_THEME_SYNC_CONFIG"

CONFIG_DIR: Final[Path] = Path.home() / ".config" / "omarchy-theme-sync"
DEFAULT_CONFIG_PATH: Final[Path] = CONFIG_DIR / "config.toml"

# Omarchy expose le thème courant via un lien symbolique.
DEFAULT_WATCH_PATH: Final[Path] = Path.home() / ".config" / "omarchy" / "current" / "theme"
DEFAULT_GENERATED_DIR: Final[Path] = Path.home() / ".config" / "omarchy-themes" / "generated"
DEFAULT_BACKUP_DIR: Final[Path] = Path.home() / ".config" / "omarchy-themes" / "backups"
DEFAULT_STATE_DIR: Final[Path] = Path.home() / ".local" / "state" / "omarchy-theme-sync"

LAST_RUN_FILENAME: Final[str] = "last_run.json"
WATCHER_STATE_FILENAME: Final[str] = "watcher.json"
MANIFEST_FILENAME: Final[str] = "manifest.json"

# Répertoires de thèmes des programmes pris en charge (installation standard puis Flatpak).
VENCORD_THEMES_DIRS: Final[list[Path]] = [
    Path.home() / ".config" / "Vencord" / "themes",
    Path.home() / ".var" / "app" / "dev.vencord.Vesktop" / "config" / "Vencord" / "themes",
]
SPICETIFY_THEMES_DIRS: Final[list[Path]] = [
    Path.home() / ".config" / "spicetify" / "Themes",
    Path.home() / ".var" / "app" / "com.spotify.Client" / "config" / "spicetify" / "Themes",
]
CAVA_CONFIG_DIRS: Final[list[Path]] = [Path.home() / ".config" / "cava"]

# Emplacements hors PATH où spicetify est souvent installé.
SPICETIFY_EXTRA_PATHS: Final[list[Path]] = [
    Path.home() / ".spicetify",
    Path.home() / ".local" / "bin",
    Path("/usr/local/bin"),
]


def get_config_path(explicit: str | Path | None = None) -> Path:
    """Retourne le chemin du fichier de configuration à utiliser.

    Ordre: argument explicite, variable d'environnement, chemin par défaut.
    """
    if explicit:
        return Path(explicit).expanduser()
    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    return DEFAULT_CONFIG_PATH


def first_existing_dir(candidates: list[Path]) -> Path | None:
    """Retourne le premier répertoire existant parmi `candidates`.

    Returns:
        Path du répertoire, ou None si aucun n'existe
    """
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    return None
