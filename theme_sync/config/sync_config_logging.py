"""Configuration du système de logging avec Loguru.

Politique:
- Sans flag: aucun handler -> pas de logs.
- --verbose: INFO.
- --debug: DEBUG (+ backtrace/diagnose).
- Mode watch: fichier rotatif en plus de la console.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Final

from loguru import logger

# Niveaux de logging
DEBUG: Final[str] = "DEBUG"
INFO: Final[str] = "INFO"
WARNING: Final[str] = "WARNING"

_DEBUG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
_SHORT_FORMAT: Final[str] = "<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | <level>{message}</level>"


def configure_logging(*, debug: bool, verbose: bool = False, log_dir: Path | None = None) -> None:
    """Configure Loguru pour tout le processus.

    Args:
        debug: Active le niveau DEBUG (backtrace + diagnose)
        verbose: Active le niveau INFO
        log_dir: Si fourni, ajoute un fichier rotatif dans ce répertoire
    """
    logger.remove()

    if debug or verbose:
        level = DEBUG if debug else INFO
        logger.add(
            sys.stderr,
            level=level,
            format=_DEBUG_FORMAT if debug else _SHORT_FORMAT,
            colorize=True,
            backtrace=debug,
            diagnose=debug,
            enqueue=True,
        )

    if log_dir is not None:
        add_file_logging(log_dir, level=DEBUG if debug else INFO)


def add_file_logging(log_dir: Path, *, level: str = INFO) -> None:
    """Ajoute un handler fichier rotatif avec compression.

    Best-effort: si le répertoire ne peut pas être créé, on continue sans fichier.
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"[add_file_logging] Impossible de créer {log_dir}: {e}")
        return

    logger.add(
        log_dir / "theme_sync_{time:YYYY-MM-DD}.log",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
        level=level,
        rotation="10 MB",  # Rotation à 10 MB
        retention="7 days",  # Conserver 7 jours
        compression="zip",  # Compresser les anciens logs
        encoding="utf-8",
    )
    logger.debug(f"[add_file_logging] Logs fichier actifs dans {log_dir} (niveau={level})")
