"""Exécution des commandes externes (spicetify, pgrep, notify-send)."""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

# Code retour conventionnel "commande introuvable".
EXIT_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandResult:
    """Résultat d'une commande système."""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """True si la commande a réussi."""
        return self.returncode == 0 and not self.timed_out


def resolve_executable(name: str, extra_dirs: Iterable[Path] = ()) -> str | None:
    """Cherche un exécutable dans le PATH puis dans `extra_dirs`.

    Returns:
        Chemin absolu de l'exécutable, ou None
    """
    base_path = os.environ.get("PATH", "")
    search_path = os.pathsep.join([base_path, *(str(d) for d in extra_dirs)])
    found = shutil.which(name, path=search_path)
    logger.debug(f"[resolve_executable] {name} -> {found}")
    return found


def run_command(cmd: Sequence[str], *, timeout: float | None = None) -> CommandResult:
    """Exécute `cmd` et retourne stdout/stderr + code retour.

    N'échoue jamais: commande introuvable -> 127, dépassement -> timed_out.
    """
    logger.info(f"[run_command] Exécution: {' '.join(cmd)}")
    try:
        res = subprocess.run(list(cmd), capture_output=True, text=True, check=False, timeout=timeout)
    except FileNotFoundError as e:
        logger.error(f"[run_command] ERREUR: Commande '{cmd[0]}' introuvable - {e}")
        return CommandResult(EXIT_NOT_FOUND, "", f"Commande '{cmd[0]}' introuvable")
    except subprocess.TimeoutExpired as e:
        logger.error(f"[run_command] ERREUR: délai dépassé ({timeout}s) pour {cmd[0]}")
        return CommandResult(-1, "", f"Délai dépassé après {e.timeout}s", timed_out=True)

    logger.debug(
        f"[run_command] Résultat: returncode={res.returncode}, "
        f"stdout_len={len(res.stdout)}, stderr_len={len(res.stderr)}"
    )
    if res.returncode == 0:
        logger.success(f"[run_command] Succès: {cmd[0]}")
    else:
        logger.error(f"[run_command] ERREUR: returncode={res.returncode}")
        if res.stderr:
            logger.error(f"[run_command] Stderr: {res.stderr[:200]}")
    return CommandResult(res.returncode, res.stdout, res.stderr)
