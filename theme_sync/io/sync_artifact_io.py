"""Écritures sur disque: écriture atomique, sauvegardes, liens, manifeste.

Aucune logique de pipeline ici.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
import uuid
from datetime import datetime
from pathlib import Path

from loguru import logger

from ..config.sync_paths import MANIFEST_FILENAME
from ..models.sync_models_run import DeploymentRecord


def _touch_now(path: Path) -> None:
    """Force le mtime à 'maintenant' (utile car copy2 copie le mtime source)."""
    try:
        os.utime(path, None)
    except OSError:
        pass


def atomic_write(path: Path, content: bytes) -> None:
    """Écrit `content` dans `path` via fichier temporaire + os.replace.

    Un lecteur voit soit l'ancien contenu complet, soit le nouveau.

    Raises:
        OSError: si l'écriture ou le remplacement échoue
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
    logger.debug(f"[atomic_write] {len(content)} octets -> {path}")


def read_bytes_if_file(path: Path) -> bytes | None:
    """Retourne le contenu d'un fichier régulier (lien suivi), ou None."""
    try:
        if path.is_file():
            return path.read_bytes()
    except OSError as e:
        logger.debug(f"[read_bytes_if_file] Lecture impossible {path}: {e}")
    return None


def backup_name(path: Path, now: datetime | None = None) -> str:
    """Nom de sauvegarde `<basename>.<YYYYmmdd-HHMMSS>`."""
    ts = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{path.name}.{ts}"


def list_backups(backup_dir: Path, basename: str) -> list[Path]:
    """Sauvegardes existantes pour `basename`, plus vieilles d'abord."""
    if not backup_dir.is_dir():
        return []
    prefix = f"{basename}."
    backups = [p for p in backup_dir.iterdir() if p.name.startswith(prefix) and (p.is_file() or p.is_dir())]
    backups.sort(key=lambda p: (p.lstat().st_mtime, p.name))
    return backups


def prune_backups(backup_dir: Path, basename: str, *, keep: int) -> list[Path]:
    """Supprime les plus vieilles sauvegardes au-delà de `keep`."""
    keep = max(keep, 1)
    backups = list_backups(backup_dir, basename)
    to_delete = backups[:-keep] if len(backups) > keep else []
    deleted: list[Path] = []
    for p in to_delete:
        try:
            if p.is_dir() and not p.is_symlink():
                shutil.rmtree(p)
            else:
                p.unlink()
            deleted.append(p)
        except OSError:
            # Best-effort: on continue.
            continue
    if deleted:
        logger.debug(f"[prune_backups] {len(deleted)} ancienne(s) sauvegarde(s) supprimée(s) pour {basename}")
    return deleted


def create_backup(source: Path, backup_dir: Path, *, keep: int) -> Path:
    """Copie `source` dans `backup_dir` sous un nom horodaté unique.

    Un dossier est copié récursivement. Les sauvegardes au-delà de `keep`
    sont ensuite supprimées (best-effort).

    Returns:
        Le chemin de la sauvegarde créée.

    Raises:
        OSError: si la copie échoue
    """
    logger.debug(f"[create_backup] Sauvegarde de {source}")
    backup_dir.mkdir(parents=True, exist_ok=True)
    base = backup_dir / backup_name(source)
    backup_path = base

    # Assure un nom unique (borne la boucle pour éviter un blocage).
    for i in range(1, 1000):
        if not backup_path.exists() and not backup_path.is_symlink():
            break
        backup_path = base.with_name(f"{base.name}.{i}")
    else:
        backup_path = base.with_name(f"{base.name}.{uuid.uuid4().hex[:8]}")

    if source.is_dir() and not source.is_symlink():
        shutil.copytree(source, backup_path, symlinks=True)
    else:
        shutil.copy2(source, backup_path)
    _touch_now(backup_path)

    prune_backups(backup_dir, source.name, keep=keep)
    logger.success(f"[create_backup] Sauvegarde créée: {backup_path}")
    return backup_path


def replace_symlink(link_path: Path, target: Path) -> None:
    """Crée ou repointe atomiquement `link_path` vers `target`.

    Un lien temporaire est créé à côté puis renommé par-dessus l'ancienne
    entrée. Un dossier réel à la place du lien est supprimé avant.

    Raises:
        OSError: si la création ou le renommage échoue
    """
    link_path.parent.mkdir(parents=True, exist_ok=True)
    if link_path.is_dir() and not link_path.is_symlink():
        shutil.rmtree(link_path)

    tmp_link = link_path.with_name(f".{link_path.name}.{uuid.uuid4().hex[:8]}.tmp")
    os.symlink(target, tmp_link)
    try:
        os.replace(tmp_link, link_path)
    except OSError:
        try:
            os.unlink(tmp_link)
        except OSError:
            pass
        raise
    logger.debug(f"[replace_symlink] {link_path} -> {target}")


def points_to(link_path: Path, target: Path) -> bool:
    """True si `link_path` est un lien dont la cible résolue est `target`."""
    if not link_path.is_symlink():
        return False
    try:
        return link_path.resolve() == target.resolve()
    except OSError:
        return False


def cleanup_broken_links(directory: Path) -> list[Path]:
    """Supprime les liens symboliques cassés d'un dossier (best-effort)."""
    removed: list[Path] = []
    if not directory.is_dir():
        return removed
    for entry in directory.iterdir():
        if entry.is_symlink() and not entry.exists():
            try:
                entry.unlink()
                removed.append(entry)
            except OSError:
                continue
    if removed:
        logger.info(f"[cleanup_broken_links] {len(removed)} lien(s) cassé(s) supprimé(s) dans {directory}")
    return removed


def write_manifest(directory: Path, record: DeploymentRecord) -> Path:
    """Écrit le dernier DeploymentRecord dans `<directory>/manifest.json`."""
    path = directory / MANIFEST_FILENAME
    payload = json.dumps(record.to_dict(), indent=2, sort_keys=True) + "\n"
    atomic_write(path, payload.encode("utf-8"))
    return path


def read_manifest(directory: Path) -> DeploymentRecord | None:
    """Relit le manifeste d'une cible (None si absent ou illisible)."""
    path = directory / MANIFEST_FILENAME
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return DeploymentRecord.from_dict(data)
    except FileNotFoundError:
        return None
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"[read_manifest] Manifeste illisible {path}: {e}")
        return None


def write_json_state(path: Path, data: dict) -> None:
    """Écrit un fichier d'état JSON atomiquement."""
    payload = json.dumps(data, indent=2, sort_keys=True) + "\n"
    atomic_write(path, payload.encode("utf-8"))


def read_json_state(path: Path) -> dict | None:
    """Relit un fichier d'état JSON (None si absent ou invalide)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning(f"[read_json_state] État illisible {path}: {e}")
        return None
    return data if isinstance(data, dict) else None
