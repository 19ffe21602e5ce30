"""Déploiement des artefacts rendus.

L'artefact est toujours placé dans `generated_themes_dir/<cible>/`, puis
selon la stratégie:
- GENERATED: rien de plus
- FILE: écrasement atomique de la destination (sauvegarde avant)
- SYMLINK: lien repointé atomiquement vers l'artefact généré

Un contenu inchangé n'est ni réécrit ni sauvegardé.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from loguru import logger

from ..config.sync_paths import MANIFEST_FILENAME
from ..config.sync_settings import Settings
from ..io.sync_artifact_io import (
    atomic_write,
    cleanup_broken_links,
    create_backup,
    points_to,
    read_bytes_if_file,
    replace_symlink,
    write_manifest,
)
from ..models.sync_models_run import DeploymentRecord, RenderedArtifact, fingerprint
from ..models.sync_models_target import DeployKind, TargetSpec
from ..sync_exceptions import BackupFailedError, SymlinkFailedError, WriteFailedError


def staging_path(settings: Settings, target: TargetSpec) -> Path:
    """Chemin de l'artefact généré pour une cible."""
    return settings.generated_themes_dir / target.name / target.output_file


def final_destination(settings: Settings, target: TargetSpec) -> Path:
    """Chemin où l'artefact est visible pour le programme cible."""
    if target.deploy is DeployKind.GENERATED or target.destination is None:
        return staging_path(settings, target)
    if target.deploy is DeployKind.SYMLINK and not settings.auto_symlink:
        return staging_path(settings, target)
    return target.destination


class Deployer:
    """Écrit les artefacts sur disque selon la stratégie de chaque cible."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def _now(self) -> str:
        return datetime.now().isoformat(timespec="seconds")

    def _backup(self, path: Path) -> Path | None:
        """Sauvegarde `path` si activé. Un échec bloque l'écriture."""
        if not self._settings.create_backups:
            return None
        try:
            return create_backup(path, self._settings.backup_dir, keep=self._settings.backup_keep)
        except OSError as e:
            raise BackupFailedError("Sauvegarde impossible", destination=path, cause=e) from e

    def _write(self, path: Path, content: bytes) -> None:
        try:
            atomic_write(path, content)
        except OSError as e:
            raise WriteFailedError("Écriture impossible", destination=path, cause=e) from e

    def _stage(self, target: TargetSpec, artifact: RenderedArtifact) -> tuple[Path, bool, bool]:
        """Écrit l'artefact dans le dossier généré.

        Returns:
            (chemin, existait_avant, modifié)
        """
        staged = staging_path(self._settings, target)
        cleanup_broken_links(staged.parent)
        previous = read_bytes_if_file(staged)
        if previous is not None and fingerprint(previous) == artifact.fingerprint:
            logger.debug(f"[Deployer] {target.name}: artefact généré inchangé")
            return staged, True, False
        self._write(staged, artifact.content)
        return staged, previous is not None, True

    def _deploy_file(self, destination: Path, artifact: RenderedArtifact) -> tuple[bool, Path | None, bool]:
        existing = read_bytes_if_file(destination)
        existed = destination.exists() or destination.is_symlink()
        if existing is not None and fingerprint(existing) == artifact.fingerprint:
            logger.debug(f"[Deployer] {destination} inchangé, pas de réécriture")
            return existed, None, False

        backup = self._backup(destination) if existed else None
        self._write(destination, artifact.content)
        return existed, backup, True

    def _deploy_symlink(self, link: Path, link_target: Path) -> tuple[bool, Path | None, bool]:
        existed = link.exists() or link.is_symlink()
        if points_to(link, link_target):
            logger.debug(f"[Deployer] {link} pointe déjà vers {link_target}")
            return existed, None, False

        backup = None
        if existed and not link.is_symlink():
            backup = self._backup(link)
        try:
            replace_symlink(link, link_target)
        except OSError as e:
            raise SymlinkFailedError("Lien symbolique impossible", destination=link, cause=e) from e
        return existed, backup, True

    def deploy(self, target: TargetSpec, artifact: RenderedArtifact) -> DeploymentRecord:
        """Déploie un artefact et renvoie l'enregistrement correspondant.

        Raises:
            BackupFailedError: sauvegarde préalable impossible (rien n'est écrit)
            WriteFailedError: écriture atomique impossible
            SymlinkFailedError: lien impossible à créer
        """
        logger.debug(f"[Deployer.deploy] {target.name} ({target.deploy.value})")
        staged, staged_existed, staged_changed = self._stage(target, artifact)

        destination = staged
        existed, backup, changed = staged_existed, None, staged_changed
        symlink_path: Path | None = None

        if target.deploy is DeployKind.FILE and target.destination is not None:
            destination = target.destination
            existed, backup, changed = self._deploy_file(destination, artifact)
        elif target.deploy is DeployKind.SYMLINK and target.destination is not None:
            if self._settings.auto_symlink:
                link_target = staged.parent if target.link_directory else staged
                existed, backup, link_changed = self._deploy_symlink(target.destination, link_target)
                destination = target.destination
                symlink_path = target.destination
                changed = staged_changed or link_changed
            else:
                logger.info(f"[Deployer] auto_symlink désactivé, {target.name} reste dans {staged.parent}")

        record = DeploymentRecord(
            destination=destination,
            existed_before=existed,
            backup_path=backup,
            timestamp=self._now(),
            fingerprint=artifact.fingerprint,
            changed=changed or staged_changed,
            symlink_path=symlink_path,
        )

        if record.changed or not (staged.parent / MANIFEST_FILENAME).exists():
            try:
                write_manifest(staged.parent, record)
            except OSError as e:
                raise WriteFailedError("Manifeste impossible à écrire", destination=staged.parent, cause=e) from e

        if record.changed:
            logger.success(f"[Deployer.deploy] {target.name} déployé -> {destination}")
        else:
            logger.info(f"[Deployer.deploy] {target.name} inchangé ({destination})")
        return record
