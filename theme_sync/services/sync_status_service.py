"""Service de statut: état du lien racine, configuration et derniers runs."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from ..config.sync_paths import LAST_RUN_FILENAME, WATCHER_STATE_FILENAME
from ..config.sync_settings import Settings
from ..io.sync_artifact_io import read_json_state, read_manifest


@dataclass
class StatusSnapshot:
    """Vue agrégée pour la commande `status`."""

    watch_path: Path
    watch_target: str | None
    watch_exists: bool
    generated_dir: Path
    flags: dict[str, bool]
    programs: list[dict[str, Any]] = field(default_factory=list)
    watcher: dict[str, Any] | None = None
    last_run: dict[str, Any] | None = None

    def to_lines(self) -> list[str]:
        """Formate le statut en lignes lisibles."""
        lines = [f"Thème surveillé: {self.watch_path}"]
        if self.watch_target is not None:
            lines.append(f"  -> {self.watch_target}" + ("" if self.watch_exists else " (cassé)"))
        elif not self.watch_exists:
            lines.append("  (absent)")
        lines.append(f"Dossier généré: {self.generated_dir}")
        lines.append("Options: " + ", ".join(f"{k}={'oui' if v else 'non'}" for k, v in self.flags.items()))

        lines.append("Programmes:")
        for program in self.programs:
            state = "activé" if program["enabled"] else "désactivé"
            line = f"  - {program['name']} ({program['deploy']}, {state})"
            if program.get("last_deploy"):
                line += f" dernier déploiement: {program['last_deploy']}"
            lines.append(line)

        if self.watcher:
            lines.append(
                f"Watcher: {self.watcher.get('state')} (pid {self.watcher.get('pid')}, "
                f"{self.watcher.get('runs', 0)} run(s))"
            )
        else:
            lines.append("Watcher: aucun état enregistré")

        if self.last_run:
            lines.append(
                f"Dernier run: {self.last_run.get('outcome')} à {self.last_run.get('finished_at')} "
                f"(source: {self.last_run.get('source')})"
            )
            for target in self.last_run.get("targets", []):
                reason = f" - {target['reason']}" if target.get("reason") else ""
                lines.append(f"  - {target.get('target')}: {target.get('status')}{reason}")
        else:
            lines.append("Dernier run: aucun")
        return lines


def collect_status(settings: Settings) -> StatusSnapshot:
    """Construit le statut courant à partir de la configuration et des fichiers d'état."""
    logger.debug("[collect_status] Début")
    watch_path = settings.watch_path
    watch_target: str | None = None
    if watch_path.is_symlink():
        try:
            watch_target = os.readlink(watch_path)
        except OSError:
            watch_target = None

    programs: list[dict[str, Any]] = []
    for program in settings.programs:
        record = read_manifest(settings.generated_themes_dir / program.name)
        programs.append(
            {
                "name": program.name,
                "enabled": program.enabled,
                "deploy": program.deploy.value,
                "last_deploy": record.timestamp if record else None,
            }
        )

    return StatusSnapshot(
        watch_path=watch_path,
        watch_target=watch_target,
        watch_exists=watch_path.exists(),
        generated_dir=settings.generated_themes_dir,
        flags={
            "auto_symlink": settings.auto_symlink,
            "auto_activate": settings.auto_activate,
            "create_backups": settings.create_backups,
        },
        programs=programs,
        watcher=read_json_state(settings.state_dir / WATCHER_STATE_FILENAME),
        last_run=read_json_state(settings.state_dir / LAST_RUN_FILENAME),
    )
