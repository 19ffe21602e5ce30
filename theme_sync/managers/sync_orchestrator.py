"""Orchestrateur du pipeline: extraction -> rendu -> déploiement -> activation.

Un run lit un instantané de configuration, extrait la palette une seule fois,
puis traite chaque cible activée dans l'ordre. Les erreurs d'une cible sont
converties en résultat FAILED sans interrompre les autres.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from loguru import logger

from ..config.sync_paths import LAST_RUN_FILENAME
from ..config.sync_settings import Settings, load_settings
from ..io.sync_artifact_io import write_json_state
from ..models.sync_models_palette import Palette
from ..models.sync_models_run import RunOutcome, RunReport, Stage, TargetResult, TargetStatus
from ..models.sync_models_target import TargetSpec
from ..sync_exceptions import ConfigError, DeployError, ExtractionError, RenderError
from ..system.sync_activators import Activator
from ..theme.sync_extractor import extract_palette
from ..theme.sync_renderer import TemplateRenderer
from .sync_deployer import Deployer, final_destination

SettingsProvider = Callable[[], Settings]
ActivatorFactory = Callable[[Settings], Activator]


def _default_activator(settings: Settings) -> Activator:
    return Activator(timeout=settings.activation_timeout)


class SyncOrchestrator:
    """Exécute un passage complet du pipeline et produit un RunReport."""

    def __init__(
        self,
        settings_provider: SettingsProvider,
        *,
        activator_factory: ActivatorFactory = _default_activator,
    ):
        self._settings_provider = settings_provider
        self._activator_factory = activator_factory

    @classmethod
    def from_config_path(cls, config_path: Path, **kwargs) -> SyncOrchestrator:
        """Orchestrateur qui relit `config_path` au début de chaque run."""
        return cls(lambda: load_settings(config_path), **kwargs)

    def run(self) -> RunReport:
        """Exécute le pipeline. N'échoue pas: les erreurs sont dans le rapport."""
        logger.info("[SyncOrchestrator.run] Début")
        report = RunReport()

        try:
            settings = self._settings_provider()
        except ConfigError as e:
            logger.error(f"[SyncOrchestrator.run] ERREUR configuration: {e}")
            report.error = f"ConfigError: {e}"
            report.finished_at = datetime.now().isoformat(timespec="seconds")
            return report

        report.watch_path = str(settings.watch_path)
        try:
            extraction = extract_palette(settings.watch_path, settings.color_priority)
        except ExtractionError as e:
            logger.error(f"[SyncOrchestrator.run] ERREUR extraction: {e}")
            report.error = f"NoValidSource: {e}"
            self._finish(report, settings)
            return report

        report.source = str(extraction.source.path)
        report.palette = extraction.palette.to_dict()
        renderer = TemplateRenderer(settings.templates_dir)
        deployer = Deployer(settings)
        activator = self._activator_factory(settings) if settings.auto_activate else None

        for target in settings.enabled_programs():
            result = self._process_target(target, extraction.palette, settings, renderer, deployer, activator)
            report.targets.append(result)

        self._finish(report, settings)
        return report

    def _process_target(
        self,
        target: TargetSpec,
        palette: Palette,
        settings: Settings,
        renderer: TemplateRenderer,
        deployer: Deployer,
        activator: Activator | None,
    ) -> TargetResult:
        """Traite une cible; toute erreur métier devient un TargetResult."""
        if target.requires is not None and not target.requires.exists():
            logger.info(f"[SyncOrchestrator] {target.name} ignoré: {target.requires} absent")
            return TargetResult(target.name, TargetStatus.SKIPPED, Stage.REQUIRES, f"{target.requires} absent")

        try:
            artifact = renderer.render_target(target, palette, final_destination(settings, target))
        except RenderError as e:
            logger.error(f"[SyncOrchestrator] {target.name}: rendu impossible - {e}")
            return TargetResult(target.name, TargetStatus.FAILED, Stage.RENDER, f"{type(e).__name__}: {e}")

        try:
            record = deployer.deploy(target, artifact)
        except DeployError as e:
            logger.error(f"[SyncOrchestrator] {target.name}: déploiement impossible - {e}")
            return TargetResult(target.name, TargetStatus.FAILED, Stage.DEPLOY, f"{type(e).__name__}: {e}")

        if activator is None:
            return TargetResult(target.name, TargetStatus.DEPLOYED, record=record)

        outcome = activator.activate(target, record.destination)
        if outcome.failed:
            return TargetResult(
                target.name,
                TargetStatus.DEPLOYED_ACTIVATION_FAILED,
                Stage.ACTIVATE,
                f"{outcome.reason}: {outcome.message}",
                record=record,
                activation=outcome,
            )
        return TargetResult(target.name, TargetStatus.DEPLOYED, record=record, activation=outcome)

    def _finish(self, report: RunReport, settings: Settings) -> None:
        report.finished_at = datetime.now().isoformat(timespec="seconds")
        outcome = report.outcome
        if outcome is RunOutcome.SUCCESS:
            logger.success(f"[SyncOrchestrator.run] Succès - {len(report.targets)} cible(s)")
        else:
            logger.warning(f"[SyncOrchestrator.run] Terminé: {outcome.name}")

        path = settings.state_dir / LAST_RUN_FILENAME
        try:
            write_json_state(path, report.to_dict())
        except OSError as e:
            # Best-effort: le rapport reste disponible en mémoire.
            logger.warning(f"[SyncOrchestrator] Impossible d'écrire {path}: {e}")
