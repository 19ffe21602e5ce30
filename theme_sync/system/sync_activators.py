"""Activation des thèmes déployés dans les programmes externes.

Politique commune:
- outil absent -> SKIPPED (ToolNotFound)
- code retour non nul -> FAILED (ToolError(code))
- délai dépassé -> FAILED (Timeout)
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from loguru import logger

from ..config.sync_paths import CAVA_CONFIG_DIRS, SPICETIFY_EXTRA_PATHS
from ..io.sync_artifact_io import atomic_write
from ..managers.sync_managers_protocol import ActivationTool
from ..models.sync_models_run import ActivationOutcome, ActivationStatus
from ..models.sync_models_target import TargetSpec
from ..sync_exceptions import ActivationError, CommandError
from .sync_system_commands import EXIT_NOT_FOUND, CommandResult, resolve_executable, run_command

CommandRunner = Callable[..., CommandResult]

NONE_ACTIVATION = "none"


def _outcome_from_result(tool: str, result: CommandResult) -> ActivationOutcome:
    """Convertit l'échec d'une commande en ActivationOutcome."""
    if result.timed_out:
        return ActivationOutcome.timeout(f"{tool}: {result.stderr}")
    if result.returncode == EXIT_NOT_FOUND:
        return ActivationOutcome.tool_not_found(tool)
    return ActivationOutcome.tool_error(result.returncode, result.stderr.strip()[:200])


def vencord_settings_path(themes_dir: Path) -> Path:
    """settings.json de Vencord, à côté du dossier `themes`."""
    return themes_dir.parent / "settings" / "settings.json"


def enable_vencord_theme(settings_file: Path, theme_file: str) -> bool:
    """Ajoute `theme_file` à `enabledThemes` (crée le fichier si absent).

    Returns:
        True si le fichier a été modifié, False si le thème était déjà actif

    Raises:
        ActivationError: si settings.json est illisible ou mal formé
    """
    if settings_file.exists():
        try:
            settings = json.loads(settings_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ActivationError(f"settings.json Vencord illisible: {e}") from e
        if not isinstance(settings, dict):
            raise ActivationError("settings.json Vencord: objet JSON attendu")
    else:
        logger.warning(f"[enable_vencord_theme] {settings_file} absent, création")
        settings = {"plugins": {}}

    themes = settings.setdefault("enabledThemes", [])
    if not isinstance(themes, list):
        raise ActivationError("settings.json Vencord: enabledThemes n'est pas une liste")
    if theme_file in themes:
        logger.debug(f"[enable_vencord_theme] {theme_file} déjà actif")
        return False

    themes.append(theme_file)
    try:
        atomic_write(settings_file, (json.dumps(settings, indent=2) + "\n").encode("utf-8"))
    except OSError as e:
        raise ActivationError(f"Écriture impossible de {settings_file}: {e}") from e
    logger.success(f"[enable_vencord_theme] Thème Vencord activé: {theme_file}")
    return True


class NoopTool:
    """Consommateur qui surveille lui-même son fichier: rien à faire."""

    name = NONE_ACTIVATION

    def detect(self) -> bool:
        return True

    def activate(self, target: TargetSpec, deployed_path: Path) -> ActivationOutcome:
        del target, deployed_path
        return ActivationOutcome(ActivationStatus.NOOP, "Aucune activation requise")


class VencordTool:
    """Active le thème dans `enabledThemes` de settings.json."""

    name = "vencord"

    def detect(self) -> bool:
        # Pas de CLI: le dossier de thèmes suffit, il est sondé par `requires`.
        return True

    def activate(self, target: TargetSpec, deployed_path: Path) -> ActivationOutcome:
        settings_file = vencord_settings_path(deployed_path.parent)
        logger.debug(f"[VencordTool.activate] {target.name} -> {settings_file}")
        changed = enable_vencord_theme(settings_file, deployed_path.name)
        message = "Thème activé" if changed else "Thème déjà actif"
        return ActivationOutcome(ActivationStatus.ACTIVATED, message)


class SpicetifyTool:
    """Applique le schéma de couleurs via la CLI spicetify."""

    name = "spicetify"

    def __init__(self, *, timeout: float = 30.0, runner: CommandRunner = run_command):
        self._timeout = timeout
        self._runner = runner

    def _executable(self) -> str | None:
        return resolve_executable("spicetify", SPICETIFY_EXTRA_PATHS)

    def detect(self) -> bool:
        return self._executable() is not None

    def activate(self, target: TargetSpec, deployed_path: Path) -> ActivationOutcome:
        """Sélectionne le thème et le schéma puis lance `spicetify apply`.

        Raises:
            CommandError: si une étape renvoie un code non nul
        """
        exe = self._executable()
        if exe is None:
            return ActivationOutcome.tool_not_found(self.name)

        theme = str(target.variables.get("spicetify_theme", deployed_path.parent.name))
        scheme = str(target.variables.get("color_scheme", "Omarchify"))
        steps: list[Sequence[str]] = [
            [exe, "config", "current_theme", theme],
            [exe, "config", "color_scheme", scheme],
            [exe, "apply"],
        ]
        for cmd in steps:
            result = self._runner(cmd, timeout=self._timeout)
            if result.timed_out or result.returncode == EXIT_NOT_FOUND:
                return _outcome_from_result(self.name, result)
            if not result.ok:
                raise CommandError(
                    "Commande spicetify en échec",
                    command=" ".join(cmd[1:]),
                    returncode=result.returncode,
                    stderr=result.stderr.strip(),
                )

        return ActivationOutcome(ActivationStatus.ACTIVATED, f"Schéma {scheme} appliqué ({theme})")


class CavaTool:
    """Notifie l'utilisateur si cava tourne (rechargement manuel avec 'r')."""

    name = "cava"

    def __init__(self, *, timeout: float = 30.0, runner: CommandRunner = run_command):
        self._timeout = timeout
        self._runner = runner

    def detect(self) -> bool:
        return resolve_executable("cava") is not None or any(d.is_dir() for d in CAVA_CONFIG_DIRS)

    def activate(self, target: TargetSpec, deployed_path: Path) -> ActivationOutcome:
        del target, deployed_path
        if resolve_executable("pgrep") is None:
            return ActivationOutcome(ActivationStatus.ACTIVATED, "Config prête (chargée au prochain lancement)")

        running = self._runner(["pgrep", "-x", "cava"], timeout=self._timeout)
        if running.timed_out:
            return _outcome_from_result("pgrep", running)
        if running.returncode != 0:
            logger.debug("[CavaTool.activate] Aucune instance de cava")
            return ActivationOutcome(ActivationStatus.ACTIVATED, "Config prête (chargée au prochain lancement)")

        if resolve_executable("notify-send") is not None:
            notified = self._runner(
                [
                    "notify-send",
                    "-u",
                    "normal",
                    "-t",
                    "3000",
                    "-a",
                    "Omarchy Theme Sync",
                    "Thème cava mis à jour",
                    "Appuyez sur 'r' dans cava pour recharger",
                ],
                timeout=self._timeout,
            )
            if not notified.ok:
                logger.warning(f"[CavaTool.activate] Notification non envoyée: {notified.stderr[:200]}")
        return ActivationOutcome(ActivationStatus.ACTIVATED, "Config mise à jour (appuyez sur 'r' dans cava)")


def default_tools(timeout: float = 30.0) -> dict[str, ActivationTool]:
    """Outils d'activation disponibles, indexés par nom."""
    tools: list[ActivationTool] = [
        NoopTool(),
        VencordTool(),
        SpicetifyTool(timeout=timeout),
        CavaTool(timeout=timeout),
    ]
    return {tool.name: tool for tool in tools}


class Activator:
    """Dispatch de l'activation selon `TargetSpec.activation`."""

    def __init__(self, tools: Mapping[str, ActivationTool] | None = None, *, timeout: float = 30.0):
        self._tools = dict(tools) if tools is not None else default_tools(timeout)

    def activate(self, target: TargetSpec, deployed_path: Path) -> ActivationOutcome:
        """Active le thème d'une cible. N'échoue jamais: tout est converti en outcome."""
        tool = self._tools.get(target.activation)
        if tool is None:
            if target.activation == NONE_ACTIVATION:
                return ActivationOutcome(ActivationStatus.NOOP, "Aucune activation requise")
            logger.warning(f"[Activator] Outil d'activation inconnu: {target.activation}")
            return ActivationOutcome.tool_not_found(target.activation)

        if not tool.detect():
            logger.info(f"[Activator] {tool.name} introuvable, activation ignorée pour {target.name}")
            return ActivationOutcome.tool_not_found(tool.name)

        try:
            outcome = tool.activate(target, deployed_path)
        except CommandError as e:
            logger.error(f"[Activator] ERREUR commande {target.name}: {e}")
            return ActivationOutcome.tool_error(e.returncode or 1, (e.stderr or "")[:200])
        except (ActivationError, OSError) as e:
            logger.error(f"[Activator] ERREUR activation {target.name}: {e}")
            return ActivationOutcome(ActivationStatus.FAILED, str(e), reason="ActivationError")

        if outcome.failed:
            logger.warning(f"[Activator] {target.name}: {outcome.reason} {outcome.message}")
        else:
            logger.debug(f"[Activator] {target.name}: {outcome.status.name} {outcome.message}")
        return outcome
