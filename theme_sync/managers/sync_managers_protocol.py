"""Protocols (interfaces) des managers.

Objectif: découpler l'orchestrateur des implémentations concrètes (DIP);
les tests substituent des outils factices.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from theme_sync.models.sync_models_run import ActivationOutcome, RunReport
    from theme_sync.models.sync_models_target import TargetSpec


@runtime_checkable
class ActivationTool(Protocol):
    """Capacité d'activation d'un thème dans un programme externe."""

    name: str

    def detect(self) -> bool:
        """True si l'outil est disponible sur la machine."""
        raise NotImplementedError

    def activate(self, target: "TargetSpec", deployed_path: Path) -> "ActivationOutcome":
        """Active le thème déployé."""
        raise NotImplementedError


@runtime_checkable
class PipelineRunner(Protocol):
    """Interface minimale de l'orchestrateur, utilisée par le watcher."""

    # pylint: disable=too-few-public-methods

    def run(self) -> "RunReport":
        """Exécute un passage complet du pipeline."""
        raise NotImplementedError
