"""Modèles de résultat: artefacts rendus, déploiements et rapport de run."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Any


def fingerprint(content: bytes) -> str:
    """Empreinte sha256 d'un contenu rendu."""
    return hashlib.sha256(content).hexdigest()


@dataclass(frozen=True)
class RenderedArtifact:
    """Contenu produit pour une cible, avec sa destination et son empreinte."""

    target: str
    content: bytes
    destination: Path

    @property
    def fingerprint(self) -> str:
        """Empreinte sha256 du contenu."""
        return fingerprint(self.content)


@dataclass(frozen=True)
class DeploymentRecord:
    """Métadonnées d'une écriture."""

    destination: Path
    existed_before: bool
    backup_path: Path | None
    timestamp: str
    fingerprint: str
    changed: bool = True
    symlink_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        """Sérialise l'enregistrement (manifeste JSON)."""
        return {
            "destination": str(self.destination),
            "existed_before": self.existed_before,
            "backup_path": str(self.backup_path) if self.backup_path else None,
            "timestamp": self.timestamp,
            "fingerprint": self.fingerprint,
            "changed": self.changed,
            "symlink_path": str(self.symlink_path) if self.symlink_path else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeploymentRecord:
        """Reconstruit un enregistrement depuis le manifeste JSON."""
        backup = data.get("backup_path")
        symlink = data.get("symlink_path")
        return cls(
            destination=Path(data["destination"]),
            existed_before=bool(data.get("existed_before", False)),
            backup_path=Path(backup) if backup else None,
            timestamp=str(data.get("timestamp", "")),
            fingerprint=str(data.get("fingerprint", "")),
            changed=bool(data.get("changed", True)),
            symlink_path=Path(symlink) if symlink else None,
        )


class ActivationStatus(Enum):
    """Issue d'une activation."""

    ACTIVATED = auto()
    NOOP = auto()
    SKIPPED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class ActivationOutcome:
    """Résultat d'une activation (raison: ToolNotFound, ToolError(n), Timeout...)."""

    status: ActivationStatus
    message: str = ""
    reason: str | None = None
    exit_code: int | None = None

    @property
    def failed(self) -> bool:
        """True si l'activation a échoué."""
        return self.status is ActivationStatus.FAILED

    @classmethod
    def tool_not_found(cls, tool: str) -> ActivationOutcome:
        return cls(ActivationStatus.SKIPPED, f"{tool} introuvable", reason="ToolNotFound")

    @classmethod
    def tool_error(cls, exit_code: int, message: str = "") -> ActivationOutcome:
        return cls(ActivationStatus.FAILED, message, reason=f"ToolError({exit_code})", exit_code=exit_code)

    @classmethod
    def timeout(cls, message: str = "") -> ActivationOutcome:
        return cls(ActivationStatus.FAILED, message, reason="Timeout")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.name,
            "message": self.message,
            "reason": self.reason,
            "exit_code": self.exit_code,
        }


class TargetStatus(Enum):
    """Statut d'une cible dans un RunReport."""

    DEPLOYED = auto()
    DEPLOYED_ACTIVATION_FAILED = auto()
    SKIPPED = auto()
    FAILED = auto()


class Stage(Enum):
    """Étape du pipeline où une cible a échoué."""

    REQUIRES = "requires"
    RENDER = "render"
    DEPLOY = "deploy"
    ACTIVATE = "activate"


@dataclass(frozen=True)
class TargetResult:
    """Résultat d'une cible pour un run."""

    target: str
    status: TargetStatus
    stage: Stage | None = None
    reason: str = ""
    record: DeploymentRecord | None = None
    activation: ActivationOutcome | None = None

    @property
    def deployed(self) -> bool:
        """True si l'artefact a été déployé (activé ou non)."""
        return self.status in (TargetStatus.DEPLOYED, TargetStatus.DEPLOYED_ACTIVATION_FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "status": self.status.name,
            "stage": self.stage.value if self.stage else None,
            "reason": self.reason,
            "record": self.record.to_dict() if self.record else None,
            "activation": self.activation.to_dict() if self.activation else None,
        }


class RunOutcome(Enum):
    """Classification globale d'un run."""

    SUCCESS = auto()
    PARTIAL_FAILURE = auto()
    FAILURE = auto()


@dataclass
class RunReport:
    """Résultat agrégé d'un passage de l'orchestrateur."""

    started_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))
    finished_at: str | None = None
    source: str | None = None
    error: str | None = None
    watch_path: str | None = None
    palette: dict[str, str] | None = None
    targets: list[TargetResult] = field(default_factory=list)

    @property
    def outcome(self) -> RunOutcome:
        """Classe le run selon les statuts des cibles.

        - Extraction échouée -> FAILURE
        - Aucune cible en échec -> SUCCESS
        - Échecs + au moins une cible déployée -> PARTIAL_FAILURE
        - Échecs sans aucun déploiement -> FAILURE
        """
        if self.error is not None:
            return RunOutcome.FAILURE
        failed = [t for t in self.targets if t.status is TargetStatus.FAILED]
        if not failed:
            return RunOutcome.SUCCESS
        if any(t.deployed for t in self.targets):
            return RunOutcome.PARTIAL_FAILURE
        return RunOutcome.FAILURE

    def result_for(self, target: str) -> TargetResult | None:
        """Retourne le résultat d'une cible par nom."""
        for result in self.targets:
            if result.target == target:
                return result
        return None

    def failed_targets(self) -> list[TargetResult]:
        """Liste les cibles en échec."""
        return [t for t in self.targets if t.status is TargetStatus.FAILED]

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "outcome": self.outcome.name,
            "source": self.source,
            "watch_path": self.watch_path,
            "error": self.error,
            "palette": self.palette,
            "targets": [t.to_dict() for t in self.targets],
        }
