"""Modèles (DTO) décrivant une cible de synchronisation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType

VariableValue = str | int | float | bool


class DeployKind(Enum):
    """Stratégie de déploiement d'une cible (variante fermée)."""

    GENERATED = "generated"  # artefact seulement dans generated_themes_dir
    FILE = "file"  # écrasement atomique d'un fichier destination
    SYMLINK = "symlink"  # lien symbolique repointé vers l'artefact généré

    @classmethod
    def parse(cls, raw: str) -> DeployKind:
        """Convertit une valeur de configuration en DeployKind.

        Raises:
            ValueError: si la valeur est inconnue
        """
        try:
            return cls(str(raw).strip().lower())
        except ValueError as e:
            allowed = ", ".join(k.value for k in cls)
            raise ValueError(f"Stratégie de déploiement inconnue: {raw!r} (attendu: {allowed})") from e


@dataclass(frozen=True)
class TargetSpec:
    """Programme cible: template, fichier de sortie, déploiement, activation."""

    name: str
    template: str
    output_file: str
    enabled: bool = True
    variables: Mapping[str, VariableValue] = field(default_factory=dict)
    deploy: DeployKind = DeployKind.GENERATED
    destination: Path | None = None
    link_directory: bool = False
    requires: Path | None = None
    activation: str = "none"

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))
        if self.deploy is not DeployKind.GENERATED and self.destination is None:
            raise ValueError(f"La cible '{self.name}' ({self.deploy.value}) nécessite une destination")

    def to_dict(self) -> dict[str, object]:
        """Sérialise la cible pour la configuration ou les rapports."""
        data: dict[str, object] = {
            "name": self.name,
            "enabled": self.enabled,
            "template": self.template,
            "output_file": self.output_file,
            "deploy": self.deploy.value,
            "activation": self.activation,
        }
        if self.destination is not None:
            data["destination"] = str(self.destination)
        if self.link_directory:
            data["link_directory"] = True
        if self.requires is not None:
            data["requires"] = str(self.requires)
        if self.variables:
            data["variables"] = dict(sorted(self.variables.items()))
        return data
