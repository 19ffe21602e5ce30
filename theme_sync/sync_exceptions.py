"""Module d'exceptions personnalisées pour Omarchy Theme Sync.

Fournit une hiérarchie d'exceptions spécifiques à chaque étape du pipeline
(extraction, rendu, déploiement, activation) afin que l'orchestrateur puisse
isoler les erreurs par cible.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class ThemeSyncError(Exception):
    """Exception de base pour toutes les erreurs de Theme Sync.

    Toutes les exceptions spécifiques à l'application héritent de cette classe.
    Permet de capturer toutes les erreurs métier avec `except ThemeSyncError`.

    Example:
        try:
            orchestrator.run()
        except ThemeSyncError as e:
            logger.error(f"Erreur pipeline: {e}")
    """


class ConfigError(ThemeSyncError):
    """Erreur liée au fichier de configuration.

    Levée lorsque config.toml est illisible, syntaxiquement invalide ou
    contient des valeurs du mauvais type.

    Example:
        if not isinstance(raw["programs"], list):
            raise ConfigError("'programs' doit être une liste de tables")
    """


@dataclass(frozen=True)
class SourceAttempt:
    """Trace d'une tentative d'extraction sur un fichier source."""

    path: Path
    reason: str
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.path}: {self.reason} ({self.detail})"
        return f"{self.path}: {self.reason}"


class ExtractionError(ThemeSyncError):
    """Aucune source de thème n'a fourni une palette complète (NoValidSource).

    Seule erreur fatale pour un run complet: aucune cible n'est touchée.

    Attributes:
        attempts: Liste des chemins essayés avec la raison de chaque échec
    """

    def __init__(self, message: str, attempts: list[SourceAttempt] | None = None):
        """Initialise ExtractionError avec la liste des tentatives.

        Args:
            message: Message d'erreur descriptif
            attempts: Tentatives effectuées, dans l'ordre de priorité
        """
        super().__init__(message)
        self.attempts: list[SourceAttempt] = list(attempts or [])

    def __str__(self) -> str:
        """Représentation textuelle enrichie de l'erreur."""
        base = super().__str__()
        if not self.attempts:
            return base
        return base + " | " + " ; ".join(str(a) for a in self.attempts)


class RenderError(ThemeSyncError):
    """Erreur de rendu d'un template (fatale pour une seule cible)."""


class MissingTemplateError(RenderError):
    """Identifiant de template inconnu.

    Example:
        raise MissingTemplateError("Template introuvable: omarcord")
    """


class UnresolvedVariableError(RenderError):
    """Le template référence une variable sans valeur ni défaut."""


class DeployError(ThemeSyncError):
    """Erreur de déploiement d'un artefact (fatale pour une seule cible).

    Attributes:
        destination: Chemin de destination concerné
        cause: Exception sous-jacente (optionnelle)
    """

    def __init__(self, message: str, destination: Path | str | None = None, cause: BaseException | None = None):
        """Initialise DeployError avec le contexte de destination.

        Args:
            message: Message d'erreur descriptif
            destination: Chemin de destination (optionnel)
            cause: Exception d'origine (optionnel)
        """
        super().__init__(message)
        self.destination = Path(destination) if destination is not None else None
        self.cause = cause

    def __str__(self) -> str:
        """Représentation textuelle enrichie de l'erreur."""
        parts = [super().__str__()]
        if self.destination is not None:
            parts.append(f"Destination: {self.destination}")
        if self.cause is not None:
            parts.append(f"Cause: {self.cause}")
        return " | ".join(parts)


class BackupFailedError(DeployError):
    """La sauvegarde préalable a échoué: l'écriture est bloquée."""


class WriteFailedError(DeployError):
    """L'écriture atomique de l'artefact a échoué."""


class SymlinkFailedError(DeployError):
    """La création ou le remplacement du lien symbolique a échoué."""


class ActivationError(ThemeSyncError):
    """Erreur lors de l'activation d'un thème dans un programme externe.

    N'est jamais escaladée en échec de cible si le déploiement a réussi.
    """


class CommandError(ThemeSyncError):
    """Erreur lors de l'exécution d'une commande externe.

    Attributes:
        command: La commande qui a échoué
        returncode: Code de retour
        stderr: Sortie d'erreur

    Example:
        result = run_command(["spicetify", "apply"], timeout=30)
        if result.returncode != 0:
            raise CommandError("spicetify apply a échoué", command="spicetify apply",
                               returncode=result.returncode, stderr=result.stderr)
    """

    def __init__(
        self,
        message: str,
        command: str | None = None,
        returncode: int | None = None,
        stderr: str | None = None,
    ):
        """Initialise CommandError avec contexte de la commande.

        Args:
            message: Message d'erreur descriptif
            command: Commande qui a échoué (optionnel)
            returncode: Code de retour de la commande (optionnel)
            stderr: Sortie d'erreur (optionnel)
        """
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        """Représentation textuelle enrichie de l'erreur."""
        parts = [super().__str__()]
        if self.command:
            parts.append(f"Commande: {self.command}")
        if self.returncode is not None:
            parts.append(f"Code retour: {self.returncode}")
        if self.stderr:
            parts.append(f"Stderr: {self.stderr[:200]}")  # Limiter la taille
        return " | ".join(parts)
