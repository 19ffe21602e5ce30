"""Rendu des templates Jinja2 pour chaque cible."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound
from jinja2.exceptions import UndefinedError
from loguru import logger

from ..models.sync_models_palette import Palette
from ..models.sync_models_run import RenderedArtifact
from ..models.sync_models_target import TargetSpec
from ..sync_exceptions import MissingTemplateError, RenderError, UnresolvedVariableError

PACKAGE_TEMPLATES_DIR: Final[Path] = Path(__file__).resolve().parent.parent / "templates"

# Ordre d'essai quand l'identifiant n'a pas d'extension.
TEMPLATE_SUFFIXES: Final[tuple[str, ...]] = (
    ".theme.css",
    ".ini",
    "-colors.ini",
    "-colors.css",
    ".css",
    ".conf",
    ".toml",
    ".json",
)

DEFAULT_TEMPLATE_VALUES: Final[dict[str, Any]] = {
    "theme_name": "Omarchy",
    "spicetify_theme": "text",
    "color_scheme": "Omarchify",
}


def build_context(palette: Palette, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Construit le contexte de rendu.

    Priorité croissante: valeurs par défaut, palette (`<nom>` = `#hex`,
    `<nom>_hex` = hex minuscule sans `#`), variables de la cible.
    """
    context: dict[str, Any] = dict(DEFAULT_TEMPLATE_VALUES)
    for name in sorted(palette.extras):
        color = palette.extras[name]
        context[name] = color.hex
        context[f"{name}_hex"] = color.bare_hex
    for name, color in palette.slots().items():
        context[name] = color.hex
        context[f"{name}_hex"] = color.bare_hex
    for key in sorted(variables or {}):
        context[key] = variables[key]  # type: ignore[index]
    return context


class TemplateRenderer:
    """Rend un template nommé avec une palette.

    Les templates de l'utilisateur (`templates_dir`) sont cherchés avant
    ceux livrés avec le paquet.
    """

    def __init__(self, templates_dir: Path | None = None):
        loaders = []
        if templates_dir is not None and templates_dir.is_dir():
            logger.debug(f"[TemplateRenderer] Templates utilisateur: {templates_dir}")
            loaders.append(FileSystemLoader(str(templates_dir)))
        loaders.append(FileSystemLoader(str(PACKAGE_TEMPLATES_DIR)))

        self._env = Environment(
            loader=ChoiceLoader(loaders),
            undefined=StrictUndefined,  # Erreur sur variable non définie
            autoescape=False,
            keep_trailing_newline=True,
        )

    def available_templates(self) -> list[str]:
        """Liste triée des templates disponibles."""
        return sorted(set(self._env.list_templates()))

    def resolve_name(self, template: str) -> str:
        """Retourne le nom de fichier complet d'un identifiant de template.

        Raises:
            MissingTemplateError: si aucun fichier ne correspond
        """
        available = self.available_templates()
        if template in available:
            return template
        for suffix in TEMPLATE_SUFFIXES:
            candidate = f"{template}{suffix}"
            if candidate in available:
                return candidate
        raise MissingTemplateError(f"Template introuvable: {template} (disponibles: {', '.join(available)})")

    def render(self, template: str, palette: Palette, variables: Mapping[str, Any] | None = None) -> str:
        """Rend un template et renvoie le texte.

        Raises:
            MissingTemplateError: identifiant inconnu
            UnresolvedVariableError: variable sans valeur
            RenderError: autre erreur de template
        """
        name = self.resolve_name(template)
        logger.debug(f"[TemplateRenderer.render] Rendu de {name}")
        try:
            return self._env.get_template(name).render(build_context(palette, variables))
        except TemplateNotFound as e:
            raise MissingTemplateError(f"Template introuvable: {e.name}") from e
        except UndefinedError as e:
            raise UnresolvedVariableError(f"{name}: {e.message}") from e
        except TemplateError as e:
            raise RenderError(f"{name}: {e}") from e
        except (TypeError, ValueError, ArithmeticError, LookupError) as e:
            # Type de variable incompatible avec l'expression du template.
            raise RenderError(f"{name}: {type(e).__name__}: {e}") from e

    def render_target(self, target: TargetSpec, palette: Palette, destination: Path) -> RenderedArtifact:
        """Rend la cible et empaquette le résultat en RenderedArtifact."""
        text = self.render(target.template, palette, target.variables)
        return RenderedArtifact(target=target.name, content=text.encode("utf-8"), destination=destination)
