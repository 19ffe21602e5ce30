"""Lecture/écriture de config.toml (instantané immuable par run).

Aucune logique de pipeline ici: ce module transforme le TOML en `Settings`
figé, et inversement pour `init-config`.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from loguru import logger

from ..io.sync_artifact_io import atomic_write
from ..models.sync_models_target import DeployKind, TargetSpec
from ..sync_exceptions import ConfigError
from .sync_paths import (
    CAVA_CONFIG_DIRS,
    DEFAULT_BACKUP_DIR,
    DEFAULT_GENERATED_DIR,
    DEFAULT_STATE_DIR,
    DEFAULT_WATCH_PATH,
    SPICETIFY_THEMES_DIRS,
    VENCORD_THEMES_DIRS,
)

DEFAULT_COLOR_PRIORITY: tuple[str, ...] = ("alacritty.toml", "custom_theme.json", "btop.theme")


def default_programs() -> tuple[TargetSpec, ...]:
    """Cibles fournies par défaut (Vencord, Spicetify, cava)."""
    vencord_dir = VENCORD_THEMES_DIRS[0]
    spicetify_dir = SPICETIFY_THEMES_DIRS[0]
    cava_dir = CAVA_CONFIG_DIRS[0]
    return (
        TargetSpec(
            name="omarcord",
            template="omarcord",
            output_file="omarcord.theme.css",
            deploy=DeployKind.FILE,
            destination=vencord_dir / "omarcord.theme.css",
            requires=vencord_dir,
            activation="vencord",
        ),
        TargetSpec(
            name="omarchify",
            template="omarchify-colors",
            output_file="color.ini",
            deploy=DeployKind.SYMLINK,
            destination=spicetify_dir / "text" / "color.ini",
            requires=spicetify_dir,
            activation="spicetify",
            variables={"spicetify_theme": "text", "color_scheme": "Omarchify"},
        ),
        TargetSpec(
            name="omarcava",
            template="omarcava",
            output_file="omarchy",
            deploy=DeployKind.FILE,
            destination=cava_dir / "themes" / "omarchy",
            requires=cava_dir,
            activation="cava",
        ),
    )


@dataclass(frozen=True)
class Settings:
    """Instantané de configuration lu au début de chaque run."""

    watch_path: Path = DEFAULT_WATCH_PATH
    generated_themes_dir: Path = DEFAULT_GENERATED_DIR
    color_priority: tuple[str, ...] = DEFAULT_COLOR_PRIORITY
    programs: tuple[TargetSpec, ...] = field(default_factory=default_programs)
    auto_symlink: bool = True
    auto_activate: bool = True
    create_backups: bool = True
    backup_dir: Path = DEFAULT_BACKUP_DIR
    backup_keep: int = 5
    state_dir: Path = DEFAULT_STATE_DIR
    templates_dir: Path | None = None
    debounce_seconds: float = 0.5
    poll_interval: float = 1.0
    activation_timeout: float = 30.0

    def enabled_programs(self) -> list[TargetSpec]:
        """Cibles activées, dans l'ordre de configuration."""
        return [p for p in self.programs if p.enabled]

    def with_overrides(self, **changes: Any) -> Settings:
        """Retourne une copie modifiée (l'instance reste immuable)."""
        return replace(self, **changes)


_PATH_KEYS = ("watch_path", "generated_themes_dir", "backup_dir", "state_dir", "templates_dir")
_BOOL_KEYS = ("auto_symlink", "auto_activate", "create_backups")
_FLOAT_KEYS = ("debounce_seconds", "poll_interval", "activation_timeout")


def _expand(value: Any, key: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' doit être un chemin (chaîne non vide)")
    return Path(value).expanduser()


def _parse_variables(raw: Any, program: str) -> dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"programs[{program}].variables doit être une table")
    variables: dict[str, Any] = {}
    for key, value in raw.items():
        if not isinstance(value, (str, int, float, bool)):
            raise ConfigError(f"programs[{program}].variables.{key}: valeur primitive attendue")
        variables[str(key)] = value
    return variables


def parse_program(raw: Any) -> TargetSpec:
    """Construit un TargetSpec depuis une table `[[programs]]`.

    Raises:
        ConfigError: si un champ requis manque ou a un type invalide
    """
    if not isinstance(raw, Mapping):
        raise ConfigError("Chaque entrée de 'programs' doit être une table")

    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigError("programs: champ 'name' requis")

    for key in ("template", "output_file"):
        if not isinstance(raw.get(key), str) or not raw.get(key):
            raise ConfigError(f"programs[{name}]: champ '{key}' requis")

    try:
        deploy = DeployKind.parse(raw.get("deploy", DeployKind.GENERATED.value))
        return TargetSpec(
            name=name,
            template=raw["template"],
            output_file=raw["output_file"],
            enabled=bool(raw.get("enabled", True)),
            variables=_parse_variables(raw.get("variables"), name),
            deploy=deploy,
            destination=_expand(raw["destination"], f"{name}.destination") if "destination" in raw else None,
            link_directory=bool(raw.get("link_directory", False)),
            requires=_expand(raw["requires"], f"{name}.requires") if "requires" in raw else None,
            activation=str(raw.get("activation", "none")),
        )
    except ValueError as e:
        raise ConfigError(f"programs[{name}]: {e}") from e


def parse_settings(data: Mapping[str, Any]) -> Settings:
    """Convertit le contenu TOML décodé en Settings.

    Les clés absentes prennent la valeur par défaut.
    """
    changes: dict[str, Any] = {}

    for key in _PATH_KEYS:
        if key in data:
            changes[key] = _expand(data[key], key)

    for key in _BOOL_KEYS:
        if key in data:
            if not isinstance(data[key], bool):
                raise ConfigError(f"'{key}' doit être un booléen")
            changes[key] = data[key]

    for key in _FLOAT_KEYS:
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ConfigError(f"'{key}' doit être un nombre positif")
            changes[key] = float(value)

    if "backup_keep" in data:
        keep = data["backup_keep"]
        if isinstance(keep, bool) or not isinstance(keep, int) or keep < 1:
            raise ConfigError("'backup_keep' doit être un entier >= 1")
        changes["backup_keep"] = keep

    if "color_priority" in data:
        priority = data["color_priority"]
        if not isinstance(priority, list) or not all(isinstance(p, str) for p in priority):
            raise ConfigError("'color_priority' doit être une liste de noms de fichiers")
        changes["color_priority"] = tuple(priority)

    if "programs" in data:
        programs = data["programs"]
        if not isinstance(programs, list):
            raise ConfigError("'programs' doit être une liste de tables [[programs]]")
        changes["programs"] = tuple(parse_program(p) for p in programs)

    return Settings(**changes)


def load_settings(path: Path) -> Settings:
    """Lit config.toml et renvoie un instantané immuable.

    Fichier absent -> configuration par défaut (avertissement).

    Raises:
        ConfigError: si le fichier est illisible ou invalide
    """
    logger.debug(f"[load_settings] Lecture {path}")
    if not path.exists():
        logger.warning(f"[load_settings] Configuration absente: {path}, utilisation des valeurs par défaut")
        return Settings()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Lecture impossible de {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"TOML invalide dans {path}: {e}") from e

    settings = parse_settings(data)
    logger.debug(f"[load_settings] Succès - {len(settings.programs)} programme(s) configuré(s)")
    return settings


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_settings(settings: Settings) -> str:
    """Formate des Settings en texte TOML.

    Returns:
        Le texte prêt à écrire dans config.toml.
    """
    lines: list[str] = [
        "# Configuration Omarchy Theme Sync",
        "",
        f"watch_path = {_toml_value(str(settings.watch_path))}",
        f"generated_themes_dir = {_toml_value(str(settings.generated_themes_dir))}",
        f"color_priority = {_toml_value(list(settings.color_priority))}",
        f"auto_symlink = {_toml_value(settings.auto_symlink)}",
        f"auto_activate = {_toml_value(settings.auto_activate)}",
        f"create_backups = {_toml_value(settings.create_backups)}",
        f"backup_dir = {_toml_value(str(settings.backup_dir))}",
        f"backup_keep = {_toml_value(settings.backup_keep)}",
        f"state_dir = {_toml_value(str(settings.state_dir))}",
    ]
    if settings.templates_dir is not None:
        lines.append(f"templates_dir = {_toml_value(str(settings.templates_dir))}")
    lines.extend(
        [
            f"debounce_seconds = {_toml_value(settings.debounce_seconds)}",
            f"poll_interval = {_toml_value(settings.poll_interval)}",
            f"activation_timeout = {_toml_value(settings.activation_timeout)}",
        ]
    )

    for program in settings.programs:
        data = program.to_dict()
        variables = data.pop("variables", None)
        lines.extend(["", "[[programs]]"])
        lines.extend(f"{key} = {_toml_value(value)}" for key, value in data.items())
        if variables:
            lines.append("")
            lines.append("[programs.variables]")
            lines.extend(f"{key} = {_toml_value(value)}" for key, value in variables.items())

    return "\n".join(lines) + "\n"


def write_default_config(path: Path, *, force: bool = False) -> Path:
    """Écrit une configuration par défaut dans `path`.

    Raises:
        ConfigError: si le fichier existe déjà (sans `force`) ou n'est pas inscriptible
    """
    if path.exists() and not force:
        raise ConfigError(f"{path} existe déjà (utilisez --force pour l'écraser)")

    try:
        atomic_write(path, format_settings(Settings()).encode("utf-8"))
    except OSError as e:
        raise ConfigError(f"Écriture impossible de {path}: {e}") from e
    logger.success(f"[write_default_config] Configuration écrite: {path}")
    return path
