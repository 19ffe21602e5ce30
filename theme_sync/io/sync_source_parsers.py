"""Parseurs des formats de thème sources.

Chaque parseur lit un texte et renvoie deux tables `nom -> Color`:
les emplacements standards trouvés et les couleurs annexes (extras).
La complétude est vérifiée par l'extracteur, pas ici.
"""

from __future__ import annotations

import json
import re
import tomllib
from collections.abc import Mapping
from typing import Any

from loguru import logger

from ..models.sync_models_palette import ANSI_SLOTS, BASE_COLORS, SLOT_NAMES, Color

ParsedColors = tuple[dict[str, Color], dict[str, Color]]

# theme[main_bg]="#1e1e2e"  |  main_bg = #1e1e2e  |  color1="#ff0000"
_BRACKET_RE = re.compile(r"""^\s*theme\[(?P<key>[A-Za-z0-9_]+)\]\s*=\s*(?P<value>.+?)\s*$""")
_PLAIN_RE = re.compile(r"""^\s*(?P<key>[A-Za-z][A-Za-z0-9_]*)\s*[=:]\s*(?P<value>.+?)\s*$""")
_COLOR_N_RE = re.compile(r"^color(\d{1,2})$")

_KEY_ALIASES: dict[str, str] = {
    "main_bg": "background",
    "main_fg": "foreground",
    "bg": "background",
    "fg": "foreground",
}


def _try_color(raw: Any) -> Color | None:
    if not isinstance(raw, str):
        return None
    try:
        return Color.parse(raw)
    except ValueError:
        return None


def _slot_for_key(key: str) -> str | None:
    """Associe une clé clé/valeur à un emplacement standard (ou None)."""
    name = key.strip().lower()
    if name in SLOT_NAMES:
        return name
    if name in _KEY_ALIASES:
        return _KEY_ALIASES[name]
    match = _COLOR_N_RE.match(name)
    if match:
        index = int(match.group(1))
        if index < len(ANSI_SLOTS):
            return ANSI_SLOTS[index]
    return None


def parse_key_value(text: str) -> ParsedColors:
    """Parse un fichier clé/valeur (style btop).

    Lignes acceptées: `theme[key]="#hex"` ou `key = #hex`. Les commentaires
    (`#` en début de ligne) et les valeurs non hexadécimales sont ignorés.
    """
    slots: dict[str, Color] = {}
    extras: dict[str, Color] = {}

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", ";", "//")):
            continue
        match = _BRACKET_RE.match(stripped) or _PLAIN_RE.match(stripped)
        if not match:
            continue
        key = match.group("key")
        # Premier mot seulement: ignore un éventuel commentaire en fin de ligne.
        color = _try_color(match.group("value").split()[0])
        if color is None:
            continue
        slot = _slot_for_key(key)
        if slot is not None:
            slots.setdefault(slot, color)
        else:
            extras.setdefault(key.strip().lower(), color)

    logger.debug(f"[parse_key_value] {len(slots)} emplacement(s), {len(extras)} extra(s)")
    return slots, extras


def _table(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def parse_nested_table(text: str) -> ParsedColors:
    """Parse un fichier TOML à la alacritty.

    `colors.primary.{background,foreground}`, `colors.normal.<couleur>`,
    `colors.bright.<couleur>`; curseur et sélection vont dans les extras.

    Raises:
        ValueError: si le TOML est invalide
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"TOML invalide: {e}") from e

    colors = _table(data, "colors")
    slots: dict[str, Color] = {}
    extras: dict[str, Color] = {}

    primary = _table(colors, "primary")
    for name in ("background", "foreground"):
        color = _try_color(primary.get(name))
        if color is not None:
            slots[name] = color

    for group, prefix in (("normal", ""), ("bright", "bright_")):
        table = _table(colors, group)
        for name in BASE_COLORS:
            color = _try_color(table.get(name))
            if color is not None:
                slots[f"{prefix}{name}"] = color

    for group in ("cursor", "selection"):
        for key, value in _table(colors, group).items():
            color = _try_color(value)
            if color is None:
                continue
            # cursor.cursor -> "cursor", selection.background -> "selection_background"
            extra_name = group if key == group else f"{group}_{key}"
            extras[extra_name] = color

    logger.debug(f"[parse_nested_table] {len(slots)} emplacement(s), {len(extras)} extra(s)")
    return slots, extras


def _collect_object(obj: Mapping[str, Any], slots: dict[str, Color], extras: dict[str, Color]) -> None:
    for group, prefix in (("normal", ""), ("bright", "bright_")):
        table = _table(obj, group)
        for name in BASE_COLORS:
            color = _try_color(table.get(name))
            if color is not None:
                slots.setdefault(f"{prefix}{name}", color)

    for key, value in obj.items():
        if isinstance(value, Mapping):
            continue
        color = _try_color(value)
        if color is None:
            continue
        slot = _slot_for_key(key)
        if slot is not None:
            slots.setdefault(slot, color)
        else:
            extras.setdefault(str(key).lower(), color)


def parse_generic_object(text: str) -> ParsedColors:
    """Parse un objet JSON générique.

    Les emplacements sont cherchés sous `colors` puis au niveau racine, à plat
    (`bright_red`) ou groupés (`normal` / `bright`).

    Raises:
        ValueError: si le JSON est invalide ou n'est pas un objet
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"JSON invalide: {e}") from e
    if not isinstance(data, Mapping):
        raise ValueError("Objet JSON attendu à la racine")

    slots: dict[str, Color] = {}
    extras: dict[str, Color] = {}
    colors = _table(data, "colors")
    if colors:
        _collect_object(colors, slots, extras)
    _collect_object(data, slots, extras)

    logger.debug(f"[parse_generic_object] {len(slots)} emplacement(s), {len(extras)} extra(s)")
    return slots, extras
