"""Modèles de couleurs: Color et Palette normalisée à 18 emplacements."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

_HEX_RE: Final[re.Pattern[str]] = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

BASE_COLORS: Final[tuple[str, ...]] = ("black", "red", "green", "yellow", "blue", "magenta", "cyan", "white")
BRIGHT_COLORS: Final[tuple[str, ...]] = tuple(f"bright_{name}" for name in BASE_COLORS)
SLOT_NAMES: Final[tuple[str, ...]] = ("background", "foreground", *BASE_COLORS, *BRIGHT_COLORS)

# Ordre ANSI (color0..color15) utilisé par les formats clé/valeur.
ANSI_SLOTS: Final[tuple[str, ...]] = (*BASE_COLORS, *BRIGHT_COLORS)


@dataclass(frozen=True)
class Color:
    """Couleur RGB conservée dans la notation de la source.

    Seule la notation est normalisée (`#` ajouté, forme courte étendue);
    la casse d'origine est préservée.
    """

    value: str

    @classmethod
    def parse(cls, raw: str) -> Color:
        """Crée une couleur depuis `#RRGGBB`, `RRGGBB` ou `#RGB`.

        Raises:
            ValueError: si la valeur n'est pas une couleur hexadécimale
        """
        text = str(raw).strip().strip("'\"")
        match = _HEX_RE.match(text)
        if not match:
            raise ValueError(f"Couleur hexadécimale invalide: {raw!r}")
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return cls(f"#{digits}")

    @property
    def hex(self) -> str:
        """Valeur avec `#`."""
        return self.value

    @property
    def bare_hex(self) -> str:
        """Valeur hexadécimale minuscule sans `#` (formats INI)."""
        return self.value.lstrip("#").lower()

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Palette:
    """Palette normalisée: 16 couleurs ANSI + background/foreground.

    Une palette partielle ne peut pas être construite: `from_slots` refuse
    toute table incomplète.
    """

    background: Color
    foreground: Color
    black: Color
    red: Color
    green: Color
    yellow: Color
    blue: Color
    magenta: Color
    cyan: Color
    white: Color
    bright_black: Color
    bright_red: Color
    bright_green: Color
    bright_yellow: Color
    bright_blue: Color
    bright_magenta: Color
    bright_cyan: Color
    bright_white: Color
    extras: Mapping[str, Color] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extras", MappingProxyType(dict(self.extras)))

    @classmethod
    def from_slots(cls, slots: Mapping[str, Color], extras: Mapping[str, Color] | None = None) -> Palette:
        """Construit une palette complète.

        Raises:
            ValueError: si un emplacement requis manque
        """
        missing = missing_slots(slots)
        if missing:
            raise ValueError(f"Palette incomplète, emplacements manquants: {', '.join(missing)}")
        return cls(**{name: slots[name] for name in SLOT_NAMES}, extras=dict(extras or {}))

    def slots(self) -> dict[str, Color]:
        """Retourne les 18 emplacements dans l'ordre canonique."""
        return {name: getattr(self, name) for name in SLOT_NAMES}

    def to_dict(self) -> dict[str, str]:
        """Sérialise la palette (emplacements + extras) en `nom -> #hex`."""
        data = {name: color.hex for name, color in self.slots().items()}
        for name in sorted(self.extras):
            data.setdefault(name, self.extras[name].hex)
        return data


def missing_slots(slots: Mapping[str, object]) -> list[str]:
    """Liste les emplacements requis absents, dans l'ordre canonique."""
    return [name for name in SLOT_NAMES if slots.get(name) is None]

