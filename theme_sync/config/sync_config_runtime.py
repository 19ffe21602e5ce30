"""Utilities for CLI entry points.

This module centralizes the minimal argument parsing used by `main.py`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

COMMANDS: Final[tuple[str, ...]] = ("once", "watch", "detect", "status", "init-config")


@dataclass(frozen=True)
class CliOptions:
    """Options extraites de argv."""

    command: str | None
    debug: bool = False
    verbose: bool = False
    force: bool = False
    config_path: str | None = None
    unknown: tuple[str, ...] = ()


def parse_verbosity_flags(argv: list[str]) -> tuple[bool, bool, list[str]]:
    """Parse argv et extrait `--verbose` et `--debug`.

    Returns:
        (debug_enabled, verbose_enabled, remaining_argv)
    """
    debug = False
    verbose = False
    remaining: list[str] = []
    for arg in argv:
        if arg == "--debug":
            debug = True
        elif arg == "--verbose":
            verbose = True
        else:
            remaining.append(arg)
    return debug, verbose, remaining


def parse_cli(argv: list[str]) -> CliOptions:
    """Parse la ligne de commande complète.

    Forme acceptée: `[--debug] [--verbose] [--config PATH] <commande> [--force]`.
    Les arguments non reconnus sont conservés dans `unknown` pour que
    l'appelant puisse afficher l'usage.
    """
    debug, verbose, remaining = parse_verbosity_flags(argv)

    command: str | None = None
    force = False
    config_path: str | None = None
    unknown: list[str] = []

    it = iter(remaining)
    for arg in it:
        if arg == "--force":
            force = True
        elif arg == "--config":
            config_path = next(it, None)
            if config_path is None:
                unknown.append(arg)
        elif arg.startswith("--config="):
            config_path = arg.split("=", 1)[1]
        elif command is None and arg in COMMANDS:
            command = arg
        else:
            unknown.append(arg)

    return CliOptions(
        command=command,
        debug=debug,
        verbose=verbose,
        force=force,
        config_path=config_path,
        unknown=tuple(unknown),
    )
