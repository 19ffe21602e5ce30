"""Synchronisation du thème Omarchy vers les programmes tiers."""

__version__ = "0.3.0"
