"""Configuration pytest: harnais de tests avec sécurité.

Active:
- Blocage subprocess (sécurité)
- Limites CPU/RAM Linux (protection machine)
- Faulthandler pour diagnostiquer les hangs
- Fixtures de thème (palette complète, arborescence temporaire)
"""

import os
import subprocess
import sys
from pathlib import Path

# Ajouter le dossier racine du projet au PYTHONPATH
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest
from loguru import logger

from tests.sync_samples import ALACRITTY_TOML
from theme_sync.config.sync_settings import Settings
from theme_sync.models.sync_models_palette import SLOT_NAMES, Color, Palette


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _apply_resource_limits() -> None:
    """Applique des limites CPU/RAM au process de test (Linux).

    Objectif: éviter qu'un test qui boucle/hang n'épuise la machine.
    Contrôle via env:
      - PYTEST_CPU_LIMIT_SECONDS (défaut 900)
      - PYTEST_MEM_LIMIT_MB (défaut 4096)
      - PYTEST_DISABLE_RESOURCE_LIMITS=1 pour désactiver
    """
    if os.environ.get("PYTEST_DISABLE_RESOURCE_LIMITS") in {"1", "true", "yes"}:
        return

    if sys.platform != "linux":
        return

    import resource

    cpu_seconds = _env_int("PYTEST_CPU_LIMIT_SECONDS", 900)
    mem_bytes = _env_int("PYTEST_MEM_LIMIT_MB", 4096) * 1024 * 1024

    try:
        resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds + 1))
    except (ValueError, OSError):
        pass

    try:
        resource.setrlimit(resource.RLIMIT_AS, (mem_bytes, mem_bytes))
    except (ValueError, OSError):
        pass


def pytest_configure(config):
    """Configuration globale de pytest."""
    del config
    _apply_resource_limits()

    import faulthandler

    faulthandler.enable(all_threads=True)

    # Stabiliser Loguru pendant les tests: pas d'enqueue (thread/queue) pour éviter
    # des crashes lors du shutdown Python/GC.
    logger.remove()
    logger.add(sys.stderr, enqueue=False, level="DEBUG")


@pytest.fixture(autouse=True)
def secure_subprocess(monkeypatch):
    """Empêche les appels subprocess réels pendant les tests pour éviter de figer le système."""

    def mocked_run(*args, **kwargs):
        cmd = args[0] if args else kwargs.get("args")
        # Par défaut, on lève une erreur pour la sécurité
        raise RuntimeError(f"SÉCURITÉ : Appel subprocess non autorisé dans les tests : {cmd}")

    # On mocke les principales fonctions de subprocess globalement
    monkeypatch.setattr(subprocess, "run", mocked_run)
    monkeypatch.setattr(subprocess, "Popen", mocked_run)
    monkeypatch.setattr(subprocess, "call", mocked_run)
    monkeypatch.setattr(subprocess, "check_call", mocked_run)
    monkeypatch.setattr(subprocess, "check_output", mocked_run)

    yield


@pytest.fixture
def palette() -> Palette:
    """Palette complète déterministe."""
    slots = {name: Color.parse(f"#{index:02x}{index:02x}{index:02x}") for index, name in enumerate(SLOT_NAMES)}
    return Palette.from_slots(slots, {"cursor": Color.parse("#c0caf5")})


@pytest.fixture
def theme_tree(tmp_path: Path) -> Path:
    """Arborescence Omarchy: `current/theme` -> `themes/tokyo` avec alacritty.toml."""
    theme_dir = tmp_path / "themes" / "tokyo"
    theme_dir.mkdir(parents=True)
    (theme_dir / "alacritty.toml").write_text(ALACRITTY_TOML, encoding="utf-8")

    current = tmp_path / "current"
    current.mkdir()
    (current / "theme").symlink_to(theme_dir)
    return current / "theme"


@pytest.fixture
def settings(tmp_path: Path, theme_tree: Path) -> Settings:
    """Settings isolés dans tmp_path, sans programme ni activation."""
    return Settings(
        watch_path=theme_tree,
        generated_themes_dir=tmp_path / "generated",
        programs=(),
        auto_activate=False,
        backup_dir=tmp_path / "backups",
        state_dir=tmp_path / "state",
    )


def pytest_sessionfinish(session, exitstatus):
    """Nettoie les ressources globales.

    Important pour Loguru: arrêter proprement les handlers en fin de session.
    """
    del session, exitstatus
    logger.complete()
    logger.remove()
