"""Point d'entrée principal (CLI).

Ce lanceur configure le logging puis exécute la commande demandée:
`once`, `watch`, `detect`, `status` ou `init-config`.
"""

import sys

from loguru import logger

from theme_sync.config.sync_config_logging import configure_logging
from theme_sync.config.sync_config_runtime import CliOptions, parse_cli
from theme_sync.config.sync_paths import get_config_path
from theme_sync.config.sync_settings import load_settings, write_default_config
from theme_sync.managers.sync_orchestrator import SyncOrchestrator
from theme_sync.managers.sync_watcher import ThemeWatcher
from theme_sync.models.sync_models_run import RunOutcome, RunReport
from theme_sync.services.sync_status_service import collect_status
from theme_sync.sync_exceptions import ThemeSyncError
from theme_sync.system.sync_detector import detect_all

# Loguru installe un handler par défaut (niveau DEBUG) dès l'import.
# On le retire ici pour éviter des logs DEBUG en mode normal, avant l'appel
# explicite à configure_logging().
try:
    logger.remove()
except (TypeError, ValueError):
    pass

USAGE = (
    "Usage: omarchy-theme-sync [--debug] [--verbose] [--config PATH] "
    "{once|watch|detect|status|init-config [--force]}"
)

EXIT_USAGE = 2


def _print_report(report: RunReport) -> None:
    print(f"Résultat: {report.outcome.name}")
    if report.error:
        print(f"  Erreur: {report.error}")
    if report.source:
        print(f"  Source: {report.source}")
    for result in report.targets:
        line = f"  - {result.target}: {result.status.name}"
        if result.reason:
            line += f" ({result.reason})"
        print(line)
    failed = report.failed_targets()
    if failed:
        print(f"  Cibles en échec: {', '.join(r.target for r in failed)}")


def _cmd_once(options: CliOptions) -> int:
    orchestrator = SyncOrchestrator.from_config_path(get_config_path(options.config_path))
    report = orchestrator.run()
    _print_report(report)
    return 1 if report.outcome is RunOutcome.FAILURE else 0


def _cmd_watch(options: CliOptions) -> int:
    config_path = get_config_path(options.config_path)
    settings = load_settings(config_path)
    configure_logging(debug=options.debug, verbose=options.verbose, log_dir=settings.state_dir / "logs")

    watcher = ThemeWatcher(
        SyncOrchestrator.from_config_path(config_path),
        settings.watch_path,
        debounce_seconds=settings.debounce_seconds,
        poll_interval=settings.poll_interval,
        state_dir=settings.state_dir,
    )
    print(f"Surveillance de {settings.watch_path} (Ctrl+C pour arrêter)")
    try:
        watcher.run_forever()
    except KeyboardInterrupt:
        logger.info("[main] Interruption clavier")
        watcher.stop()
    return 0


def _cmd_detect(_options: CliOptions) -> int:
    for program in detect_all():
        print(program.describe())
    return 0


def _cmd_status(options: CliOptions) -> int:
    settings = load_settings(get_config_path(options.config_path))
    for line in collect_status(settings).to_lines():
        print(line)
    return 0


def _cmd_init_config(options: CliOptions) -> int:
    path = write_default_config(get_config_path(options.config_path), force=options.force)
    print(f"Configuration écrite: {path}")
    return 0


_COMMANDS = {
    "once": _cmd_once,
    "watch": _cmd_watch,
    "detect": _cmd_detect,
    "status": _cmd_status,
    "init-config": _cmd_init_config,
}


def _run_main(argv: list[str] | None = None) -> int:
    """Exécute la commande et retourne un code de sortie."""
    options = parse_cli(sys.argv[1:] if argv is None else argv)

    configure_logging(debug=options.debug, verbose=options.verbose)
    logger.debug(f"[main] Options: {options}")

    if options.command is None or options.unknown:
        print(USAGE, file=sys.stderr)
        return EXIT_USAGE

    try:
        exit_code = _COMMANDS[options.command](options)
    except ThemeSyncError as exc:
        logger.error(f"[main] {exc}")
        print(f"Erreur: {exc}", file=sys.stderr)
        return 1

    logger.info(f"[main] Commande {options.command} terminée avec le code {exit_code}")
    return exit_code


def main() -> None:
    """Point d'entrée Python.

    Les tests (et certains usages) attendent que `main()` termine via SystemExit.
    """
    try:
        exit_code = _run_main()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.error(f"[main] Critical error during startup: {exc}")
        raise SystemExit(1) from exc
    raise SystemExit(exit_code)


def _main_entry() -> int:
    try:
        return _run_main()
    except SystemExit as exc:
        return int(getattr(exc, "code", 1) or 0)
    except (ImportError, OSError, RuntimeError, ValueError) as exc:
        logger.error(f"[main] Critical error during startup: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(_main_entry())
