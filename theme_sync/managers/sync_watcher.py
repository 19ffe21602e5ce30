"""Surveillance du thème courant et relance du pipeline avec anti-rebond.

Machine à états: IDLE -> DEBOUNCING -> RUNNING -> IDLE.
- Un événement (re)lance le délai d'anti-rebond.
- Une rafale dans la fenêtre ne produit qu'un seul run.
- Un événement pendant RUNNING marque une relance unique en attente.
- En fin de run: DEBOUNCING si relance en attente, sinon IDLE.

Le thread de surveillance ne fait que déposer des événements dans une file
bornée; le pipeline tourne sur le thread du watcher, donc jamais en parallèle.
"""

from __future__ import annotations

import os
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from loguru import logger

from ..config.sync_paths import WATCHER_STATE_FILENAME
from ..io.sync_artifact_io import write_json_state
from ..models.sync_models_run import RunReport
from .sync_managers_protocol import PipelineRunner

Clock = Callable[[], float]


class WatchState(Enum):
    """États du watcher."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    RUNNING = "running"


@dataclass(frozen=True)
class WatchEvent:
    """Changement observé sur la source du thème."""

    reason: str
    path: Path | None = None


class DebounceController:
    """Logique d'anti-rebond pure (sans thread ni horloge propre)."""

    def __init__(self, debounce_seconds: float):
        self.debounce_seconds = max(debounce_seconds, 0.0)
        self.state = WatchState.IDLE
        self.pending = False
        self._deadline: float | None = None

    def _transition_to(self, new_state: WatchState) -> None:
        if new_state is not self.state:
            logger.debug(f"[DebounceController] {self.state.value} -> {new_state.value}")
        self.state = new_state

    def on_event(self, now: float) -> None:
        """Enregistre un événement de changement."""
        if self.state is WatchState.RUNNING:
            self.pending = True
            return
        self._deadline = now + self.debounce_seconds
        self._transition_to(WatchState.DEBOUNCING)

    def due(self, now: float) -> bool:
        """True si un run doit démarrer maintenant."""
        return self.state is WatchState.DEBOUNCING and self._deadline is not None and now >= self._deadline

    def time_until_due(self, now: float) -> float | None:
        """Secondes avant le prochain run (None si rien de prévu)."""
        if self.state is not WatchState.DEBOUNCING or self._deadline is None:
            return None
        return max(self._deadline - now, 0.0)

    def on_run_started(self) -> None:
        self.pending = False
        self._deadline = None
        self._transition_to(WatchState.RUNNING)

    def on_run_finished(self, now: float) -> None:
        if self.pending:
            self.pending = False
            self._deadline = now + self.debounce_seconds
            self._transition_to(WatchState.DEBOUNCING)
        else:
            self._transition_to(WatchState.IDLE)


class SourceMonitor:
    """Surveille la source du thème par scrutation (mtime).

    Compare à chaque passage la cible du lien racine et les mtimes des
    fichiers du dossier de thème résolu.
    """

    def __init__(
        self,
        watch_path: Path,
        on_change: Callable[[WatchEvent], None],
        poll_interval: float = 1.0,
    ):
        self.watch_path = watch_path
        self.on_change = on_change
        self.poll_interval = poll_interval

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._snapshot: tuple[str | None, dict[Path, float]] | None = None

    def start(self) -> None:
        """Démarre le thread de surveillance."""
        self._snapshot = self.scan()
        self._thread = threading.Thread(target=self._watch_loop, name="theme-sync-monitor", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Arrête le thread de surveillance."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)

    def scan(self) -> tuple[str | None, dict[Path, float]]:
        """Retourne (cible du lien racine, mtimes des fichiers du thème)."""
        link_target: str | None = None
        theme_dir = self.watch_path
        if self.watch_path.is_symlink():
            try:
                link_target = os.readlink(self.watch_path)
            except OSError:
                link_target = None
            theme_dir = self.watch_path.resolve()

        mtimes: dict[Path, float] = {}
        if theme_dir.is_dir():
            try:
                entries = list(theme_dir.iterdir())
            except OSError:
                entries = []
            for entry in entries:
                try:
                    if entry.is_file():
                        mtimes[entry] = entry.stat().st_mtime
                except OSError:
                    continue
        elif theme_dir.is_file():
            try:
                mtimes[theme_dir] = theme_dir.stat().st_mtime
            except OSError:
                pass
        return link_target, mtimes

    def check(self) -> WatchEvent | None:
        """Un passage de scrutation; renvoie l'événement détecté (ou None)."""
        current = self.scan()
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            return None

        if current[0] != previous[0]:
            return WatchEvent("theme switched", self.watch_path)

        old_mtimes, new_mtimes = previous[1], current[1]
        for path, mtime in new_mtimes.items():
            if path not in old_mtimes or mtime > old_mtimes[path]:
                return WatchEvent("file modified", path)
        for path in old_mtimes:
            if path not in new_mtimes:
                return WatchEvent("file removed", path)
        return None

    def _watch_loop(self) -> None:
        while not self._stop_event.is_set():
            event = self.check()
            if event is not None:
                logger.debug(f"[SourceMonitor] {event.reason}: {event.path}")
                self.on_change(event)
            self._stop_event.wait(self.poll_interval)


class ThemeWatcher:
    """Boucle de service: reçoit les événements et lance le pipeline."""

    def __init__(
        self,
        runner: PipelineRunner,
        watch_path: Path,
        *,
        debounce_seconds: float = 0.5,
        poll_interval: float = 1.0,
        state_dir: Path | None = None,
        queue_size: int = 64,
        clock: Clock = time.monotonic,
    ):
        self._runner = runner
        self._watch_path = watch_path
        self._poll_interval = poll_interval
        self._state_dir = state_dir
        self._clock = clock
        self._queue: queue.Queue[WatchEvent] = queue.Queue(maxsize=queue_size)
        self._controller = DebounceController(debounce_seconds)
        self._stop_event = threading.Event()
        self.runs = 0
        self.last_trigger: str | None = None
        self.last_report: RunReport | None = None

    @property
    def state(self) -> WatchState:
        return self._controller.state

    @property
    def pending(self) -> bool:
        return self._controller.pending

    def notify(self, event: WatchEvent) -> bool:
        """Dépose un événement (thread-safe). False si la file est pleine."""
        try:
            self._queue.put_nowait(event)
            return True
        except queue.Full:
            # Des événements sont déjà en attente: un run est de toute façon prévu.
            logger.debug(f"[ThemeWatcher] File pleine, événement ignoré: {event.reason}")
            return False

    def _drain(self) -> int:
        count = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                return count
            self.last_trigger = f"{event.reason}: {event.path}" if event.path else event.reason
            self._controller.on_event(self._clock())
            count += 1

    def pump(self) -> RunReport | None:
        """Traite les événements en attente et lance un run si le délai est écoulé."""
        self._drain()
        if not self._controller.due(self._clock()):
            return None

        self._controller.on_run_started()
        self._write_state()
        logger.info(f"[ThemeWatcher] Run déclenché ({self.last_trigger})")
        report: RunReport | None = None
        try:
            report = self._runner.run()
            self.last_report = report
            self._check_watch_path(report)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.exception(f"[ThemeWatcher] ERREUR pendant le run: {e}")
        finally:
            self.runs += 1
            # Les événements arrivés pendant le run marquent une relance.
            self._drain()
            self._controller.on_run_finished(self._clock())
            self._write_state()
        return report

    def _check_watch_path(self, report: RunReport) -> None:
        """Signale un `watch_path` modifié dans la configuration pendant la surveillance."""
        if report.watch_path is None or Path(report.watch_path) == self._watch_path:
            return
        logger.warning(
            f"[ThemeWatcher] watch_path modifié ({report.watch_path}) mais la surveillance porte sur "
            f"{self._watch_path}: relancez `watch` pour suivre le nouveau chemin"
        )

    def _write_state(self) -> None:
        if self._state_dir is None:
            return
        data = {
            "state": self.state.value,
            "pid": os.getpid(),
            "last_trigger": self.last_trigger,
            "runs": self.runs,
            "last_outcome": self.last_report.outcome.name if self.last_report else None,
            "updated_at": datetime.now().isoformat(timespec="seconds"),
        }
        try:
            write_json_state(self._state_dir / WATCHER_STATE_FILENAME, data)
        except OSError as e:
            logger.warning(f"[ThemeWatcher] État non écrit: {e}")

    def stop(self) -> None:
        """Demande l'arrêt de la boucle."""
        self._stop_event.set()

    def run_forever(self, *, initial_run: bool = True) -> None:
        """Boucle principale jusqu'à `stop()` (ou Ctrl+C)."""
        monitor = SourceMonitor(self._watch_path, self.notify, self._poll_interval)
        monitor.start()
        logger.info(f"[ThemeWatcher] Surveillance de {self._watch_path}")
        if initial_run:
            self.notify(WatchEvent("startup"))
        self._write_state()
        try:
            while not self._stop_event.is_set():
                wait = self._controller.time_until_due(self._clock())
                try:
                    event = self._queue.get(timeout=wait if wait is not None else self._poll_interval)
                except queue.Empty:
                    pass
                else:
                    self.last_trigger = f"{event.reason}: {event.path}" if event.path else event.reason
                    self._controller.on_event(self._clock())
                self.pump()
        finally:
            monitor.stop()
            self._controller.state = WatchState.IDLE
            self._write_state()
            logger.info("[ThemeWatcher] Arrêt")
