"""Tests pour le watcher (anti-rebond, file bornée, scrutation)."""

import json
import os
import threading
from unittest.mock import patch

import pytest

from theme_sync.managers.sync_watcher import DebounceController, SourceMonitor, ThemeWatcher, WatchEvent, WatchState
from theme_sync.models.sync_models_run import RunReport


class FakeClock:
    """Horloge manuelle."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRunner:
    """Pipeline factice qui compte ses runs."""

    def __init__(self, on_run=None, report=None):
        self.calls = 0
        self.on_run = on_run
        self.report = report

    def run(self) -> RunReport:
        self.calls += 1
        if self.on_run:
            self.on_run()
        return self.report or RunReport()


class TestDebounceController:
    """Machine à états pure."""

    def test_initial_state(self):
        controller = DebounceController(0.5)
        assert controller.state is WatchState.IDLE
        assert not controller.due(0.0)
        assert controller.time_until_due(0.0) is None

    def test_burst_restarts_delay(self):
        controller = DebounceController(0.5)
        controller.on_event(0.0)
        controller.on_event(0.3)
        controller.on_event(0.6)
        assert not controller.due(1.0)
        assert controller.due(1.1)
        assert controller.time_until_due(0.8) == pytest.approx(0.3)

    def test_event_while_running_sets_pending(self):
        controller = DebounceController(0.5)
        controller.on_event(0.0)
        controller.on_run_started()
        controller.on_event(0.2)
        controller.on_event(0.3)

        assert controller.state is WatchState.RUNNING
        assert controller.pending is True

        controller.on_run_finished(1.0)
        assert controller.state is WatchState.DEBOUNCING
        assert controller.pending is False
        assert controller.due(1.5)

    def test_run_finished_without_pending_goes_idle(self):
        controller = DebounceController(0.5)
        controller.on_event(0.0)
        controller.on_run_started()
        controller.on_run_finished(1.0)
        assert controller.state is WatchState.IDLE

    def test_negative_debounce_clamped(self):
        controller = DebounceController(-1)
        controller.on_event(5.0)
        assert controller.due(5.0)


class TestThemeWatcherPump:
    """Boucle de traitement avec horloge manuelle."""

    def _watcher(self, tmp_path, runner, clock, **kwargs):
        return ThemeWatcher(
            runner,
            tmp_path,
            debounce_seconds=0.5,
            state_dir=tmp_path / "state",
            clock=clock,
            **kwargs,
        )

    def test_burst_produces_single_run(self, tmp_path):
        clock = FakeClock()
        runner = FakeRunner()
        watcher = self._watcher(tmp_path, runner, clock)

        for i in range(5):
            watcher.notify(WatchEvent("file modified", tmp_path / f"f{i}"))
            assert watcher.pump() is None
            clock.advance(0.1)

        assert runner.calls == 0
        clock.advance(0.5)
        assert watcher.pump() is not None
        assert watcher.pump() is None
        assert runner.calls == 1
        assert watcher.state is WatchState.IDLE
        assert watcher.last_trigger.startswith("file modified")

        # Un événement après la fenêtre déclenche un nouveau run.
        watcher.notify(WatchEvent("file modified", tmp_path / "late"))
        assert watcher.pump() is None
        clock.advance(0.6)
        assert watcher.pump() is not None
        assert runner.calls == 2
        assert watcher.state is WatchState.IDLE

    def test_event_during_run_triggers_one_rerun(self, tmp_path):
        clock = FakeClock()
        watcher = None

        def during_run():
            watcher.notify(WatchEvent("file modified"))
            watcher.notify(WatchEvent("file modified"))

        runner = FakeRunner(during_run)
        watcher = self._watcher(tmp_path, runner, clock)
        watcher.notify(WatchEvent("startup"))
        clock.advance(1)
        watcher.pump()

        assert runner.calls == 1
        assert watcher.state is WatchState.DEBOUNCING

        runner.on_run = None
        clock.advance(1)
        watcher.pump()
        assert runner.calls == 2
        assert watcher.state is WatchState.IDLE

    @patch("theme_sync.managers.sync_watcher.logger")
    def test_changed_watch_path_warns(self, mock_logger, tmp_path):
        clock = FakeClock()
        runner = FakeRunner(report=RunReport(watch_path=str(tmp_path / "other")))
        watcher = self._watcher(tmp_path, runner, clock)
        watcher.notify(WatchEvent("startup"))
        clock.advance(1)

        assert watcher.pump() is not None
        mock_logger.warning.assert_called_once()
        assert "watch_path" in mock_logger.warning.call_args.args[0]

    @patch("theme_sync.managers.sync_watcher.logger")
    def test_same_watch_path_no_warning(self, mock_logger, tmp_path):
        clock = FakeClock()
        runner = FakeRunner(report=RunReport(watch_path=str(tmp_path)))
        watcher = self._watcher(tmp_path, runner, clock)
        watcher.notify(WatchEvent("startup"))
        clock.advance(1)

        watcher.pump()
        mock_logger.warning.assert_not_called()

    def test_runner_exception_does_not_stop_watcher(self, tmp_path):
        class Exploding:
            def run(self):
                raise RuntimeError("boom")

        clock = FakeClock()
        watcher = self._watcher(tmp_path, Exploding(), clock)
        watcher.notify(WatchEvent("startup"))
        clock.advance(1)

        assert watcher.pump() is None
        assert watcher.runs == 1
        assert watcher.state is WatchState.IDLE

    def test_queue_full_drops_event(self, tmp_path):
        watcher = self._watcher(tmp_path, FakeRunner(), FakeClock(), queue_size=2)
        assert watcher.notify(WatchEvent("a"))
        assert watcher.notify(WatchEvent("b"))
        assert not watcher.notify(WatchEvent("c"))

    def test_state_file_written(self, tmp_path):
        clock = FakeClock()
        watcher = self._watcher(tmp_path, FakeRunner(), clock)
        watcher.notify(WatchEvent("startup"))
        clock.advance(1)
        watcher.pump()

        data = json.loads((tmp_path / "state" / "watcher.json").read_text(encoding="utf-8"))
        assert data["state"] == "idle"
        assert data["runs"] == 1
        assert data["pid"] == os.getpid()
        assert data["last_trigger"] == "startup"
        assert data["last_outcome"] == "SUCCESS"

    def test_run_forever_initial_run_then_stop(self, tmp_path):
        watcher = None

        def stop_after_run():
            watcher.stop()

        runner = FakeRunner(stop_after_run)
        watcher = ThemeWatcher(runner, tmp_path, debounce_seconds=0, poll_interval=0.01)

        thread = threading.Thread(target=watcher.run_forever, daemon=True)
        thread.start()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert runner.calls == 1
        assert watcher.state is WatchState.IDLE


class TestSourceMonitor:
    """Détection par scrutation."""

    def test_no_change(self, theme_tree):
        monitor = SourceMonitor(theme_tree, lambda e: None)
        monitor._snapshot = monitor.scan()
        assert monitor.check() is None

    def test_file_modified(self, theme_tree):
        monitor = SourceMonitor(theme_tree, lambda e: None)
        monitor._snapshot = monitor.scan()
        source = theme_tree.resolve() / "alacritty.toml"
        stat = source.stat()
        os.utime(source, (stat.st_atime, stat.st_mtime + 10))

        event = monitor.check()

        assert event == WatchEvent("file modified", source)

    def test_file_added_and_removed(self, theme_tree):
        monitor = SourceMonitor(theme_tree, lambda e: None)
        monitor._snapshot = monitor.scan()
        added = theme_tree.resolve() / "btop.theme"
        added.write_text("x", encoding="utf-8")
        assert monitor.check().path == added

        added.unlink()
        assert monitor.check() == WatchEvent("file removed", added)

    def test_theme_switched(self, theme_tree, tmp_path):
        other = tmp_path / "themes" / "nord"
        other.mkdir(parents=True)
        monitor = SourceMonitor(theme_tree, lambda e: None)
        monitor._snapshot = monitor.scan()

        theme_tree.unlink()
        theme_tree.symlink_to(other)

        assert monitor.check() == WatchEvent("theme switched", theme_tree)

    def test_first_check_without_snapshot(self, theme_tree):
        assert SourceMonitor(theme_tree, lambda e: None).check() is None

    def test_thread_reports_changes(self, theme_tree):
        seen = threading.Event()
        events = []

        def on_change(event):
            events.append(event)
            seen.set()

        monitor = SourceMonitor(theme_tree, on_change, poll_interval=0.01)
        monitor.start()
        try:
            (theme_tree.resolve() / "new.json").write_text("{}", encoding="utf-8")
            assert seen.wait(timeout=5)
        finally:
            monitor.stop()
        assert events[0].reason == "file modified"
