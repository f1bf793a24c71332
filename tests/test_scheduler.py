"""Tests for the BackupScheduler."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import make_world, write_level_dat

from app.config import Config
from app.core.backup import BackupManager
from app.core.scanner import Scanner
from app.core.scheduler import BACKUP_IN_PROGRESS, BackupScheduler, ScanCompletedEvent
from app.models.backup_record import BackupResult


class RecordingListener:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def on_scan_completed(self, event: ScanCompletedEvent) -> None:
        self.events.append(("scan", event.total_worlds, event.selected_worlds))

    def on_backup_started(self, world) -> None:
        self.events.append(("started", world.unique_id))

    def on_backup_completed(self, world, result: BackupResult) -> None:
        self.events.append(("completed", world.unique_id, result.success))


@pytest.fixture
def scheduler(config: Config) -> BackupScheduler:
    sched = BackupScheduler(config, Scanner(config), BackupManager(config))
    yield sched
    sched.shutdown()


def _archives(config: Config, instance: str, world: str) -> list[Path]:
    return sorted((config.backup_path / "backups" / instance / world).glob("*.zip"))


class TestScheduledScan:
    def test_end_to_end_change_detection(
        self, config: Config, instances_root: Path, scheduler: BackupScheduler,
    ) -> None:
        world_dir = make_world(instances_root, "Pack", "valley", name="Valley", last_played=1000)
        config.set_world_selected("Pack::Valley", True)
        config.update_last_known_timestamp("Pack::Valley", 1000)

        assert scheduler.perform_scheduled_scan() == []
        assert _archives(config, "Pack", "Valley") == []

        write_level_dat(world_dir, "Valley", 2000)
        results = scheduler.perform_scheduled_scan()
        assert len(results) == 1 and results[0].success
        assert len(_archives(config, "Pack", "Valley")) == 1
        assert config.get_last_known_timestamp("Pack::Valley") == 2000

        assert scheduler.perform_scheduled_scan() == []
        assert len(_archives(config, "Pack", "Valley")) == 1

    def test_unselected_worlds_are_ignored(
        self, config: Config, instances_root: Path, scheduler: BackupScheduler,
    ) -> None:
        make_world(instances_root, "Pack", "w", name="W", last_played=5000)
        assert scheduler.perform_scheduled_scan() == []
        assert config.get_last_known_timestamp("Pack::W") == 0

    def test_events_in_order(
        self, config: Config, instances_root: Path, scheduler: BackupScheduler,
    ) -> None:
        make_world(instances_root, "Pack", "a", name="A", last_played=10)
        make_world(instances_root, "Pack", "b", name="B", last_played=10)
        config.set_world_selected("Pack::A", True)
        listener = RecordingListener()
        scheduler.add_listener(listener)

        scheduler.perform_scheduled_scan()

        assert listener.events == [
            ("scan", 2, 1),
            ("started", "Pack::A"),
            ("completed", "Pack::A", True),
        ]

    def test_missing_instances_root(self, config: Config, scheduler: BackupScheduler) -> None:
        listener = RecordingListener()
        scheduler.add_listener(listener)
        assert scheduler.perform_scheduled_scan() == []
        assert listener.events == [("scan", 0, 0)]

    def test_failing_listener_does_not_stop_backup(
        self, config: Config, instances_root: Path, scheduler: BackupScheduler,
    ) -> None:
        make_world(instances_root, "Pack", "a", name="A", last_played=10)
        config.set_world_selected("Pack::A", True)
        broken = MagicMock()
        broken.on_scan_completed.side_effect = RuntimeError("boom")
        scheduler.add_listener(broken)

        results = scheduler.perform_scheduled_scan()
        assert results[0].success
        broken.on_backup_completed.assert_called_once()


class TestWatermark:
    def _scheduler(self, config: Config):
        manager = MagicMock()
        scheduler = BackupScheduler(config, Scanner(config), manager)
        return scheduler, manager

    def test_failure_does_not_advance_watermark(self, config: Config, instances_root: Path) -> None:
        make_world(instances_root, "Pack", "a", name="A", last_played=10)
        config.set_world_selected("Pack::A", True)
        scheduler, manager = self._scheduler(config)
        manager.create_backup.side_effect = lambda world, progress=None: BackupResult(
            world=world, error="disk full"
        )

        results = scheduler.perform_scheduled_scan()

        assert not results[0].success
        assert config.get_last_known_timestamp("Pack::A") == 0
        manager.apply_retention.assert_not_called()

    def test_watermark_uses_pre_archive_value(self, config: Config, instances_root: Path) -> None:
        world_dir = make_world(instances_root, "Pack", "a", name="A", last_played=100)
        config.set_world_selected("Pack::A", True)
        scheduler, manager = self._scheduler(config)

        def played_during_backup(world, progress=None):
            write_level_dat(world_dir, "A", 200)
            return BackupResult(world=world, success=True)

        manager.create_backup.side_effect = played_during_backup

        scheduler.perform_scheduled_scan()
        assert config.get_last_known_timestamp("Pack::A") == 100

        manager.create_backup.side_effect = lambda world, progress=None: BackupResult(
            world=world, success=True
        )
        results = scheduler.perform_scheduled_scan()
        assert len(results) == 1
        assert config.get_last_known_timestamp("Pack::A") == 200


class TestManualBackup:
    def test_backup_all_selected(
        self, config: Config, instances_root: Path, scheduler: BackupScheduler,
    ) -> None:
        make_world(instances_root, "Pack", "a", name="A", last_played=10)
        make_world(instances_root, "Pack", "b", name="B", last_played=10)
        make_world(instances_root, "Other", "c", name="C", last_played=10)
        config.set_world_selected("Pack::A", True)
        config.set_world_selected("Other::C", True)

        results = scheduler.backup_all_selected()

        assert sorted(r.world.unique_id for r in results) == ["Other::C", "Pack::A"]
        assert all(r.success for r in results)
        assert config.get_last_known_timestamp("Pack::B") == 0

    def test_concurrent_backup_of_same_world_is_rejected(
        self, config: Config, instances_root: Path,
    ) -> None:
        make_world(instances_root, "Pack", "a", name="A", last_played=10)
        world = Scanner.all_worlds(Scanner(config).scan_instances())[0]

        entered = threading.Event()
        release = threading.Event()
        manager = MagicMock()

        def slow_backup(w, progress=None):
            entered.set()
            release.wait(5)
            return BackupResult(world=w, success=True)

        manager.create_backup.side_effect = slow_backup
        scheduler = BackupScheduler(config, Scanner(config), manager)
        results: list[BackupResult] = []
        worker = threading.Thread(target=lambda: results.append(scheduler.backup_world(world)))
        worker.start()
        assert entered.wait(5)

        assert scheduler.is_backing_up(world)
        second = scheduler.backup_world(world)
        assert not second.success
        assert second.error == BACKUP_IN_PROGRESS

        release.set()
        worker.join(5)
        assert results[0].success
        assert manager.create_backup.call_count == 1
        assert not scheduler.is_backing_up(world)


class TestLifecycle:
    def test_start_stop_idempotent(self, scheduler: BackupScheduler) -> None:
        assert not scheduler.is_running
        scheduler.stop()
        assert not scheduler.is_running

        scheduler.start()
        first_deadline = scheduler.next_scan_at
        scheduler.start()
        assert scheduler.is_running
        assert scheduler.next_scan_at == first_deadline

        scheduler.stop()
        scheduler.stop()
        assert not scheduler.is_running
        assert scheduler.next_scan_at is None

    def test_shutdown_joins_thread(self, scheduler: BackupScheduler) -> None:
        scheduler.start()
        thread = scheduler._thread
        scheduler.shutdown(timeout=5)
        assert not thread.is_alive()

    def test_update_interval_reschedules(self, config: Config, scheduler: BackupScheduler) -> None:
        scheduler.start()
        config.polling_interval_minutes = 120
        scheduler.update_interval()
        remaining = (scheduler.next_scan_at - datetime.now()).total_seconds()
        assert 60 * 119 < remaining <= 60 * 120


class TestPeriodicLoop:
    @pytest.fixture
    def fast_scheduler(self, scheduler: BackupScheduler, monkeypatch: pytest.MonkeyPatch) -> BackupScheduler:
        monkeypatch.setattr(scheduler, "_interval", lambda: timedelta(milliseconds=50))
        return scheduler

    def test_tick_fires_after_interval(
        self, fast_scheduler: BackupScheduler, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        ticks: list[datetime] = []
        two_ticks = threading.Event()

        def tick() -> list[BackupResult]:
            ticks.append(datetime.now())
            if len(ticks) >= 2:
                two_ticks.set()
            return []

        monkeypatch.setattr(fast_scheduler, "perform_scheduled_scan", tick)
        started = datetime.now()
        fast_scheduler.start()

        assert two_ticks.wait(5)
        assert (ticks[0] - started).total_seconds() >= 0.04
        assert fast_scheduler.next_scan_at is not None

    def test_stop_during_tick_lets_it_finish(
        self, fast_scheduler: BackupScheduler, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        calls: list[str] = []

        def tick() -> list[BackupResult]:
            calls.append(f"t{len(calls) + 1}")
            if len(calls) == 3:
                fast_scheduler.stop()
                time.sleep(0.1)
                calls.append("finished")
            return []

        monkeypatch.setattr(fast_scheduler, "perform_scheduled_scan", tick)
        fast_scheduler.start()
        thread = fast_scheduler._thread

        thread.join(5)
        assert not thread.is_alive()
        time.sleep(0.2)
        assert calls == ["t1", "t2", "t3", "finished"]
        assert not fast_scheduler.is_running
        assert fast_scheduler.next_scan_at is None

    def test_failing_tick_keeps_loop_alive(
        self, fast_scheduler: BackupScheduler, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        calls: list[int] = []
        recovered = threading.Event()

        def tick() -> list[BackupResult]:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("scan exploded")
            recovered.set()
            return []

        monkeypatch.setattr(fast_scheduler, "perform_scheduled_scan", tick)
        fast_scheduler.start()

        assert recovered.wait(5)
        assert fast_scheduler.is_running
        assert fast_scheduler._thread.is_alive()
