"""Backup scheduler — periodic scan, change detection and sequential backups."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger

from app.core.scanner import Scanner
from app.models.backup_record import BackupResult

if TYPE_CHECKING:
    from app.config import Config
    from app.core.backup import BackupManager, ProgressCallback
    from app.models.world import Instance, World

BACKUP_IN_PROGRESS = "Backup already in progress"


@dataclass
class ScanCompletedEvent:
    total_worlds: int
    selected_worlds: int


class SchedulerListener(Protocol):
    """
    Observer interface for scheduler events.

    Listeners may implement any subset of these methods; missing ones are
    ignored.  Callbacks run on the thread that performed the work.
    """

    def on_scan_completed(self, event: ScanCompletedEvent) -> None: ...

    def on_backup_started(self, world: World) -> None: ...

    def on_backup_completed(self, world: World, result: BackupResult) -> None: ...


class BackupScheduler:
    """
    Runs ``perform_scheduled_scan`` every ``polling_interval_minutes``.

    The loop lives on a daemon thread that waits on an event, so ``stop``
    takes effect immediately for future ticks while an archive already
    running is left to finish.  Each world identity has its own lock:
    a second backup request for a world that is already being archived is
    rejected rather than queued.
    """

    def __init__(
        self, config: Config, scanner: Scanner, backup_manager: BackupManager,
    ) -> None:
        self._config = config
        self._scanner = scanner
        self._backup_manager = backup_manager

        self._listeners: list[SchedulerListener] = []
        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._world_locks: dict[str, threading.Lock] = {}

        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None
        self._wake = threading.Event()
        self._next_scan_at: datetime | None = None
        self._catalog: list[Instance] = []

    # ── Listeners ──

    def add_listener(self, listener: SchedulerListener) -> None:
        with self._state_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: SchedulerListener) -> None:
        with self._state_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, method: str, *args: Any) -> None:
        with self._state_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            callback = getattr(listener, method, None)
            if callback is None:
                continue
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Listener {method} failed: {e}")

    # ── Lifecycle ──

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._stop_event is not None

    @property
    def next_scan_at(self) -> datetime | None:
        with self._state_lock:
            return self._next_scan_at

    @property
    def catalog(self) -> list[Instance]:
        """Instances found by the most recent scheduled scan."""
        return self._catalog

    def _interval(self) -> timedelta:
        return timedelta(minutes=self._config.polling_interval_minutes)

    def start(self) -> None:
        """Start the periodic loop. No-op if already running."""
        with self._state_lock:
            if self._stop_event is not None:
                return
            stop = threading.Event()
            self._stop_event = stop
            self._next_scan_at = datetime.now() + self._interval()
            self._thread = threading.Thread(
                target=self._run, args=(stop,), name="backup-scheduler", daemon=True,
            )
            self._thread.start()
        logger.info(
            f"Scheduler started with {self._config.polling_interval_minutes} minute interval"
        )

    def stop(self) -> None:
        """Stop future ticks. An archive in progress is not interrupted."""
        with self._state_lock:
            if self._stop_event is None:
                return
            self._stop_event.set()
            self._stop_event = None
            self._next_scan_at = None
        self._wake.set()
        logger.info("Scheduler stopped")

    def shutdown(self, timeout: float | None = 5.0) -> None:
        """Stop and wait for the loop thread to exit."""
        thread = self._thread
        self.stop()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def update_interval(self) -> None:
        """Re-read the polling interval; the next tick is rescheduled from now."""
        with self._state_lock:
            if self._stop_event is None:
                return
            self._next_scan_at = datetime.now() + self._interval()
        self._wake.set()
        logger.info(f"Polling interval set to {self._config.polling_interval_minutes} minute(s)")

    def _seconds_until_next_scan(self) -> float:
        with self._state_lock:
            deadline = self._next_scan_at
        if deadline is None:
            return 0.0
        return max(0.0, (deadline - datetime.now()).total_seconds())

    def _run(self, stop: threading.Event) -> None:
        while True:
            woke = self._wake.wait(self._seconds_until_next_scan())
            if stop.is_set():
                return
            if woke:
                self._wake.clear()
                continue

            try:
                self.perform_scheduled_scan()
            except Exception as e:
                logger.opt(exception=e).error(f"Scheduled scan failed: {e}")

            with self._state_lock:
                if not stop.is_set():
                    self._next_scan_at = datetime.now() + self._interval()

    # ── Work ──

    def perform_scheduled_scan(self) -> list[BackupResult]:
        """
        Scan, then back up every selected world whose ``LastPlayed``
        advanced past its watermark.  Backups run one after another.
        """
        with self._tick_lock:
            logger.info(f"Performing scheduled scan at {datetime.now():%Y-%m-%d %H:%M:%S}")
            instances = self._scanner.scan_instances()
            self._catalog = instances
            worlds = Scanner.all_worlds(instances)
            selected = [w for w in worlds if w.is_selected]

            self._emit(
                "on_scan_completed",
                ScanCompletedEvent(total_worlds=len(worlds), selected_worlds=len(selected)),
            )

            results: list[BackupResult] = []
            for world in selected:
                self._scanner.refresh_world_timestamp(world)
                if world.needs_backup:
                    results.append(self.backup_world(world, refresh=False))
            return results

    def _world_lock(self, world_id: str) -> threading.Lock:
        with self._state_lock:
            lock = self._world_locks.get(world_id)
            if lock is None:
                lock = self._world_locks[world_id] = threading.Lock()
            return lock

    def is_backing_up(self, world: World) -> bool:
        return self._world_lock(world.unique_id).locked()

    def backup_world(
        self,
        world: World,
        progress: ProgressCallback | None = None,
        refresh: bool = True,
    ) -> BackupResult:
        """
        Archive one world, apply retention and advance its watermark.

        The watermark becomes the ``LastPlayed`` value read *before* the
        archive ran, so a save touched during a long backup is picked up
        again on the next tick.
        """
        lock = self._world_lock(world.unique_id)
        if not lock.acquire(blocking=False):
            logger.warning(f"Backup of {world.unique_id} rejected: already running")
            return BackupResult(world=world, error=BACKUP_IN_PROGRESS)

        try:
            if refresh:
                self._scanner.refresh_world_timestamp(world)
            watermark = world.last_played

            self._emit("on_backup_started", world)
            result = self._backup_manager.create_backup(world, progress)
            if result.success:
                self._backup_manager.apply_retention(world)
                self._config.update_last_known_timestamp(world.unique_id, watermark)
                world.last_backup_timestamp = watermark
            self._emit("on_backup_completed", world, result)
            return result
        finally:
            lock.release()

    def backup_all_selected(
        self,
        worlds: list[World] | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[BackupResult]:
        """Manually back up every selected world, one at a time."""
        if worlds is None:
            worlds = Scanner.all_worlds(self._scanner.scan_instances())
        return [self.backup_world(w, progress) for w in worlds if w.is_selected]
