"""Worlds page — catalog of instance worlds, selection and manual backups."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from PySide6.QtCore import QObject, Qt, QThread, QTimer, Signal
from PySide6.QtWidgets import (
    QHBoxLayout,
    QHeaderView,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)
from qfluentwidgets import (
    BodyLabel,
    CaptionLabel,
    PrimaryPushButton,
    ProgressBar,
    PushButton,
    TableWidget,
)
from qfluentwidgets import FluentIcon as FIF

from app.i18n import t
from app.ui.utils import show_error, show_success
from app.utils import format_size, open_folder

if TYPE_CHECKING:
    from app.context import AppContext
    from app.core.scheduler import ScanCompletedEvent
    from app.models.backup_record import BackupResult
    from app.models.world import Instance, World

_COL_SELECT, _COL_NAME, _COL_INSTANCE, _COL_PLAYED, _COL_SIZE, _COL_LAST_BACKUP = range(6)


class ScanWorker(QThread):
    """Background worker for scanning instances."""

    finished = Signal(list)

    def __init__(self, ctx: AppContext, parent=None) -> None:
        super().__init__(parent)
        self._ctx = ctx

    def run(self) -> None:
        self.finished.emit(self._ctx.scanner.scan_instances())


class BackupWorker(QThread):
    """Background worker running manual backups through the scheduler."""

    progress = Signal(int)
    finished = Signal(int, int)
    error = Signal(str)

    def __init__(self, ctx: AppContext, worlds: list, parent=None) -> None:
        super().__init__(parent)
        self._ctx = ctx
        self._worlds = worlds

    def run(self) -> None:
        count = 0
        for world in self._worlds:
            self.progress.emit(0)
            result = self._ctx.scheduler.backup_world(world, self.progress.emit)
            if result.success:
                count += 1
            else:
                self.error.emit(f"{world.name}: {result.error}")
        self.finished.emit(count, len(self._worlds))


class SchedulerBridge(QObject):
    """Scheduler listener that re-emits events as Qt signals for the GUI thread."""

    scan_completed = Signal(object)
    backup_started = Signal(object)
    backup_completed = Signal(object, object)

    def on_scan_completed(self, event: ScanCompletedEvent) -> None:
        self.scan_completed.emit(event)

    def on_backup_started(self, world: World) -> None:
        self.backup_started.emit(world)

    def on_backup_completed(self, world: World, result: BackupResult) -> None:
        self.backup_completed.emit(world, result)


class WorldsPage(QWidget):
    """World list with backup selection, manual backup and scheduler status."""

    def __init__(self, ctx: AppContext, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._ctx = ctx
        self._instances: list[Instance] = []
        self._worlds: list[World] = []
        self._scan_worker: ScanWorker | None = None
        self._backup_worker: BackupWorker | None = None
        self._populating = False
        self.setObjectName("worldsPage")

        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 16, 24, 16)

        # Toolbar
        toolbar = QHBoxLayout()
        self._selected_label = BodyLabel("", self)
        toolbar.addWidget(self._selected_label)
        toolbar.addStretch()

        self._refresh_btn = PushButton(FIF.SYNC, t("worlds.refresh"), self)
        self._refresh_btn.clicked.connect(self.refresh)
        toolbar.addWidget(self._refresh_btn)

        self._open_btn = PushButton(FIF.FOLDER, t("worlds.open_backups"), self)
        self._open_btn.clicked.connect(self._on_open_backups)
        toolbar.addWidget(self._open_btn)

        self._backup_btn = PushButton(FIF.SAVE, t("worlds.backup_world"), self)
        self._backup_btn.clicked.connect(self._on_backup_current)
        toolbar.addWidget(self._backup_btn)

        self._backup_all_btn = PrimaryPushButton(FIF.SAVE_COPY, t("worlds.backup_all"), self)
        self._backup_all_btn.clicked.connect(self._on_backup_all)
        toolbar.addWidget(self._backup_all_btn)
        layout.addLayout(toolbar)

        # Progress
        self._progress = ProgressBar(self)
        self._progress.setRange(0, 100)
        self._progress.setVisible(False)
        layout.addWidget(self._progress)

        # Table
        self._table = TableWidget(self)
        self._table.setColumnCount(6)
        self._table.setHorizontalHeaderLabels(
            [
                t("worlds.col_select"),
                t("worlds.col_name"),
                t("worlds.col_instance"),
                t("worlds.col_last_played"),
                t("worlds.col_size"),
                t("worlds.col_last_backup"),
            ]
        )
        self._table.horizontalHeader().setSectionResizeMode(
            _COL_NAME, QHeaderView.ResizeMode.Stretch
        )
        self._table.setColumnWidth(_COL_SELECT, 50)
        self._table.setSelectionBehavior(TableWidget.SelectionBehavior.SelectRows)
        self._table.setEditTriggers(TableWidget.EditTrigger.NoEditTriggers)
        self._table.itemChanged.connect(self._on_item_changed)
        layout.addWidget(self._table)

        # Status row
        status_row = QHBoxLayout()
        self._status = CaptionLabel(t("worlds.ready"), self)
        status_row.addWidget(self._status)
        status_row.addStretch()
        self._countdown = CaptionLabel("", self)
        status_row.addWidget(self._countdown)
        layout.addLayout(status_row)

        # Scheduler events → GUI thread
        self._bridge = SchedulerBridge(self)
        self._bridge.scan_completed.connect(self._on_scan_completed)
        self._bridge.backup_started.connect(self._on_backup_started)
        self._bridge.backup_completed.connect(self._on_backup_completed)
        ctx.scheduler.add_listener(self._bridge)

        self._countdown_timer = QTimer(self)
        self._countdown_timer.setInterval(1000)
        self._countdown_timer.timeout.connect(self._update_countdown)
        self._countdown_timer.start()

    # ── Catalog ──

    def refresh(self) -> None:
        """Re-scan instances in a background thread."""
        if self._scan_worker is not None:
            return
        self._refresh_btn.setEnabled(False)
        self._scan_worker = ScanWorker(self._ctx, self)
        self._scan_worker.finished.connect(self._on_refresh_finished)
        self._scan_worker.start()

    def _on_refresh_finished(self, instances: list) -> None:
        self._scan_worker = None
        self._refresh_btn.setEnabled(True)
        self._set_instances(instances)

    def _set_instances(self, instances: list[Instance]) -> None:
        self._instances = instances
        self._worlds = [w for i in instances for w in i.worlds]
        self._refresh_table()
        if self._worlds:
            self._status.setText(
                t("worlds.found", worlds=len(self._worlds), instances=len(instances))
            )
        else:
            self._status.setText(t("worlds.none_found"))

    def _refresh_table(self) -> None:
        self._populating = True
        self._table.setRowCount(0)
        for world in self._worlds:
            row = self._table.rowCount()
            self._table.insertRow(row)

            cb = QTableWidgetItem()
            cb.setFlags(Qt.ItemFlag.ItemIsUserCheckable | Qt.ItemFlag.ItemIsEnabled)
            cb.setCheckState(Qt.CheckState.Checked if world.is_selected else Qt.CheckState.Unchecked)
            self._table.setItem(row, _COL_SELECT, cb)

            name = world.name + (" *" if world.needs_backup else "")
            self._table.setItem(row, _COL_NAME, QTableWidgetItem(name))
            self._table.setItem(row, _COL_INSTANCE, QTableWidgetItem(world.instance.name))

            played = world.last_played_at
            self._table.setItem(
                row, _COL_PLAYED,
                QTableWidgetItem(played.strftime("%Y-%m-%d %H:%M") if played else t("worlds.never")),
            )
            self._table.setItem(row, _COL_SIZE, QTableWidgetItem(format_size(world.size_bytes)))

            latest = self._ctx.backup_manager.latest_backup(world)
            self._table.setItem(
                row, _COL_LAST_BACKUP,
                QTableWidgetItem(latest.created_at.strftime("%Y-%m-%d %H:%M") if latest else t("worlds.never")),
            )
        self._populating = False
        self._update_selected_count()

    def _on_item_changed(self, item: QTableWidgetItem) -> None:
        if self._populating or item.column() != _COL_SELECT:
            return
        row = item.row()
        if row >= len(self._worlds):
            return
        world = self._worlds[row]
        world.is_selected = item.checkState() == Qt.CheckState.Checked
        self._ctx.config.set_world_selected(world.unique_id, world.is_selected)
        self._update_selected_count()

    def _update_selected_count(self) -> None:
        count = sum(1 for w in self._worlds if w.is_selected)
        self._selected_label.setText(t("worlds.selected_count", count=count))

    def _update_countdown(self) -> None:
        next_scan = self._ctx.scheduler.next_scan_at
        if next_scan is None:
            self._countdown.setText(t("worlds.scheduler_stopped"))
            return
        remaining = max(0, int((next_scan - datetime.now()).total_seconds()))
        minutes, seconds = divmod(remaining, 60)
        self._countdown.setText(t("worlds.next_scan", time=f"{minutes:02d}:{seconds:02d}"))

    # ── Manual backups ──

    def _current_world(self) -> World | None:
        row = self._table.currentRow()
        if 0 <= row < len(self._worlds):
            return self._worlds[row]
        return None

    def _on_open_backups(self) -> None:
        world = self._current_world()
        target = (
            self._ctx.backup_manager.world_backup_dir(world)
            if world
            else self._ctx.backup_manager.backup_root
        )
        target.mkdir(parents=True, exist_ok=True)
        open_folder(target)

    def _on_backup_current(self) -> None:
        world = self._current_world()
        if world is None:
            show_error(self, t("worlds.err_none_selected"), t("worlds.err_pick_world"))
            return
        self._start_backup([world])

    def _on_backup_all(self) -> None:
        selected = [w for w in self._worlds if w.is_selected]
        if not selected:
            show_error(self, t("worlds.err_none_selected"), t("worlds.err_none_selected_msg"))
            return
        self._start_backup(selected)

    def _start_backup(self, worlds: list[World]) -> None:
        if self._backup_worker is not None:
            return
        self._backup_btn.setEnabled(False)
        self._backup_all_btn.setEnabled(False)
        self._progress.setValue(0)
        self._progress.setVisible(True)

        self._backup_worker = BackupWorker(self._ctx, worlds, self)
        self._backup_worker.progress.connect(self._progress.setValue)
        self._backup_worker.error.connect(lambda msg: show_error(self, t("worlds.backup_failed"), msg))
        self._backup_worker.finished.connect(self._on_backup_finished)
        self._backup_worker.start()

    def _on_backup_finished(self, count: int, total: int) -> None:
        self._backup_worker = None
        self._progress.setVisible(False)
        self._backup_btn.setEnabled(True)
        self._backup_all_btn.setEnabled(True)
        if count:
            show_success(self, t("worlds.backup_done"), t("worlds.backup_done_msg", count=count, total=total))
        self._refresh_table()

    # ── Scheduler events ──

    def _on_scan_completed(self, event: ScanCompletedEvent) -> None:
        self._set_instances(self._ctx.scheduler.catalog)

    def _on_backup_started(self, world: World) -> None:
        self._status.setText(t("worlds.backing_up", name=world.name))

    def _on_backup_completed(self, world: World, result: BackupResult) -> None:
        if result.success:
            self._status.setText(t("worlds.backed_up", name=world.name))
        else:
            self._status.setText(t("worlds.backup_failed_name", name=world.name))
        self._refresh_table()
