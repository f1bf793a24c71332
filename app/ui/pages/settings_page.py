"""Settings page — app configuration UI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtWidgets import QVBoxLayout, QWidget, QFileDialog
from qfluentwidgets import (
    ScrollArea,
    SettingCardGroup,
    PushSettingCard,
    SpinBox,
    SwitchButton,
    ComboBox as FluentComboBox,
)
from qfluentwidgets import FluentIcon as FIF

from app.config import (
    MAX_BACKUPS_PER_WORLD,
    MAX_POLLING_INTERVAL,
    MIN_BACKUPS_PER_WORLD,
    MIN_POLLING_INTERVAL,
)
from app.i18n import t, set_language, supported_languages, current_language

if TYPE_CHECKING:
    from app.context import AppContext


class SettingsPage(ScrollArea):
    """Application settings page."""

    def __init__(self, ctx: AppContext, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._ctx = ctx
        self.setObjectName("settingsPage")
        self.setWidgetResizable(True)

        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(16)

        # ── Language settings ──
        lang_group = SettingCardGroup(t("settings.language_group"), self)
        self._lang_card = PushSettingCard(
            "",
            FIF.LANGUAGE,
            t("settings.language"),
            t("settings.language_hint"),
            lang_group,
        )
        self._lang_card.button.hide()

        _LANG_LABELS = {"zh_CN": "简体中文", "en_US": "English"}
        self._lang_combo = FluentComboBox(self)
        for lang in supported_languages():
            self._lang_combo.addItem(_LANG_LABELS.get(lang, lang), userData=lang)
        cur = current_language()
        for i in range(self._lang_combo.count()):
            if self._lang_combo.itemData(i) == cur:
                self._lang_combo.setCurrentIndex(i)
                break
        self._lang_combo.currentIndexChanged.connect(self._on_language_changed)
        self._lang_card.hBoxLayout.insertWidget(2, self._lang_combo)

        lang_group.addSettingCard(self._lang_card)
        layout.addWidget(lang_group)

        # ── Folders ──
        folder_group = SettingCardGroup(t("settings.folder_group"), self)
        self._instances_card = PushSettingCard(
            t("settings.browse"),
            FIF.GAME,
            t("settings.instances_dir"),
            str(ctx.config.instances_path or t("settings.not_set")),
            folder_group,
        )
        self._instances_card.clicked.connect(self._on_browse_instances)
        folder_group.addSettingCard(self._instances_card)

        self._backup_path_card = PushSettingCard(
            t("settings.browse"),
            FIF.FOLDER,
            t("settings.backup_dir"),
            str(ctx.config.backup_path or t("settings.not_set")),
            folder_group,
        )
        self._backup_path_card.clicked.connect(self._on_browse_backup)
        folder_group.addSettingCard(self._backup_path_card)
        layout.addWidget(folder_group)

        # ── Schedule & retention ──
        schedule_group = SettingCardGroup(t("settings.schedule_group"), self)
        self._interval_card = PushSettingCard(
            "", FIF.HISTORY, t("settings.interval"), t("settings.interval_hint"), schedule_group,
        )
        self._interval_card.button.hide()
        self._interval_spin = SpinBox(self)
        self._interval_spin.setRange(MIN_POLLING_INTERVAL, MAX_POLLING_INTERVAL)
        self._interval_spin.setValue(ctx.config.polling_interval_minutes)
        self._interval_spin.valueChanged.connect(self._on_interval_changed)
        self._interval_card.hBoxLayout.insertWidget(2, self._interval_spin)
        schedule_group.addSettingCard(self._interval_card)

        self._retention_card = PushSettingCard(
            "", FIF.DELETE, t("settings.max_backups"), t("settings.max_backups_hint"), schedule_group,
        )
        self._retention_card.button.hide()
        self._retention_spin = SpinBox(self)
        self._retention_spin.setRange(MIN_BACKUPS_PER_WORLD, MAX_BACKUPS_PER_WORLD)
        self._retention_spin.setValue(ctx.config.max_backups_per_world)
        self._retention_spin.valueChanged.connect(self._on_retention_changed)
        self._retention_card.hBoxLayout.insertWidget(2, self._retention_spin)
        schedule_group.addSettingCard(self._retention_card)

        self._minimized_card = PushSettingCard(
            "", FIF.MINIMIZE, t("settings.start_minimized"), t("settings.start_minimized_hint"),
            schedule_group,
        )
        self._minimized_card.button.hide()
        self._minimized_switch = SwitchButton(self)
        self._minimized_switch.setChecked(ctx.config.start_minimized)
        self._minimized_switch.checkedChanged.connect(self._on_minimized_changed)
        self._minimized_card.hBoxLayout.insertWidget(2, self._minimized_switch)
        schedule_group.addSettingCard(self._minimized_card)
        layout.addWidget(schedule_group)

        # ── Sync settings ──
        sync_group = SettingCardGroup(t("settings.sync_group"), self)
        self._sync_enabled_card = PushSettingCard(
            "", FIF.CLOUD, t("settings.sync_enabled"), t("settings.sync_enabled_hint"), sync_group,
        )
        self._sync_enabled_card.button.hide()
        self._sync_switch = SwitchButton(self)
        self._sync_switch.setChecked(ctx.config.sync_enabled)
        self._sync_switch.checkedChanged.connect(self._on_sync_enabled_changed)
        self._sync_enabled_card.hBoxLayout.insertWidget(2, self._sync_switch)
        sync_group.addSettingCard(self._sync_enabled_card)

        self._sync_folder_card = PushSettingCard(
            t("settings.browse"),
            FIF.SYNC,
            t("settings.sync_folder"),
            str(ctx.config.sync_folder or t("settings.not_set")),
            sync_group,
        )
        self._sync_folder_card.clicked.connect(self._on_browse_sync)
        sync_group.addSettingCard(self._sync_folder_card)
        layout.addWidget(sync_group)

        layout.addStretch(1)
        self.setWidget(container)

    def _on_language_changed(self, index: int) -> None:
        lang = self._lang_combo.itemData(index)
        if lang and lang != current_language():
            set_language(lang)
            self._ctx.config.language = lang

    def _on_browse_instances(self) -> None:
        path = QFileDialog.getExistingDirectory(self, t("settings.choose_instances_dir"))
        if path:
            self._ctx.config.set("instances_path", path)
            self._instances_card.setContent(path)

    def _on_browse_backup(self) -> None:
        path = QFileDialog.getExistingDirectory(self, t("settings.choose_backup_dir"))
        if path:
            self._ctx.config.set("backup_path", path)
            self._backup_path_card.setContent(path)

    def _on_browse_sync(self) -> None:
        path = QFileDialog.getExistingDirectory(self, t("settings.choose_sync_folder"))
        if path:
            self._ctx.config.set("sync_folder", path)
            self._sync_folder_card.setContent(path)

    def _on_interval_changed(self, value: int) -> None:
        self._ctx.config.polling_interval_minutes = value
        self._ctx.scheduler.update_interval()

    def _on_retention_changed(self, value: int) -> None:
        self._ctx.config.max_backups_per_world = value

    def _on_minimized_changed(self, checked: bool) -> None:
        self._ctx.config.start_minimized = checked

    def _on_sync_enabled_changed(self, checked: bool) -> None:
        self._ctx.config.sync_enabled = checked
