"""Main window — FluentWindow with worlds and settings pages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import QSize
from qfluentwidgets import FluentIcon as FIF
from qfluentwidgets import FluentWindow, NavigationItemPosition

from app.i18n import t
from app.ui.pages.settings_page import SettingsPage
from app.ui.pages.worlds_page import WorldsPage

if TYPE_CHECKING:
    from PySide6.QtGui import QCloseEvent

    from app.context import AppContext


class MainWindow(FluentWindow):
    """Application main window with sidebar navigation."""

    def __init__(self, ctx: AppContext) -> None:
        super().__init__()
        self._ctx = ctx

        self.setWindowTitle("Minecraft World Backup")
        self.setMinimumSize(QSize(960, 640))
        self.resize(1100, 720)

        self._init_pages()
        self._worlds_page.refresh()

    def _init_pages(self) -> None:
        """Initialize navigation pages."""
        self._worlds_page = WorldsPage(self._ctx, self)
        self.addSubInterface(self._worlds_page, FIF.SAVE, t("nav.worlds"))

        # Settings (bottom position)
        self._settings_page = SettingsPage(self._ctx, self)
        self.addSubInterface(
            self._settings_page,
            FIF.SETTING,
            t("nav.settings"),
            position=NavigationItemPosition.BOTTOM,
        )

    def closeEvent(self, event: QCloseEvent) -> None:
        self._ctx.scheduler.shutdown()
        super().closeEvent(event)
