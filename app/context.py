"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.config import Config
    from app.core.backup import BackupManager
    from app.core.scanner import Scanner
    from app.core.scheduler import BackupScheduler
    from app.core.sync import SyncManager


@dataclass
class AppContext:
    """
    Central service container.

    Built once by ``main.create_context`` and handed to every page, so the
    engine services never import anything from the UI layer.
    """

    config: Config
    scanner: Scanner
    backup_manager: BackupManager
    scheduler: BackupScheduler
    sync_manager: SyncManager
