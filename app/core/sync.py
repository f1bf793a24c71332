"""Sync manager — mirror world folders into a shared (cloud client) folder."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from app.utils import sanitize_filename

if TYPE_CHECKING:
    from app.config import Config
    from app.core.backup import ProgressCallback
    from app.models.backup_record import BackupResult
    from app.models.world import World

SYNC_DIR_NAME = "MinecraftBackups"


@dataclass
class SyncResult:
    """Result of a sync operation."""

    copied: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class SyncManager:
    """
    Mirror world folders into a folder kept in sync by a cloud client
    (Google Drive, OneDrive, Dropbox …).

    Directory structure:
      {sync_folder}/MinecraftBackups/{instance}/{world}/
        └── <world files at their relative paths>

    Registered as a scheduler listener: each successful backup is followed
    by a mirror of the same world.
    """

    def __init__(self, config: Config) -> None:
        self._config = config

    @property
    def sync_root(self) -> Path | None:
        sf = self._config.sync_folder
        if sf is None or not sf.exists():
            return None
        return sf / SYNC_DIR_NAME

    @property
    def is_configured(self) -> bool:
        return self._config.sync_enabled and self.sync_root is not None

    def world_sync_dir(self, world: World) -> Path | None:
        root = self.sync_root
        if root is None:
            return None
        return root / sanitize_filename(world.instance.name) / sanitize_filename(world.name)

    @staticmethod
    def _is_current(source: Path, dest: Path) -> bool:
        if not dest.exists():
            return False
        src_stat = source.stat()
        dst_stat = dest.stat()
        return (
            src_stat.st_size == dst_stat.st_size
            and int(src_stat.st_mtime) == int(dst_stat.st_mtime)
        )

    def sync_world(
        self, world: World, progress: ProgressCallback | None = None,
    ) -> SyncResult:
        """Copy new and changed files of *world* into the sync folder."""
        result = SyncResult()
        target = self.world_sync_dir(world)
        if target is None:
            result.errors.append("Sync folder not configured")
            return result

        try:
            files = sorted(p for p in world.path.rglob("*") if p.is_file())
        except OSError as e:
            result.errors.append(f"{world.unique_id}: {e}")
            return result

        total = len(files)
        if total == 0 and progress is not None:
            progress(100)
        for processed, source in enumerate(files, start=1):
            relative = source.relative_to(world.path)
            dest = target / relative
            try:
                if self._is_current(source, dest):
                    result.skipped += 1
                else:
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source, dest)
                    result.copied += 1
            except OSError as e:
                result.errors.append(f"{relative.as_posix()}: {e}")
                logger.debug(f"Sync skipped {relative.as_posix()}: {e}")
            if progress is not None:
                progress(round(processed / total * 100))

        logger.info(
            f"Synced {world.unique_id}: {result.copied} copied, "
            f"{result.skipped} unchanged, {len(result.errors)} failed"
        )
        return result

    # ── Scheduler listener ──

    def on_backup_completed(self, world: World, result: BackupResult) -> None:
        if not result.success or not self.is_configured:
            return
        self.sync_world(world)
