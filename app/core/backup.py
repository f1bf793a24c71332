"""Backup manager — timestamped ZIP snapshots of world folders with retention."""

from __future__ import annotations

import zipfile
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from loguru import logger

from app.models.backup_record import BackupRecord, BackupResult
from app.utils import sanitize_filename

if TYPE_CHECKING:
    from app.config import Config
    from app.models.world import World

ProgressCallback = Callable[[int], None]

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def _created_at(path: Path) -> float:
    """File creation time where the platform records one, else ctime."""
    st = path.stat()
    birth = getattr(st, "st_birthtime", None)
    return birth if birth is not None else st.st_ctime


def _list_archives(backup_dir: Path) -> list[tuple[float, Path]]:
    """Archives directly in *backup_dir*, newest first."""
    archives: list[tuple[float, Path]] = []
    for path in backup_dir.glob("*.zip"):
        try:
            if path.is_file():
                archives.append((_created_at(path), path))
        except OSError as e:
            logger.debug(f"Cannot stat backup '{path.name}': {e}")
    # Equal creation times fall back to the name, which embeds the timestamp
    archives.sort(key=lambda item: (item[0], item[1].name), reverse=True)
    return archives


def _report(progress: ProgressCallback | None, percent: int) -> None:
    if progress is None:
        return
    try:
        progress(percent)
    except Exception as e:
        logger.debug(f"Progress callback failed: {e}")


def apply_retention(backup_dir: Path, max_to_keep: int) -> list[Path]:
    """
    Keep the newest *max_to_keep* archives in *backup_dir*, delete the rest.

    Returns the deleted paths. A file that cannot be deleted is logged and
    skipped; a missing directory is a no-op.
    """
    if not backup_dir.is_dir():
        return []

    deleted: list[Path] = []
    for _, path in _list_archives(backup_dir)[max(max_to_keep, 0):]:
        try:
            path.unlink()
            deleted.append(path)
            logger.debug(f"Deleted old backup: {path.name}")
        except OSError as e:
            logger.warning(f"Failed to delete backup {path.name}: {e}")
    return deleted


class BackupManager:
    """ZIP backup engine with per-world retention."""

    def __init__(self, config: Config) -> None:
        self._config = config

    @property
    def backup_root(self) -> Path:
        return self._config.backup_path or self._config.data_dir

    def world_backup_dir(self, world: World) -> Path:
        return (
            self.backup_root
            / "backups"
            / sanitize_filename(world.instance.name)
            / sanitize_filename(world.name)
        )

    def create_backup(
        self, world: World, progress: ProgressCallback | None = None,
    ) -> BackupResult:
        """
        Archive the whole world folder into a new timestamped ZIP.

        Files that cannot be read (locked by the game, permission denied)
        are skipped and the backup still succeeds.  Anything that prevents
        the archive itself from being written is returned as a failed
        result, never raised.
        """
        result = BackupResult(world=world)
        zip_path: Path | None = None
        try:
            backup_dir = self.world_backup_dir(world)
            backup_dir.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
            zip_path = backup_dir / f"{sanitize_filename(world.name)}_{timestamp}.zip"
            if zip_path.exists():
                zip_path.unlink()

            result.skipped_files = self._write_zip(world.path, zip_path, progress)
            result.archive_path = str(zip_path)
            result.size = zip_path.stat().st_size
            result.success = True
        except Exception as e:
            result.error = str(e)
            logger.error(f"Backup failed for {world.unique_id}: {e}")
            if zip_path is not None:
                try:
                    zip_path.unlink(missing_ok=True)
                except OSError:
                    logger.debug(f"Could not remove partial archive {zip_path}")
            return result

        if result.skipped_files:
            logger.warning(
                f"Backup of {world.unique_id} skipped {len(result.skipped_files)} unreadable file(s)"
            )
        logger.info(f"Created backup: {zip_path.name} for {world.unique_id}")
        return result

    def _write_zip(
        self, source_dir: Path, zip_path: Path, progress: ProgressCallback | None,
    ) -> list[str]:
        """Write every file under *source_dir* into a ZIP. Returns skipped entries."""
        files = sorted(p for p in source_dir.rglob("*") if p.is_file())
        total = len(files)
        skipped: list[str] = []

        with zipfile.ZipFile(
            zip_path, "w", zipfile.ZIP_DEFLATED, strict_timestamps=False,
        ) as zf:
            if total == 0:
                _report(progress, 100)
            for processed, source in enumerate(files, start=1):
                entry = source.relative_to(source_dir).as_posix()
                try:
                    data = source.read_bytes()
                    info = zipfile.ZipInfo.from_file(source, entry, strict_timestamps=False)
                except OSError as e:
                    skipped.append(entry)
                    logger.debug(f"Skipping unreadable file: {entry} - {e}")
                else:
                    zf.writestr(info, data, compress_type=zipfile.ZIP_DEFLATED)
                _report(progress, round(processed / total * 100))

        return skipped

    def apply_retention(self, world: World) -> list[Path]:
        return apply_retention(self.world_backup_dir(world), self._config.max_backups_per_world)

    def list_backups(self, world: World) -> list[BackupRecord]:
        """List existing backups of a world, newest first."""
        backup_dir = self.world_backup_dir(world)
        if not backup_dir.is_dir():
            return []

        records: list[BackupRecord] = []
        for created, path in _list_archives(backup_dir):
            try:
                size = path.stat().st_size
            except OSError:
                continue
            records.append(
                BackupRecord(
                    path=str(path),
                    file_name=path.name,
                    created_at=datetime.fromtimestamp(created),
                    size=size,
                )
            )
        return records

    def latest_backup(self, world: World) -> BackupRecord | None:
        records = self.list_backups(world)
        return records[0] if records else None
