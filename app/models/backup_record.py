"""Backup record models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.world import World


@dataclass
class BackupResult:
    """Outcome of one archive run."""

    world: World
    success: bool = False
    archive_path: str = ""
    size: int = 0
    skipped_files: list[str] = field(default_factory=list)
    error: str = ""


@dataclass
class BackupRecord:
    """An existing backup archive found on disk."""

    path: str
    file_name: str
    created_at: datetime = field(default_factory=datetime.now)
    size: int = 0
