"""Instance and world data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass
class WorldMetadata:
    """Fields read from a world's ``level.dat``."""

    display_name: str
    last_played: int = 0  # epoch milliseconds


@dataclass
class Instance:
    """A launcher instance (modpack / profile) containing a ``saves`` folder."""

    name: str
    root_path: Path  # the ``.minecraft`` dir, or the instance dir itself
    worlds: list[World] = field(default_factory=list)

    @property
    def saves_path(self) -> Path:
        return self.root_path / "saves"

    @property
    def is_valid(self) -> bool:
        return self.saves_path.is_dir()


@dataclass(eq=False)
class World:
    """One save directory inside an instance."""

    path: Path
    name: str
    instance: Instance = field(repr=False)
    last_played: int = 0  # epoch milliseconds, from level.dat
    last_backup_timestamp: int = 0  # watermark, epoch milliseconds
    size_bytes: int = 0
    is_selected: bool = False

    @property
    def unique_id(self) -> str:
        return f"{self.instance.name}::{self.name}"

    @property
    def needs_backup(self) -> bool:
        return self.last_played > self.last_backup_timestamp

    @property
    def last_played_at(self) -> datetime | None:
        if self.last_played <= 0:
            return None
        return datetime.fromtimestamp(self.last_played / 1000)
