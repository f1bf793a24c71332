"""Shared fixtures — on-disk launcher layouts with real NBT level.dat files."""

from __future__ import annotations

from pathlib import Path

import pytest
from nbt import nbt

from app.config import Config, reset_config


def write_level_dat(
    world_dir: Path,
    name: str | None = "World",
    last_played: int | None = 0,
) -> Path:
    """Write a gzip NBT level.dat with the given Data fields (None = omit)."""
    world_dir.mkdir(parents=True, exist_ok=True)
    root = nbt.NBTFile()
    root.name = ""
    data = nbt.TAG_Compound(name="Data")
    if name is not None:
        data.tags.append(nbt.TAG_String(name="LevelName", value=name))
    if last_played is not None:
        data.tags.append(nbt.TAG_Long(name="LastPlayed", value=last_played))
    root.tags.append(data)
    path = world_dir / "level.dat"
    root.write_file(str(path))
    return path


def make_world(
    instances_root: Path,
    instance: str,
    folder: str,
    name: str | None = None,
    last_played: int = 0,
    dot_minecraft: bool = True,
) -> Path:
    """Create ``{instance}/[.minecraft/]saves/{folder}`` with level.dat and a region file."""
    base = instances_root / instance
    if dot_minecraft:
        base = base / ".minecraft"
    world_dir = base / "saves" / folder
    write_level_dat(world_dir, name or folder, last_played)
    region = world_dir / "region"
    region.mkdir(exist_ok=True)
    (region / "r.0.0.mca").write_bytes(b"\x00" * 4096)
    return world_dir


@pytest.fixture(autouse=True)
def _clean_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    cfg = Config(config_dir=tmp_path / "data")
    with cfg.batch_update():
        cfg.instances_path = tmp_path / "instances"
        cfg.backup_path = tmp_path / "backup_root"
    return cfg


@pytest.fixture
def instances_root(tmp_path: Path) -> Path:
    root = tmp_path / "instances"
    root.mkdir()
    return root
