"""Tests for the level.dat reader."""

from __future__ import annotations

from pathlib import Path

from conftest import write_level_dat

from app.core.level_reader import has_level_dat, read_level, refresh_timestamp
from app.models.world import Instance, World


class TestReadLevel:
    def test_reads_name_and_last_played(self, tmp_path: Path) -> None:
        world_dir = tmp_path / "New World"
        write_level_dat(world_dir, "Valley", 1_700_000_000_123)
        meta = read_level(world_dir)
        assert meta.display_name == "Valley"
        assert meta.last_played == 1_700_000_000_123

    def test_corrupt_file_falls_back_to_folder_name(self, tmp_path: Path) -> None:
        world_dir = tmp_path / "Broken"
        world_dir.mkdir()
        (world_dir / "level.dat").write_bytes(b"definitely not gzip")
        meta = read_level(world_dir)
        assert meta.display_name == "Broken"
        assert meta.last_played == 0

    def test_truncated_file_falls_back(self, tmp_path: Path) -> None:
        world_dir = tmp_path / "Truncated"
        path = write_level_dat(world_dir, "Truncated World", 5)
        path.write_bytes(path.read_bytes()[:10])
        meta = read_level(world_dir)
        assert meta.display_name == "Truncated"
        assert meta.last_played == 0

    def test_missing_fields_fall_back(self, tmp_path: Path) -> None:
        world_dir = tmp_path / "NoFields"
        write_level_dat(world_dir, name=None, last_played=None)
        meta = read_level(world_dir)
        assert meta.display_name == "NoFields"
        assert meta.last_played == 0

    def test_has_level_dat(self, tmp_path: Path) -> None:
        assert not has_level_dat(tmp_path)
        write_level_dat(tmp_path / "w")
        assert has_level_dat(tmp_path / "w")


class TestRefreshTimestamp:
    def _world(self, path: Path, last_played: int) -> World:
        instance = Instance(name="Pack", root_path=path.parent.parent)
        return World(path=path, name="Valley", instance=instance, last_played=last_played)

    def test_updates_in_place(self, tmp_path: Path) -> None:
        world_dir = tmp_path / "saves" / "Valley"
        write_level_dat(world_dir, "Valley", 2000)
        world = self._world(world_dir, 1000)
        assert refresh_timestamp(world) is True
        assert world.last_played == 2000

    def test_unreadable_leaves_value_unchanged(self, tmp_path: Path) -> None:
        world_dir = tmp_path / "saves" / "Valley"
        world_dir.mkdir(parents=True)
        (world_dir / "level.dat").write_bytes(b"\x1f\x8b garbage")
        world = self._world(world_dir, 1000)
        assert refresh_timestamp(world) is False
        assert world.last_played == 1000

    def test_missing_file_leaves_value_unchanged(self, tmp_path: Path) -> None:
        world = self._world(tmp_path / "saves" / "Gone", 1234)
        assert refresh_timestamp(world) is False
        assert world.last_played == 1234
