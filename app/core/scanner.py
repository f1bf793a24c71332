"""Instance scanner — discover launcher instances and the worlds in their saves folders."""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from app.config import Config
from app.core.level_reader import has_level_dat, read_level, refresh_timestamp
from app.models.world import Instance, World


def directory_size(path: Path) -> int:
    """Total size in bytes of every file under *path*; 0 on any traversal error."""
    try:
        total = 0
        for dirpath, _dirnames, filenames in os.walk(path, onerror=_raise):
            for filename in filenames:
                total += os.path.getsize(os.path.join(dirpath, filename))
        return total
    except OSError as e:
        logger.debug(f"Failed to size '{path}': {e}")
        return 0


def _raise(error: OSError) -> None:
    raise error


class Scanner:
    """
    Builds the instance → world catalog.

    Layout::

      {instances_root}/{instance}/[.minecraft/]saves/{world}/level.dat

    Worlds are recreated on every scan; the selection flag and backup
    watermark are re-applied from ``Config`` by ``World.unique_id``.
    """

    def __init__(self, config: Config) -> None:
        self._config = config

    def scan_instances(self, instances_root: Path | None = None) -> list[Instance]:
        """Scan all instances. A missing root yields an empty list."""
        root = instances_root or self._config.instances_path
        if root is None or not root.is_dir():
            logger.info(f"Instances path not found: {root}")
            return []

        instances: list[Instance] = []
        try:
            entries = [entry for entry in root.iterdir() if entry.is_dir()]
        except OSError as e:
            logger.error(f"Failed to list instances in '{root}': {e}")
            return []

        for instance_dir in entries:
            minecraft_root = instance_dir / ".minecraft"
            # Some launchers keep saves directly in the instance folder
            if not minecraft_root.is_dir():
                minecraft_root = instance_dir

            instance = Instance(name=instance_dir.name, root_path=minecraft_root)
            if not instance.is_valid:
                continue

            instance.worlds = self._scan_worlds(instance)
            if instance.worlds:
                instances.append(instance)

        total = sum(len(i.worlds) for i in instances)
        logger.info(f"Found {total} world(s) across {len(instances)} instance(s)")
        return instances

    def _scan_worlds(self, instance: Instance) -> list[World]:
        worlds: list[World] = []
        try:
            entries = [entry for entry in instance.saves_path.iterdir() if entry.is_dir()]
        except OSError as e:
            logger.error(f"Failed to list saves for '{instance.name}': {e}")
            return worlds

        for world_dir in entries:
            if not has_level_dat(world_dir):
                continue

            meta = read_level(world_dir)
            world = World(
                path=world_dir,
                name=meta.display_name,
                instance=instance,
                last_played=meta.last_played,
                size_bytes=directory_size(world_dir),
            )
            world.is_selected = self._config.is_world_selected(world.unique_id)
            world.last_backup_timestamp = self._config.get_last_known_timestamp(world.unique_id)
            worlds.append(world)

        logger.debug(f"{instance.name}: {len(worlds)} world(s) at {instance.saves_path}")
        return worlds

    @staticmethod
    def all_worlds(instances: list[Instance]) -> list[World]:
        return [world for instance in instances for world in instance.worlds]

    @staticmethod
    def refresh_world_timestamp(world: World) -> bool:
        return refresh_timestamp(world)
