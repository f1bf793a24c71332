"""level.dat reader — world display name and last-played time from the NBT tree."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger
from nbt import nbt

from app.models.world import WorldMetadata

if TYPE_CHECKING:
    from app.models.world import World

# level.dat layout (gzip-compressed NBT)
#   <root> TAG_Compound
#     Data TAG_Compound
#       LevelName  TAG_String
#       LastPlayed TAG_Long   (epoch milliseconds)
LEVEL_DAT = "level.dat"


def level_dat_path(world_dir: Path) -> Path:
    return world_dir / LEVEL_DAT


def has_level_dat(world_dir: Path) -> bool:
    return level_dat_path(world_dir).is_file()


def _load_data_tag(world_dir: Path) -> nbt.TAG_Compound:
    """Parse level.dat and return its ``Data`` compound. Raises on any failure."""
    root = nbt.NBTFile(filename=str(level_dat_path(world_dir)))
    if "Data" not in root:
        raise KeyError("Data")
    data = root["Data"]
    if not isinstance(data, nbt.TAG_Compound):
        raise TypeError(f"'Data' is {type(data).__name__}, expected TAG_Compound")
    return data


def _get_value(data: nbt.TAG_Compound, name: str, tag_type: type):
    if name in data and isinstance(data[name], tag_type):
        return data[name].value
    return None


def read_level(world_dir: Path) -> WorldMetadata:
    """
    Read the display name and ``LastPlayed`` time of a world.

    Never raises: an unreadable or malformed ``level.dat`` yields the
    directory name and a timestamp of 0, so the world still shows up in the
    catalog.  A missing ``LevelName`` or ``LastPlayed`` falls back the same
    way, field by field.
    """
    fallback = WorldMetadata(display_name=world_dir.name, last_played=0)
    try:
        data = _load_data_tag(world_dir)
    except Exception as e:
        logger.warning(f"Unreadable level.dat in '{world_dir}', using folder name: {e}")
        return fallback

    name = _get_value(data, "LevelName", nbt.TAG_String)
    last_played = _get_value(data, "LastPlayed", nbt.TAG_Long)
    return WorldMetadata(
        display_name=name or fallback.display_name,
        last_played=int(last_played) if last_played is not None else 0,
    )


def refresh_timestamp(world: World) -> bool:
    """
    Re-read ``LastPlayed`` into *world* in place.

    Leaves the world untouched when the file cannot be read or the field is
    missing.  Returns True when a value was read.
    """
    try:
        data = _load_data_tag(world.path)
    except Exception as e:
        logger.debug(f"Could not refresh timestamp for '{world.name}': {e}")
        return False

    last_played = _get_value(data, "LastPlayed", nbt.TAG_Long)
    if last_played is None:
        return False
    world.last_played = int(last_played)
    return True
