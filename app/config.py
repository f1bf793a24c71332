"""Application configuration — JSON-based, with file locking and batch update support."""

from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

_instance: "Config | None" = None

# Default data directory
_DEFAULT_DATA_DIR = Path.home() / "Documents" / "MinecraftWorldBackup"

MIN_POLLING_INTERVAL = 1
MAX_POLLING_INTERVAL = 1440
MIN_BACKUPS_PER_WORLD = 1
MAX_BACKUPS_PER_WORLD = 100


def get_config() -> Config:
    """Module-level factory — single global Config instance."""
    global _instance
    if _instance is None:
        _instance = Config()
    return _instance


def reset_config() -> None:
    """Reset the global config instance (for testing)."""
    global _instance
    _instance = None


def _clamp(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


class Config:
    """
    JSON-based application configuration with file locking.

    Also the persistence point for per-world state: the set of worlds
    selected for backup and the last backed-up ``LastPlayed`` value of each
    world.  Both are mutated from the scheduler thread and the GUI thread,
    so every read-modify-write runs under ``_lock``.
    """

    _DEFAULTS: dict[str, Any] = {
        "language": "en_US",
        "theme": "auto",
        "instances_path": str(Path.home() / "ATLauncher" / "instances"),
        "backup_path": str(Path.home() / "Documents" / "MinecraftBackups"),
        "polling_interval_minutes": 10,
        "max_backups_per_world": 10,
        "selected_world_ids": [],
        "last_known_timestamps": {},
        "start_minimized": False,
        "sync_enabled": False,
        "sync_folder": "",
    }

    def __init__(self, config_dir: Path | None = None) -> None:
        self._data: dict[str, Any] = {}
        self._dir = config_dir or _DEFAULT_DATA_DIR
        self._path = self._dir / "config.json"
        self._lock = threading.RLock()
        self._defer_save = False
        self._load()

    def _load(self) -> None:
        """Load config from disk, merging with defaults."""
        self._data = json.loads(json.dumps(self._DEFAULTS))  # deep copy defaults
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as f:
                    user_data = json.load(f)
                self._deep_merge(self._data, user_data)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load config, using defaults: {e}")

    def _deep_merge(self, base: dict, override: dict) -> None:
        """Recursively merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save(self) -> None:
        """Persist config to disk with file locking."""
        with self._lock:
            if self._defer_save:
                return
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, ensure_ascii=False, indent=2)
                tmp_path.replace(self._path)
            except OSError as e:
                logger.error(f"Failed to save config: {e}")
                if tmp_path.exists():
                    tmp_path.unlink(missing_ok=True)

    @contextmanager
    def batch_update(self) -> Iterator[None]:
        """Context manager for batching multiple config changes into a single write."""
        with self._lock:
            self._defer_save = True
            try:
                yield
            finally:
                self._defer_save = False
                self._save()

    # ── Generic access ──

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-separated key path."""
        parts = key.split(".")
        with self._lock:
            node = self._data
            for part in parts:
                if isinstance(node, dict) and part in node:
                    node = node[part]
                else:
                    return default
            return node

    def set(self, key: str, value: Any) -> None:
        """Set a config value by dot-separated key path."""
        parts = key.split(".")
        with self._lock:
            node = self._data
            for part in parts[:-1]:
                if part not in node or not isinstance(node[part], dict):
                    node[part] = {}
                node = node[part]
            node[parts[-1]] = value
            self._save()

    # ── Typed properties ──

    @property
    def data_dir(self) -> Path:
        return self._dir

    @property
    def language(self) -> str:
        return self._data.get("language", "en_US")

    @language.setter
    def language(self, value: str) -> None:
        self.set("language", value)

    @property
    def theme(self) -> str:
        return self._data.get("theme", "auto")

    @theme.setter
    def theme(self, value: str) -> None:
        self.set("theme", value)

    @property
    def instances_path(self) -> Path | None:
        raw = self._data.get("instances_path", "")
        return Path(raw) if raw else None

    @instances_path.setter
    def instances_path(self, value: Path | None) -> None:
        self.set("instances_path", str(value) if value else "")

    @property
    def backup_path(self) -> Path | None:
        raw = self._data.get("backup_path", "")
        return Path(raw) if raw else None

    @backup_path.setter
    def backup_path(self, value: Path | None) -> None:
        self.set("backup_path", str(value) if value else "")

    @property
    def polling_interval_minutes(self) -> int:
        return _clamp(
            self._data.get("polling_interval_minutes"),
            MIN_POLLING_INTERVAL,
            MAX_POLLING_INTERVAL,
            10,
        )

    @polling_interval_minutes.setter
    def polling_interval_minutes(self, value: int) -> None:
        self.set(
            "polling_interval_minutes",
            _clamp(value, MIN_POLLING_INTERVAL, MAX_POLLING_INTERVAL, 10),
        )

    @property
    def max_backups_per_world(self) -> int:
        return _clamp(
            self._data.get("max_backups_per_world"),
            MIN_BACKUPS_PER_WORLD,
            MAX_BACKUPS_PER_WORLD,
            10,
        )

    @max_backups_per_world.setter
    def max_backups_per_world(self, value: int) -> None:
        self.set(
            "max_backups_per_world",
            _clamp(value, MIN_BACKUPS_PER_WORLD, MAX_BACKUPS_PER_WORLD, 10),
        )

    @property
    def start_minimized(self) -> bool:
        return bool(self._data.get("start_minimized", False))

    @start_minimized.setter
    def start_minimized(self, value: bool) -> None:
        self.set("start_minimized", value)

    @property
    def sync_enabled(self) -> bool:
        return bool(self._data.get("sync_enabled", False))

    @sync_enabled.setter
    def sync_enabled(self, value: bool) -> None:
        self.set("sync_enabled", value)

    @property
    def sync_folder(self) -> Path | None:
        raw = self._data.get("sync_folder", "")
        return Path(raw) if raw else None

    @sync_folder.setter
    def sync_folder(self, value: Path | None) -> None:
        self.set("sync_folder", str(value) if value else "")

    # ── Per-world state ──

    @property
    def selected_world_ids(self) -> list[str]:
        with self._lock:
            return list(self._data.get("selected_world_ids", []))

    def is_world_selected(self, world_id: str) -> bool:
        with self._lock:
            return world_id in self._data.get("selected_world_ids", [])

    def set_world_selected(self, world_id: str, selected: bool) -> None:
        with self._lock:
            ids: list[str] = self._data.setdefault("selected_world_ids", [])
            if selected and world_id not in ids:
                ids.append(world_id)
            elif not selected and world_id in ids:
                ids.remove(world_id)
            else:
                return
            self._save()

    def toggle_world_selection(self, world_id: str) -> bool:
        """Flip the selection state of a world and return the new state."""
        with self._lock:
            selected = not self.is_world_selected(world_id)
            self.set_world_selected(world_id, selected)
            return selected

    def get_last_known_timestamp(self, world_id: str) -> int:
        with self._lock:
            return int(self._data.get("last_known_timestamps", {}).get(world_id, 0))

    def update_last_known_timestamp(self, world_id: str, timestamp: int) -> None:
        with self._lock:
            self._data.setdefault("last_known_timestamps", {})[world_id] = int(timestamp)
            self._save()
