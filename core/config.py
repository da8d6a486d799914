"""
Settings management for GameShelf.

Handles application preferences using a dataclass with JSON persistence.
The config file lives in the per-user data directory next to the library.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Optional

from .errors import DeserializationError, StorageError
from .models import (
    CardSize, GameSource, SortOrder, ViewMode, expect_type, format_timestamp, parse_timestamp,
    utc_now,
)
from .storage import load_document, save_document

logger = logging.getLogger(__name__)

LIBRARY_FILE = "library.json"
CONFIG_FILE = "config.json"
LOG_FILE = "gameshelf.log"

THEME_DARK = "dark"
THEME_LIGHT = "light"


@dataclass
class LastSyncTimes:
    """When each launcher was last imported from."""
    steam: Optional[datetime] = None
    epic: Optional[datetime] = None
    gog: Optional[datetime] = None

    def get(self, source: GameSource) -> Optional[datetime]:
        return getattr(self, source.value.lower(), None)

    def stamp(self, source: GameSource) -> None:
        if source is not GameSource.MANUAL:
            setattr(self, source.value.lower(), utc_now())

    def to_dict(self) -> dict:
        return {f.name: format_timestamp(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict) -> LastSyncTimes:
        return cls(**{f.name: parse_timestamp(data.get(f.name)) for f in fields(cls)})


@dataclass
class AppConfig:
    """Application-wide preferences."""
    theme: str = THEME_DARK
    start_minimized: bool = False            # Start in tray without the library window
    close_to_tray: bool = False              # Closing the window hides it instead of quitting
    default_sort: SortOrder = SortOrder.NAME_ASC
    default_view_mode: ViewMode = ViewMode.GRID
    card_size: CardSize = CardSize.MEDIUM
    show_sources: bool = True
    steam_library_paths: list[Path] = field(default_factory=list)  # Extra Steam libraries
    last_sync: LastSyncTimes = field(default_factory=LastSyncTimes)
    auto_import: bool = False                # Rescan launchers when their manifests change

    def to_dict(self) -> dict:
        return {
            "theme": self.theme,
            "start_minimized": self.start_minimized,
            "close_to_tray": self.close_to_tray,
            "default_sort": self.default_sort.value,
            "default_view_mode": self.default_view_mode.value,
            "card_size": self.card_size.value,
            "show_sources": self.show_sources,
            "steam_library_paths": [str(p) for p in self.steam_library_paths],
            "last_sync": self.last_sync.to_dict(),
            "auto_import": self.auto_import,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AppConfig:
        """Build a config from a document; missing keys take their defaults."""
        if not isinstance(data, dict):
            raise DeserializationError(f"Config must be a JSON object, got {type(data).__name__}")
        config = cls()
        try:
            if "theme" in data:
                config.theme = expect_type(data["theme"], str, "theme")
            for name in ("start_minimized", "close_to_tray", "show_sources", "auto_import"):
                if name in data:
                    setattr(config, name, expect_type(data[name], bool, name))
            if "default_sort" in data:
                config.default_sort = SortOrder(data["default_sort"])
            if "default_view_mode" in data:
                config.default_view_mode = ViewMode(data["default_view_mode"])
            if "card_size" in data:
                config.card_size = CardSize(data["card_size"])
            if "steam_library_paths" in data:
                paths = expect_type(data["steam_library_paths"], list, "steam_library_paths")
                config.steam_library_paths = [Path(expect_type(p, str, "steam_library_paths")) for p in paths]
            if "last_sync" in data:
                config.last_sync = LastSyncTimes.from_dict(
                    expect_type(data["last_sync"], dict, "last_sync")
                )
        except (TypeError, ValueError) as e:
            raise DeserializationError(f"Invalid config: {e}") from e
        return config


class ConfigManager:
    """Loads and saves AppConfig to a JSON file."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.config_file = self.data_dir / CONFIG_FILE
        self.config = self.load_or_create(self.config_file)

    @staticmethod
    def load(path: Path) -> AppConfig:
        config = AppConfig.from_dict(load_document(path))
        logger.debug(f"Config loaded from {path}")
        return config

    @classmethod
    def load_or_create(cls, path: Path) -> AppConfig:
        try:
            return cls.load(path)
        except StorageError as e:
            logger.warning(f"Could not load config: {e}. Using defaults.")
            return AppConfig()

    @staticmethod
    def save_config(config: AppConfig, path: Path) -> None:
        save_document(config.to_dict(), path)
        logger.debug(f"Config saved to {path}")

    def save(self) -> None:
        self.save_config(self.config, self.config_file)

    @property
    def library_file(self) -> Path:
        return self.data_dir / LIBRARY_FILE
