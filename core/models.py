"""
Library entities for GameShelf.

Games and categories are plain dataclasses keyed by random UUIDs. Each
entity knows how to turn itself into a JSON-ready dict and back; the
library and config documents are built from these.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

GameId = uuid.UUID
CategoryId = uuid.UUID


def new_id() -> uuid.UUID:
    return uuid.uuid4()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"Expected timestamp string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def expect_type(value, kind: type, name: str):
    if not isinstance(value, kind):
        raise TypeError(f"{name} must be {kind.__name__}, got {value!r}")
    return value


def _optional_path(value: Any) -> Optional[Path]:
    return Path(value) if value else None


def _optional_str(value: Optional[Path]) -> Optional[str]:
    return str(value) if value is not None else None


class GameSource(Enum):
    STEAM = "Steam"
    EPIC = "Epic"
    GOG = "GOG"
    MANUAL = "Manual"

    @property
    def label(self) -> str:
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    GameSource.STEAM: "Steam",
    GameSource.EPIC: "Epic Games",
    GameSource.GOG: "GOG Galaxy",
    GameSource.MANUAL: "Manual",
}


class SortOrder(Enum):
    NAME_ASC = "NameAsc"
    NAME_DESC = "NameDesc"
    LAST_PLAYED = "LastPlayed"
    RECENTLY_ADDED = "RecentlyAdded"
    MOST_PLAYED = "MostPlayed"

    @property
    def label(self) -> str:
        return _SORT_LABELS[self]


_SORT_LABELS = {
    SortOrder.NAME_ASC: "Name (A-Z)",
    SortOrder.NAME_DESC: "Name (Z-A)",
    SortOrder.LAST_PLAYED: "Last Played",
    SortOrder.RECENTLY_ADDED: "Recently Added",
    SortOrder.MOST_PLAYED: "Most Played",
}


class ViewMode(Enum):
    GRID = "Grid"
    LIST = "List"


class CardSize(Enum):
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"

    @property
    def width(self) -> int:
        return {"Small": 120, "Medium": 180, "Large": 240}[self.value]

    @property
    def height(self) -> int:
        return {"Small": 160, "Medium": 240, "Large": 320}[self.value]


@dataclass
class Category:
    """A user-defined tag for grouping games."""
    name: str
    color: Optional[str] = None              # Hex, e.g. "#FF5733"
    icon: Optional[str] = None
    id: CategoryId = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "color": self.color,
            "icon": self.icon,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Category:
        return cls(
            id=uuid.UUID(data["id"]),
            name=str(data["name"]),
            color=data.get("color"),
            icon=data.get("icon"),
        )


def default_categories() -> list[Category]:
    """Categories seeded into a brand new library."""
    return [
        Category("Action", "#E74C3C"),
        Category("RPG", "#9B59B6"),
        Category("Strategy", "#3498DB"),
        Category("Puzzle", "#2ECC71"),
        Category("Simulation", "#F39C12"),
        Category("Sports", "#1ABC9C"),
        Category("Indie", "#E91E63"),
    ]


@dataclass
class Game:
    """A game in the library."""
    name: str
    executable_path: Path
    source: GameSource
    source_id: Optional[str] = None          # Steam AppID, Epic AppName, GOG productId
    install_path: Optional[Path] = None
    categories: list[CategoryId] = field(default_factory=list)
    favorite: bool = False
    icon_path: Optional[Path] = None
    banner_path: Optional[Path] = None
    last_played: Optional[datetime] = None
    playtime_minutes: int = 0
    added_date: datetime = field(default_factory=utc_now)
    launch_args: Optional[str] = None
    id: GameId = field(default_factory=new_id)

    def __post_init__(self) -> None:
        self.executable_path = Path(self.executable_path)
        if not str(self.executable_path) or str(self.executable_path) == ".":
            raise ValueError(f"Game '{self.name}' has no executable path")
        if self.source is GameSource.MANUAL and self.source_id is not None:
            raise ValueError("Manual games cannot carry a source id")
        if self.source is not GameSource.MANUAL and not self.source_id:
            raise ValueError(f"{self.source.label} game '{self.name}' needs a source id")
        if self.playtime_minutes < 0:
            raise ValueError("Playtime cannot be negative")
        if not isinstance(self.added_date, datetime):
            raise TypeError(f"Game '{self.name}' has no added date")

    def mark_played(self) -> None:
        self.last_played = utc_now()

    def add_playtime(self, minutes: int) -> None:
        if minutes < 0:
            raise ValueError("Playtime can only grow")
        self.playtime_minutes += minutes

    def toggle_favorite(self) -> None:
        self.favorite = not self.favorite

    def has_category(self, category_id: CategoryId) -> bool:
        return category_id in self.categories

    def add_category(self, category_id: CategoryId) -> None:
        if not self.has_category(category_id):
            self.categories.append(category_id)

    def remove_category(self, category_id: CategoryId) -> None:
        self.categories = [c for c in self.categories if c != category_id]

    def playtime_display(self) -> str:
        hours, mins = divmod(self.playtime_minutes, 60)
        if hours > 0:
            return f"{hours}h {mins}m"
        return f"{mins}m"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "executable_path": str(self.executable_path),
            "install_path": _optional_str(self.install_path),
            "source": self.source.value,
            "source_id": self.source_id,
            "categories": [str(c) for c in self.categories],
            "favorite": self.favorite,
            "icon_path": _optional_str(self.icon_path),
            "banner_path": _optional_str(self.banner_path),
            "last_played": format_timestamp(self.last_played),
            "playtime_minutes": self.playtime_minutes,
            "added_date": format_timestamp(self.added_date),
            "launch_args": self.launch_args,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Game:
        playtime = data.get("playtime_minutes", 0)
        if isinstance(playtime, bool):
            raise TypeError(f"playtime_minutes must be an integer, got {playtime!r}")
        source_id = data.get("source_id")
        if source_id is not None:
            expect_type(source_id, str, "source_id")
        launch_args = data.get("launch_args")
        if launch_args is not None:
            expect_type(launch_args, str, "launch_args")
        return cls(
            id=uuid.UUID(data["id"]),
            name=expect_type(data["name"], str, "name"),
            executable_path=Path(expect_type(data["executable_path"], str, "executable_path")),
            install_path=_optional_path(data.get("install_path")),
            source=GameSource(data["source"]),
            source_id=source_id,
            categories=[uuid.UUID(c) for c in expect_type(data.get("categories", []), list, "categories")],
            favorite=expect_type(data.get("favorite", False), bool, "favorite"),
            icon_path=_optional_path(data.get("icon_path")),
            banner_path=_optional_path(data.get("banner_path")),
            last_played=parse_timestamp(data.get("last_played")),
            playtime_minutes=expect_type(playtime, int, "playtime_minutes"),
            added_date=parse_timestamp(expect_type(data["added_date"], str, "added_date")),
            launch_args=launch_args,
        )


@dataclass
class DetectedGame:
    """A game found by an importer, not yet part of the library."""
    name: str
    source_id: str
    executable_path: Path
    install_path: Path
    icon_path: Optional[Path] = None

    def into_game(self, source: GameSource) -> Game:
        """Turn this detection into a fresh library entry."""
        return Game(
            name=self.name,
            executable_path=self.executable_path,
            install_path=self.install_path,
            source=source,
            source_id=self.source_id,
            icon_path=self.icon_path,
        )
