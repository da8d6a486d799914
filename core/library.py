"""
Game library store for GameShelf.

The Library owns every Game and Category, keyed by id. It answers the
lookup, filter, sort and search queries the UI needs and keeps one rule
at all times: no game references a category that does not exist.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import DeserializationError, StorageError
from .models import (
    Category, CategoryId, Game, GameId, GameSource, SortOrder, default_categories,
)
from .storage import load_document, save_document

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def sort_games(games: list[Game], order: SortOrder) -> list[Game]:
    """Stable sort; equal keys keep their incoming order."""
    if order is SortOrder.NAME_ASC:
        return sorted(games, key=lambda g: g.name.lower())
    if order is SortOrder.NAME_DESC:
        return sorted(games, key=lambda g: g.name.lower(), reverse=True)
    if order is SortOrder.LAST_PLAYED:
        # Never-played games sort as the oldest
        return sorted(games, key=lambda g: g.last_played or _OLDEST, reverse=True)
    if order is SortOrder.RECENTLY_ADDED:
        return sorted(games, key=lambda g: g.added_date, reverse=True)
    if order is SortOrder.MOST_PLAYED:
        return sorted(games, key=lambda g: g.playtime_minutes, reverse=True)
    raise ValueError(f"Unknown sort order: {order}")


class Library:
    """All games and categories."""

    def __init__(self, games: Optional[dict[GameId, Game]] = None,
                 categories: Optional[dict[CategoryId, Category]] = None):
        self.games: dict[GameId, Game] = games if games is not None else {}
        if categories is None:
            categories = {c.id: c for c in default_categories()}
        self.categories: dict[CategoryId, Category] = categories

    # --- Games ---

    def add_game(self, game: Game) -> None:
        """Insert or overwrite by id."""
        self.games[game.id] = game

    def remove_game(self, game_id: GameId) -> Optional[Game]:
        return self.games.pop(game_id, None)

    def get_game(self, game_id: GameId) -> Optional[Game]:
        return self.games.get(game_id)

    # Games are mutable dataclasses, so the same lookup serves edits.
    get_game_mut = get_game

    def find_by_source(self, source: GameSource, source_id: str) -> Optional[Game]:
        for game in self.games.values():
            if game.source is source and game.source_id == source_id:
                return game
        return None

    def all_games(self) -> list[Game]:
        return list(self.games.values())

    def favorite_games(self) -> list[Game]:
        return [g for g in self.games.values() if g.favorite]

    def games_in_category(self, category_id: CategoryId) -> list[Game]:
        return [g for g in self.games.values() if g.has_category(category_id)]

    def search_games(self, query: str) -> list[Game]:
        """Case-insensitive substring match on the game name."""
        needle = query.lower()
        return [g for g in self.games.values() if needle in g.name.lower()]

    def games_sorted(self, order: SortOrder) -> list[Game]:
        return sort_games(self.all_games(), order)

    def recently_played(self, limit: int = 5) -> list[Game]:
        played = [g for g in self.games.values() if g.last_played is not None]
        return sort_games(played, SortOrder.LAST_PLAYED)[:limit]

    def filtered_and_sorted(self, query: str = "",
                            category: Optional[CategoryId] = None,
                            order: SortOrder = SortOrder.NAME_ASC,
                            favorites_only: bool = False) -> list[Game]:
        """
        The games a library view should show.

        A selected category (or the favorites view) replaces the text
        search instead of narrowing it; the query only applies when
        neither is selected.
        """
        if category is not None:
            games = self.games_in_category(category)
        elif favorites_only:
            games = self.favorite_games()
        elif query:
            games = self.search_games(query)
        else:
            games = self.all_games()
        return sort_games(games, order)

    def game_count(self) -> int:
        return len(self.games)

    # --- Categories ---

    def add_category(self, category: Category) -> None:
        self.categories[category.id] = category

    def remove_category(self, category_id: CategoryId) -> Optional[Category]:
        """Remove a category after stripping it from every game."""
        for game in self.games.values():
            game.remove_category(category_id)
        return self.categories.pop(category_id, None)

    def get_category(self, category_id: CategoryId) -> Optional[Category]:
        return self.categories.get(category_id)

    def all_categories(self) -> list[Category]:
        return list(self.categories.values())

    def assign_category(self, game_id: GameId, category_id: CategoryId) -> bool:
        game = self.games.get(game_id)
        if game is None or category_id not in self.categories:
            return False
        game.add_category(category_id)
        return True

    def unassign_category(self, game_id: GameId, category_id: CategoryId) -> bool:
        game = self.games.get(game_id)
        if game is None:
            return False
        game.remove_category(category_id)
        return True

    # --- Persistence ---

    def to_dict(self) -> dict:
        return {
            "games": {str(gid): g.to_dict() for gid, g in self.games.items()},
            "categories": {str(cid): c.to_dict() for cid, c in self.categories.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> Library:
        try:
            games = [Game.from_dict(g) for g in data["games"].values()]
            categories = [Category.from_dict(c) for c in data["categories"].values()]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise DeserializationError(f"Invalid library document: {e!r}") from e

        library = cls(
            games={g.id: g for g in games},
            categories={c.id: c for c in categories},
        )
        library._drop_dangling_categories()
        return library

    def _drop_dangling_categories(self) -> None:
        for game in self.games.values():
            dangling = [c for c in game.categories if c not in self.categories]
            for category_id in dangling:
                logger.warning(f"Dropping unknown category {category_id} from {game.name}")
                game.remove_category(category_id)

    def save(self, path: Path) -> None:
        save_document(self.to_dict(), path)
        logger.info(f"Library saved to {path}")

    @classmethod
    def load(cls, path: Path) -> Library:
        library = cls.from_dict(load_document(path))
        logger.info(f"Library loaded from {path} ({library.game_count()} games)")
        return library

    @classmethod
    def load_or_create(cls, path: Path) -> Library:
        """Load the library, or start a fresh one if it is missing or unreadable."""
        try:
            return cls.load(path)
        except StorageError as e:
            logger.warning(f"Could not load library: {e}. Creating new library.")
            return cls()
