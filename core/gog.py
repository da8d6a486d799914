"""
GOG Galaxy importer for GameShelf.

Installed products are listed in Galaxy's SQLite database. Each install
folder carries a goggame-<id>.info JSON file naming the game and its play
tasks; the first play task is the launch executable.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from .errors import DatabaseError, NotInstalledError, SourcePathNotFoundError
from .importer import GameImporter
from .models import DetectedGame, GameSource

try:
    import sqlite3
except ImportError:                          # Python built without SQLite
    sqlite3 = None

logger = logging.getLogger(__name__)

INSTALLED_PRODUCTS_QUERY = (
    "SELECT productId, localPath FROM InstalledBaseProducts "
    "WHERE localPath IS NOT NULL"
)


def sqlite_available() -> bool:
    return sqlite3 is not None


def find_game_in_folder(install_path: Path, product_id) -> Optional[DetectedGame]:
    """Read the goggame-*.info sidecar in an install folder."""
    try:
        entries = sorted(install_path.iterdir())
    except OSError as e:
        logger.debug(f"Cannot list GOG install {install_path}: {e}")
        return None

    for path in entries:
        if not (path.name.startswith("goggame-") and path.name.endswith(".info")):
            continue
        try:
            info = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug(f"Skipping unreadable {path}: {e}")
            continue
        if not isinstance(info, dict):
            continue

        name = info.get("name")
        play_tasks = info.get("playTasks")
        if not isinstance(name, str) or not isinstance(play_tasks, list) or not play_tasks:
            continue
        task = play_tasks[0]
        exe = task.get("path") if isinstance(task, dict) else None
        if not isinstance(exe, str) or not exe:
            continue

        executable_path = install_path / exe
        if executable_path.exists():
            return DetectedGame(
                name=name,
                source_id=str(product_id),
                executable_path=executable_path,
                install_path=install_path,
            )
    return None


class GOGImporter(GameImporter):
    source = GameSource.GOG

    def locate(self) -> Optional[Path]:
        probe = self.probe
        if not probe.is_windows:
            return None
        path = probe.program_data() / "GOG.com" / "Galaxy" / "storage" / "galaxy-2.0.db"
        return path if probe.exists(path) else None

    def is_available(self) -> bool:
        return sqlite_available() and super().is_available()

    def scan(self, root: Path) -> list[DetectedGame]:
        if not sqlite_available():
            logger.warning("GOG import needs Python's sqlite3 module")
            raise NotInstalledError(self.source.label)
        if not root.is_file():
            raise SourcePathNotFoundError(root)

        try:
            conn = sqlite3.connect(f"{root.as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as e:
            raise DatabaseError(str(e)) from e

        try:
            rows = conn.execute(INSTALLED_PRODUCTS_QUERY).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()

        games = []
        for product_id, local_path in rows:
            if not local_path:
                continue
            install_path = Path(local_path)
            if not install_path.is_dir():
                logger.debug(f"Skipping GOG product {product_id}: {install_path} missing")
                continue
            game = find_game_in_folder(install_path, product_id)
            if game:
                games.append(game)
        return games

    def watch_paths(self) -> list[Path]:
        root = self.locate()
        return [root.parent] if root is not None else []
