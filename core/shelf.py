"""
GameShelf command layer.

Shelf owns the library and config and is the only thing that mutates
them. Slow work (scans, saves, launches) is handed to the TaskRunner; the
results come back through process_events(), which the UI calls on its own
thread, so the store only ever changes on one thread.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import ConfigManager, AppConfig
from .errors import LaunchError
from .importer import IMPORT_SOURCES, GameImporter, get_importer
from .launcher import launch_game
from .library import Library
from .manual import create_manual_game, validate_executable
from .models import (
    Category, CategoryId, DetectedGame, Game, GameId, GameSource, SortOrder,
)
from .probe import Probe
from .storage import save_document
from .tasks import TaskResult, TaskRunner
from .watcher import SourceWatcher

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class ShelfEvent:
    """Something the UI may want to tell the user about."""
    kind: str
    message: str
    ok: bool = True
    game_id: Optional[GameId] = None


@dataclass
class MergeReport:
    added: int = 0
    updated: int = 0

    def __str__(self) -> str:
        return f"{self.added} added, {self.updated} updated"


class Shelf:
    """The game library plus everything that reads or changes it."""

    def __init__(self, data_dir: Path, probe: Optional[Probe] = None,
                 runner: Optional[TaskRunner] = None):
        self.data_dir = Path(data_dir)
        self.probe = probe or Probe()
        self.config_mgr = ConfigManager(self.data_dir)
        self.library = Library.load_or_create(self.library_file)
        self.tasks = runner or TaskRunner()
        self.watcher = SourceWatcher(on_change=self._on_source_changed)
        self._save_pending: set[str] = set()
        self._import_pending: set[GameSource] = set()

    @property
    def config(self) -> AppConfig:
        return self.config_mgr.config

    @property
    def library_file(self) -> Path:
        return self.config_mgr.library_file

    # --- Importing ---

    def importer(self, source: GameSource) -> Optional[GameImporter]:
        return get_importer(source, self.probe, self.config.steam_library_paths)

    def available_sources(self) -> list[GameSource]:
        """Launchers that are supported here and actually installed."""
        sources = []
        for source in IMPORT_SOURCES:
            if not self.probe.source_supported(source):
                continue
            if self.importer(source).is_available():
                sources.append(source)
        return sources

    def scan(self, source: GameSource) -> list[DetectedGame]:
        """Scan one launcher synchronously. Raises SourceError subclasses."""
        importer = self.importer(source)
        if importer is None:
            raise ValueError(f"{source.label} games are added by hand, not scanned")
        return importer.scan_games()

    def start_import(self, source: GameSource) -> bool:
        """
        Scan a launcher in the background.

        Returns False if a scan of that launcher is already running; the
        request is then remembered and one more scan runs afterwards.
        """
        if source is GameSource.MANUAL:
            raise ValueError("Manual games are not imported")
        started = self.tasks.submit(
            f"import:{source.value}", self.scan, source,
            kind="import", context=source,
        )
        if started:
            logger.info(f"Starting import from {source.label}")
        else:
            self._import_pending.add(source)
        return started

    def is_importing(self, source: Optional[GameSource] = None) -> bool:
        if source is not None:
            return self.tasks.is_busy(f"import:{source.value}")
        return any(k.startswith("import:") for k in self.tasks.busy_keys())

    def merge_detected(self, source: GameSource, detected: list[DetectedGame]) -> MergeReport:
        """
        Add scan results to the library.

        A game already imported from the same launcher with the same
        source id is refreshed in place (name, paths) and keeps its id,
        categories, favorite flag and play statistics.
        """
        report = MergeReport()
        for found in detected:
            existing = self.library.find_by_source(source, found.source_id)
            if existing is None:
                self.library.add_game(found.into_game(source))
                report.added += 1
                continue
            existing.name = found.name
            existing.executable_path = found.executable_path
            existing.install_path = found.install_path
            if found.icon_path is not None:
                existing.icon_path = found.icon_path
            report.updated += 1
        return report

    def _on_source_changed(self, source: GameSource, path: str) -> None:
        """Watcher thread callback: hand the rescan request to the owner."""
        self.tasks.post(TaskResult(kind="rescan", key=f"rescan:{source.value}", context=source))

    def start_auto_import(self) -> int:
        """Watch every available launcher's manifests. Returns how many are watched."""
        count = 0
        for source in self.available_sources():
            if self.watcher.start_watching(source, self.importer(source).watch_paths()):
                count += 1
        return count

    def stop_auto_import(self) -> None:
        self.watcher.stop_all()

    # --- Games ---

    def add_game(self, game: Game) -> None:
        self.library.add_game(game)
        self.request_save()

    def add_manual_game(self, name: str, executable_path: Path,
                        launch_args: Optional[str] = None) -> Game:
        """Validate and add a user-entered game. Raises ManualEntryError."""
        executable = validate_executable(Path(executable_path), self.probe)
        game = create_manual_game(name, executable, launch_args)
        self.add_game(game)
        logger.info(f"Added manual game: {game.name} ({executable})")
        return game

    def remove_game(self, game_id: GameId) -> Optional[Game]:
        game = self.library.remove_game(game_id)
        if game is not None:
            logger.info(f"Removed game: {game.name}")
            self.request_save()
        return game

    def update_game(self, game_id: GameId, name=_UNSET, executable_path=_UNSET,
                    launch_args=_UNSET, icon_path=_UNSET, banner_path=_UNSET) -> bool:
        """Edit the given fields of a game; untouched fields keep their value."""
        game = self.library.get_game_mut(game_id)
        if game is None:
            return False
        if name is not _UNSET:
            game.name = name
        if executable_path is not _UNSET:
            if not executable_path or not str(executable_path).strip():
                raise ValueError("Executable path cannot be empty")
            game.executable_path = Path(executable_path)
        if launch_args is not _UNSET:
            game.launch_args = launch_args or None
        if icon_path is not _UNSET:
            game.icon_path = Path(icon_path) if icon_path else None
        if banner_path is not _UNSET:
            game.banner_path = Path(banner_path) if banner_path else None
        self.request_save()
        return True

    def toggle_favorite(self, game_id: GameId) -> bool:
        game = self.library.get_game_mut(game_id)
        if game is None:
            return False
        game.toggle_favorite()
        self.request_save()
        return True

    def filtered_and_sorted(self, query: str = "", category: Optional[CategoryId] = None,
                            order: Optional[SortOrder] = None,
                            favorites_only: bool = False) -> list[Game]:
        return self.library.filtered_and_sorted(
            query, category, order or self.config.default_sort, favorites_only,
        )

    # --- Categories ---

    def add_category(self, name: str, color: Optional[str] = None,
                     icon: Optional[str] = None) -> Category:
        category = Category(name=name, color=color, icon=icon)
        self.library.add_category(category)
        self.request_save()
        return category

    def remove_category(self, category_id: CategoryId) -> Optional[Category]:
        category = self.library.remove_category(category_id)
        if category is not None:
            self.request_save()
        return category

    def assign_category(self, game_id: GameId, category_id: CategoryId) -> bool:
        if not self.library.assign_category(game_id, category_id):
            logger.warning(f"Cannot assign category {category_id} to game {game_id}")
            return False
        self.request_save()
        return True

    def unassign_category(self, game_id: GameId, category_id: CategoryId) -> bool:
        if not self.library.unassign_category(game_id, category_id):
            return False
        self.request_save()
        return True

    # --- Launching ---

    def launch(self, game_id: GameId) -> bool:
        """
        Start a game in the background.

        last_played is only stamped once the process has actually started
        (see process_events).
        """
        game = self.library.get_game(game_id)
        if game is None:
            return False
        return self.tasks.submit(
            f"launch:{game_id}", launch_game, game.executable_path, game.launch_args,
            kind="launch", context=game_id,
        )

    def launch_now(self, game_id: GameId) -> Game:
        """Start a game on the calling thread. Raises LaunchError."""
        game = self.library.get_game(game_id)
        if game is None:
            raise KeyError(game_id)
        proc = launch_game(game.executable_path, game.launch_args)
        self._game_started(game, proc)
        return game

    def _game_started(self, game: Game, proc) -> None:
        game.mark_played()
        self.request_save()
        if hasattr(proc, "wait"):
            self.tasks.submit(
                f"session:{game.id}:{id(proc)}", _wait_for_exit, proc,
                kind="session", context=game.id, exclusive=False,
            )

    # --- Persistence ---

    def request_save(self) -> None:
        self._request_document_save("library")

    def request_config_save(self) -> None:
        self._request_document_save("config")

    def _request_document_save(self, which: str) -> None:
        if which == "library":
            snapshot, path = self.library.to_dict(), self.library_file
        else:
            snapshot, path = self.config.to_dict(), self.config_mgr.config_file

        started = self.tasks.submit(
            f"save:{which}", save_document, snapshot, path,
            kind="save", context=which,
        )
        if not started:
            # One write at a time; the newest state is written afterwards
            self._save_pending.add(which)

    def set_config(self, **changes) -> None:
        """Change config fields and persist them."""
        for name, value in changes.items():
            if not hasattr(self.config, name):
                raise AttributeError(f"Unknown setting: {name}")
            setattr(self.config, name, value)
        self.request_config_save()

    def load(self) -> None:
        """Re-read library and config from disk, falling back to defaults."""
        self.tasks.wait_idle(timeout=10)
        self.process_events()
        self.config_mgr.config = ConfigManager.load_or_create(self.config_mgr.config_file)
        self.library = Library.load_or_create(self.library_file)

    def save_now(self) -> None:
        """Write library and config on this thread, after in-flight saves."""
        self.tasks.wait_idle(timeout=10)
        self.library.save(self.library_file)
        self.config_mgr.save()
        self._save_pending.clear()

    def shutdown(self) -> None:
        self.stop_auto_import()
        self.process_events()
        self.save_now()

    # --- Completion queue ---

    def process_events(self) -> list[ShelfEvent]:
        """Apply every finished background result. Call on the owner thread."""
        events = []
        for result in self.tasks.drain():
            handler = getattr(self, f"_on_{result.kind}", None)
            if handler is None:
                logger.warning(f"Unhandled task result: {result.kind} ({result.key})")
                continue
            event = handler(result)
            if event is not None:
                events.append(event)
        return events

    def _on_import(self, result: TaskResult) -> Optional[ShelfEvent]:
        source: GameSource = result.context
        if source in self._import_pending:
            self._import_pending.discard(source)
            self.start_import(source)

        if not result.ok:
            logger.error(f"Import from {source.label} failed: {result.error}")
            return ShelfEvent("import", f"{source.label}: {result.error}", ok=False)

        report = self.merge_detected(source, result.value)
        self.config.last_sync.stamp(source)
        logger.info(f"Imported from {source.label}: {report}")
        self.request_save()
        self.request_config_save()
        return ShelfEvent("import", f"{source.label}: {report}")

    def _on_rescan(self, result: TaskResult) -> None:
        self.start_import(result.context)
        return None

    def _on_save(self, result: TaskResult) -> Optional[ShelfEvent]:
        which = result.context
        if which in self._save_pending:
            self._save_pending.discard(which)
            self._request_document_save(which)
        if not result.ok:
            logger.error(f"Failed to save {which}: {result.error}")
            return ShelfEvent("save", f"Could not save {which}: {result.error}", ok=False)
        logger.debug(f"{which.capitalize()} saved")
        return None

    def _on_launch(self, result: TaskResult) -> ShelfEvent:
        game_id = result.context
        game = self.library.get_game(game_id)
        name = game.name if game else str(game_id)
        if not result.ok:
            logger.error(f"Failed to launch {name}: {result.error}")
            message = str(result.error) if isinstance(result.error, LaunchError) else repr(result.error)
            return ShelfEvent("launch", message, ok=False, game_id=game_id)
        if game is not None:
            self._game_started(game, result.value)
        return ShelfEvent("launch", f"Launched {name}", game_id=game_id)

    def _on_session(self, result: TaskResult) -> Optional[ShelfEvent]:
        game = self.library.get_game(result.context)
        if game is None or not result.ok:
            return None
        minutes = result.value
        if minutes > 0:
            game.add_playtime(minutes)
            self.request_save()
        return ShelfEvent("session", f"{game.name} closed after {minutes}m", game_id=game.id)


def _wait_for_exit(proc) -> int:
    """Block until a launched game exits; returns whole minutes played."""
    started = time.monotonic()
    proc.wait()
    return int((time.monotonic() - started) // 60)
