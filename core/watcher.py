"""
Launcher watcher for GameShelf.

Manages per-source watchdog Observers. Each available launcher gets an
Observer on its manifest folders; when a manifest appears, changes or
disappears, the watcher asks for a full rescan of that launcher.
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .models import GameSource

logger = logging.getLogger(__name__)

MANIFEST_PATTERNS = {
    GameSource.STEAM: ("appmanifest_*.acf", "libraryfolders.vdf"),
    GameSource.EPIC: ("*.item",),
    GameSource.GOG: ("galaxy-2.0.db", "galaxy-2.0.db-wal"),
}


class ManifestEventHandler(FileSystemEventHandler):
    """Handles filesystem events in a launcher's manifest folder."""

    def __init__(self, source: GameSource,
                 on_change: Callable[[GameSource, str], None]):
        """
        Args:
            source: The launcher being watched
            on_change: Callback(source, path) invoked on a relevant change
        """
        self.source = source
        self.patterns = MANIFEST_PATTERNS.get(source, ())
        self.on_change = on_change

    def matches(self, path: str) -> bool:
        name = Path(path).name
        return any(fnmatch.fnmatch(name, p) for p in self.patterns)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("created", "modified", "deleted", "moved"):
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        for path in paths:
            if path and self.matches(str(path)):
                logger.debug(f"{self.source.label} manifest changed: {path}")
                self.on_change(self.source, str(path))
                return


class SourceWatcher:
    """Manages per-source filesystem watchers."""

    def __init__(self, on_change: Callable[[GameSource, str], None]):
        self._observers: dict[GameSource, Observer] = {}
        self._lock = threading.Lock()
        self.on_change = on_change

    def start_watching(self, source: GameSource, paths: list[Path]) -> bool:
        """
        Start watching a launcher's folders.

        Returns True if the watcher was started, False if already running,
        if none of the folders exist, or on error.
        """
        with self._lock:
            if source in self._observers:
                logger.debug(f"Already watching {source.label}")
                return False

            existing = [p for p in paths if p.is_dir()]
            if not existing:
                logger.warning(f"Cannot watch {source.label}: no folders to watch")
                return False

            try:
                handler = ManifestEventHandler(source, self.on_change)
                observer = Observer()
                for path in existing:
                    observer.schedule(handler, str(path), recursive=False)
                observer.start()

                self._observers[source] = observer
                logger.info(f"Started watching {source.label}: {existing}")
                return True
            except Exception as e:
                logger.error(f"Failed to start watcher for {source.label}: {e}")
                return False

    def stop_watching(self, source: GameSource) -> bool:
        """Stop watching a launcher. Returns True if a watcher was stopped."""
        with self._lock:
            observer = self._observers.pop(source, None)
        if observer is None:
            return False
        try:
            observer.stop()
            observer.join(timeout=5)
            logger.info(f"Stopped watching {source.label}")
            return True
        except Exception as e:
            logger.error(f"Error stopping watcher for {source.label}: {e}")
            return False

    def stop_all(self) -> None:
        with self._lock:
            observers = list(self._observers.items())
            self._observers.clear()
        for source, observer in observers:
            try:
                observer.stop()
                observer.join(timeout=5)
                logger.info(f"Stopped watching {source.label}")
            except Exception as e:
                logger.error(f"Error stopping watcher for {source.label}: {e}")

    def is_watching(self, source: GameSource) -> bool:
        with self._lock:
            return source in self._observers

    def active_sources(self) -> list[GameSource]:
        with self._lock:
            return list(self._observers.keys())

    def active_count(self) -> int:
        with self._lock:
            return len(self._observers)
