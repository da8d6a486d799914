from __future__ import annotations

from watchdog.events import (
    DirCreatedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent,
)

from core.models import GameSource
from core.watcher import ManifestEventHandler, SourceWatcher


def collect():
    calls = []
    return calls, lambda source, path: calls.append((source, path))


def test_steam_manifest_changes_trigger_rescan():
    calls, on_change = collect()
    handler = ManifestEventHandler(GameSource.STEAM, on_change)
    handler.on_any_event(FileCreatedEvent("/steam/steamapps/appmanifest_440.acf"))
    handler.on_any_event(FileModifiedEvent("/steam/steamapps/libraryfolders.vdf"))
    assert calls == [
        (GameSource.STEAM, "/steam/steamapps/appmanifest_440.acf"),
        (GameSource.STEAM, "/steam/steamapps/libraryfolders.vdf"),
    ]


def test_unrelated_files_and_directories_are_ignored():
    calls, on_change = collect()
    handler = ManifestEventHandler(GameSource.EPIC, on_change)
    handler.on_any_event(FileModifiedEvent("/epic/Manifests/notes.txt"))
    handler.on_any_event(DirCreatedEvent("/epic/Manifests/sub.item"))
    assert calls == []


def test_moved_into_place_matches_destination():
    calls, on_change = collect()
    handler = ManifestEventHandler(GameSource.EPIC, on_change)
    handler.on_any_event(FileMovedEvent("/epic/Manifests/tmp123", "/epic/Manifests/ABC.item"))
    assert calls == [(GameSource.EPIC, "/epic/Manifests/ABC.item")]


def test_watcher_needs_existing_folders(tmp_path):
    watcher = SourceWatcher(on_change=lambda source, path: None)
    assert not watcher.start_watching(GameSource.STEAM, [tmp_path / "missing"])
    assert watcher.active_count() == 0


def test_start_and_stop(tmp_path):
    watcher = SourceWatcher(on_change=lambda source, path: None)
    try:
        assert watcher.start_watching(GameSource.STEAM, [tmp_path])
        assert not watcher.start_watching(GameSource.STEAM, [tmp_path])
        assert watcher.is_watching(GameSource.STEAM)
        assert watcher.active_sources() == [GameSource.STEAM]
    finally:
        watcher.stop_all()
    assert watcher.active_count() == 0
    assert not watcher.stop_watching(GameSource.STEAM)
