from __future__ import annotations

import json
import threading

import pytest

from conftest import FakeProbe, make_exe

from core import launcher, shelf as shelf_module
from core.errors import EntryPathNotFoundError, ExecutableNotFoundError
from core.models import GameSource, SortOrder
from core.probe import HKLM
from core.shelf import Shelf
from core.tasks import TaskResult

STEAM_KEY = r"SOFTWARE\WOW6432Node\Valve\Steam"


def settle(shelf, rounds=5):
    """Run background work to completion and apply every result."""
    events = []
    for _ in range(rounds):
        assert shelf.tasks.wait_idle(timeout=5)
        batch = shelf.process_events()
        if not batch and not shelf.tasks.busy_keys():
            break
        events.extend(batch)
    return events


@pytest.fixture
def steam_root(tmp_path):
    root = tmp_path / "Steam"
    steamapps = root / "steamapps"
    steamapps.mkdir(parents=True)
    (steamapps / "appmanifest_440.acf").write_text(
        '"AppState"\n{\n\t"appid"\t"440"\n\t"name"\t"Team Fortress 2"\n'
        '\t"installdir"\t"Team Fortress 2"\n}\n',
        encoding="utf-8",
    )
    make_exe(steamapps / "common" / "Team Fortress 2" / "hl2.exe")
    return root


@pytest.fixture
def shelf(data_dir, steam_root):
    probe = FakeProbe("win32", registry={(HKLM, STEAM_KEY, "InstallPath"): str(steam_root)})
    shelf = Shelf(data_dir, probe=probe)
    yield shelf
    shelf.tasks.wait_idle(timeout=5)


class FakeProcess:
    def __init__(self, argv, **kwargs):
        self.argv = argv
        self.pid = 1234

    def wait(self):
        return 0


def test_fresh_shelf_uses_defaults(shelf):
    assert shelf.library.game_count() == 0
    assert len(shelf.library.all_categories()) == 7
    assert shelf.config.default_sort is SortOrder.NAME_ASC


def test_available_sources_on_windows(shelf):
    assert shelf.available_sources() == [GameSource.STEAM]


def test_scan_manual_is_rejected(shelf):
    with pytest.raises(ValueError):
        shelf.scan(GameSource.MANUAL)
    with pytest.raises(ValueError):
        shelf.start_import(GameSource.MANUAL)


def test_import_adds_games_and_persists(shelf, data_dir):
    assert shelf.start_import(GameSource.STEAM)
    events = settle(shelf)

    assert [e.ok for e in events if e.kind == "import"] == [True]
    games = shelf.library.all_games()
    assert [(g.name, g.source_id) for g in games] == [("Team Fortress 2", "440")]
    assert shelf.config.last_sync.get(GameSource.STEAM) is not None

    document = json.loads((data_dir / "library.json").read_text(encoding="utf-8"))
    assert len(document["games"]) == 1
    config = json.loads((data_dir / "config.json").read_text(encoding="utf-8"))
    assert config["last_sync"]["steam"] is not None


def test_reimport_updates_in_place(shelf, steam_root):
    shelf.start_import(GameSource.STEAM)
    settle(shelf)
    [game] = shelf.library.all_games()
    category = shelf.library.all_categories()[0]
    shelf.assign_category(game.id, category.id)
    shelf.toggle_favorite(game.id)
    game.add_playtime(90)

    manifest = steam_root / "steamapps" / "appmanifest_440.acf"
    manifest.write_text(manifest.read_text().replace("Team Fortress 2\"\n\t\"installdir",
                                                     "TF2\"\n\t\"installdir"))
    shelf.start_import(GameSource.STEAM)
    events = settle(shelf)

    [same] = shelf.library.all_games()
    assert same.id == game.id
    assert same.name == "TF2"
    assert same.favorite
    assert same.playtime_minutes == 90
    assert same.has_category(category.id)
    assert any("0 added, 1 updated" in e.message for e in events)


def test_failed_import_leaves_library_alone(data_dir):
    shelf = Shelf(data_dir, probe=FakeProbe("linux"))
    shelf.start_import(GameSource.STEAM)
    [event] = settle(shelf)
    assert not event.ok
    assert "not installed" in event.message
    assert shelf.library.game_count() == 0
    assert shelf.config.last_sync.get(GameSource.STEAM) is None


def test_import_requested_while_running_runs_again(shelf, monkeypatch):
    release = threading.Event()
    scans = []
    original_scan = shelf.scan

    def slow_scan(source):
        scans.append(source)
        release.wait(5)
        return original_scan(source)

    monkeypatch.setattr(shelf, "scan", slow_scan)
    assert shelf.start_import(GameSource.STEAM)
    assert shelf.is_importing(GameSource.STEAM)
    assert not shelf.start_import(GameSource.STEAM)
    assert not shelf.start_import(GameSource.STEAM)

    release.set()
    settle(shelf)
    assert len(scans) == 2
    assert shelf.library.game_count() == 1
    assert not shelf.is_importing()


def test_rescan_request_from_watcher(shelf):
    shelf._on_source_changed(GameSource.STEAM, "appmanifest_440.acf")
    settle(shelf)
    assert shelf.library.game_count() == 1


def test_saves_are_serialized_and_coalesced(shelf, monkeypatch):
    release = threading.Event()
    written = []

    def slow_save(data, path):
        release.wait(5)
        written.append(len(data["games"]))

    monkeypatch.setattr(shelf_module, "save_document", slow_save)
    exe = make_exe(shelf.data_dir.parent / "doom.exe")
    shelf.add_manual_game("Doom", exe)
    shelf.add_manual_game("Quake", exe)
    shelf.add_manual_game("Heretic", exe)

    release.set()
    settle(shelf)
    # The first write captured one game; the queued follow-up writes the latest state
    assert written == [1, 3]


def test_add_manual_game_validates(shelf, tmp_path):
    with pytest.raises(EntryPathNotFoundError):
        shelf.add_manual_game("Ghost", tmp_path / "ghost.exe")
    assert shelf.library.game_count() == 0


def test_update_game_fields(shelf, tmp_path):
    exe = make_exe(tmp_path / "doom.exe")
    game = shelf.add_manual_game("Doom", exe, "-fast")
    assert shelf.update_game(game.id, name="DOOM", launch_args="")
    assert game.name == "DOOM"
    assert game.launch_args is None
    assert game.executable_path == exe
    with pytest.raises(ValueError):
        shelf.update_game(game.id, executable_path="")


def test_remove_category_strips_games(shelf, tmp_path):
    game = shelf.add_manual_game("Doom", make_exe(tmp_path / "doom.exe"))
    category = shelf.add_category("Shooters", "#FF0000")
    assert shelf.assign_category(game.id, category.id)
    shelf.remove_category(category.id)
    assert game.categories == []
    assert not shelf.assign_category(game.id, category.id)


def test_filtered_and_sorted_uses_configured_order(shelf, tmp_path):
    exe = make_exe(tmp_path / "game.exe")
    for name in ("Alpha", "Beta"):
        shelf.add_manual_game(name, exe)
    shelf.set_config(default_sort=SortOrder.NAME_DESC)
    assert [g.name for g in shelf.filtered_and_sorted()] == ["Beta", "Alpha"]
    with pytest.raises(AttributeError):
        shelf.set_config(volume=11)


def test_launch_stamps_after_spawn(shelf, tmp_path, monkeypatch):
    monkeypatch.setattr(launcher.subprocess, "Popen", FakeProcess)
    game = shelf.add_manual_game("Doom", make_exe(tmp_path / "doom.exe"))

    assert shelf.launch(game.id)
    events = settle(shelf)
    assert [e.ok for e in events if e.kind == "launch"] == [True]
    assert game.last_played is not None


def test_failed_launch_does_not_stamp(shelf, tmp_path):
    exe = make_exe(tmp_path / "doom.exe")
    game = shelf.add_manual_game("Doom", exe)
    exe.unlink()

    shelf.launch(game.id)
    [event] = [e for e in settle(shelf) if e.kind == "launch"]
    assert not event.ok
    assert event.game_id == game.id
    assert "not found" in event.message
    assert game.last_played is None


def test_launch_now_raises(shelf, tmp_path):
    exe = make_exe(tmp_path / "doom.exe")
    game = shelf.add_manual_game("Doom", exe)
    exe.unlink()
    with pytest.raises(ExecutableNotFoundError):
        shelf.launch_now(game.id)
    assert game.last_played is None


def test_session_adds_playtime(shelf, tmp_path):
    game = shelf.add_manual_game("Doom", make_exe(tmp_path / "doom.exe"))
    shelf.tasks.post(TaskResult(kind="session", key="session", value=42, context=game.id))
    settle(shelf)
    assert game.playtime_minutes == 42


def test_load_rereads_documents(shelf, data_dir, tmp_path):
    shelf.add_manual_game("Doom", make_exe(tmp_path / "doom.exe"))
    settle(shelf)
    shelf.library.remove_game(shelf.library.all_games()[0].id)
    shelf.load()
    assert [g.name for g in shelf.library.all_games()] == ["Doom"]

    (data_dir / "library.json").write_text("garbage", encoding="utf-8")
    shelf.load()
    assert shelf.library.game_count() == 0
    assert len(shelf.library.all_categories()) == 7


def test_shutdown_writes_everything(shelf, data_dir, tmp_path):
    shelf.add_manual_game("Doom", make_exe(tmp_path / "doom.exe"))
    shelf.set_config(theme="light")
    shelf.shutdown()

    reopened = Shelf(data_dir, probe=FakeProbe("linux"))
    assert [g.name for g in reopened.library.all_games()] == ["Doom"]
    assert reopened.config.theme == "light"
