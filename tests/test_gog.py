from __future__ import annotations

import json
import sqlite3

import pytest

from conftest import FakeProbe, make_exe

from core import gog
from core.errors import DatabaseError, NotInstalledError
from core.gog import GOGImporter, find_game_in_folder


def galaxy_db(program_data, rows, table=True):
    path = program_data / "GOG.com" / "Galaxy" / "storage" / "galaxy-2.0.db"
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        if table:
            conn.execute("CREATE TABLE InstalledBaseProducts (productId INTEGER, localPath TEXT)")
            conn.executemany("INSERT INTO InstalledBaseProducts VALUES (?, ?)", rows)
        else:
            conn.execute("CREATE TABLE Other (id INTEGER)")
        conn.commit()
    finally:
        conn.close()
    return path


def gog_install(folder, product_id, name, exe):
    make_exe(folder / exe)
    info = {"gameId": str(product_id), "name": name, "playTasks": [{"path": exe, "type": "FileTask"}]}
    (folder / f"goggame-{product_id}.info").write_text(json.dumps(info), encoding="utf-8")
    return folder


def test_scan_installed_products(tmp_path):
    program_data = tmp_path / "ProgramData"
    witcher = gog_install(tmp_path / "Witcher 3", 1207664643, "The Witcher 3", "bin/witcher3.exe")
    galaxy_db(program_data, [
        (1207664643, str(witcher)),
        (1, str(tmp_path / "uninstalled")),
        (2, None),
    ])

    probe = FakeProbe("win32", env={"PROGRAMDATA": str(program_data)})
    games = GOGImporter(probe).scan_games()
    assert len(games) == 1
    assert games[0].name == "The Witcher 3"
    assert games[0].source_id == "1207664643"
    assert games[0].executable_path == witcher / "bin" / "witcher3.exe"


def test_info_file_without_play_tasks(tmp_path):
    folder = tmp_path / "Game"
    folder.mkdir()
    (folder / "goggame-5.info").write_text(json.dumps({"name": "X", "playTasks": []}))
    assert find_game_in_folder(folder, 5) is None


def test_query_failure_is_database_error(tmp_path):
    program_data = tmp_path / "ProgramData"
    galaxy_db(program_data, [], table=False)
    probe = FakeProbe("win32", env={"PROGRAMDATA": str(program_data)})
    with pytest.raises(DatabaseError):
        GOGImporter(probe).scan_games()


def test_not_installed_outside_windows(tmp_path):
    galaxy_db(tmp_path, [])
    importer = GOGImporter(FakeProbe("linux", env={"PROGRAMDATA": str(tmp_path)}))
    assert not importer.is_available()
    with pytest.raises(NotInstalledError):
        importer.scan_games()


def test_without_sqlite_support(tmp_path, monkeypatch):
    program_data = tmp_path / "ProgramData"
    db = galaxy_db(program_data, [])
    monkeypatch.setattr(gog, "sqlite3", None)
    importer = GOGImporter(FakeProbe("win32", env={"PROGRAMDATA": str(program_data)}))
    assert not importer.is_available()
    with pytest.raises(NotInstalledError):
        importer.scan(db)


def test_watches_storage_folder(tmp_path):
    db = galaxy_db(tmp_path, [])
    importer = GOGImporter(FakeProbe("win32", env={"PROGRAMDATA": str(tmp_path)}))
    assert importer.watch_paths() == [db.parent]
