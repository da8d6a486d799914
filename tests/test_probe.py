from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeProbe

from core.epic import EpicImporter
from core.gog import GOGImporter
from core.importer import all_importers, get_importer
from core.models import GameSource
from core.probe import Probe
from core.steam import SteamImporter


@pytest.mark.parametrize("platform, name", [
    ("win32", "Windows"),
    ("darwin", "macOS"),
    ("linux", "Linux"),
    ("sunos5", "Unknown"),
])
def test_platform_name(platform, name):
    assert Probe(platform).platform_name() == name


def test_launcher_support_by_platform():
    windows, linux = FakeProbe("win32"), FakeProbe("linux")
    assert all(windows.source_supported(s) for s in GameSource)
    assert linux.source_supported(GameSource.STEAM)
    assert linux.source_supported(GameSource.MANUAL)
    assert not linux.source_supported(GameSource.EPIC)
    assert not linux.source_supported(GameSource.GOG)


def test_user_data_dir(tmp_path):
    assert FakeProbe("win32", env={"APPDATA": str(tmp_path)}).user_data_dir() == tmp_path / "GameShelf"
    assert FakeProbe("darwin", home=tmp_path).user_data_dir() == (
        tmp_path / "Library" / "Application Support" / "GameShelf"
    )
    assert FakeProbe("linux", home=tmp_path).user_data_dir() == tmp_path / ".local" / "share" / "gameshelf"
    xdg = FakeProbe("linux", env={"XDG_DATA_HOME": str(tmp_path / "xdg")})
    assert xdg.user_data_dir() == tmp_path / "xdg" / "gameshelf"


def test_wine_detection():
    assert FakeProbe("win32", env={"WINEPREFIX": "/home/u/.wine"}).is_running_under_wine()
    assert not FakeProbe("win32").is_running_under_wine()


def test_registry_is_windows_only():
    assert Probe("linux").registry_string("HKEY_LOCAL_MACHINE", r"SOFTWARE\Valve\Steam", "InstallPath") is None


def test_program_data_default():
    assert FakeProbe("win32").program_data() == Path("C:/ProgramData")


def test_importer_factory():
    probe = FakeProbe("win32")
    importers = all_importers(probe, extra_steam_paths=[Path("D:/Steam")])
    assert [type(i) for i in importers] == [SteamImporter, EpicImporter, GOGImporter]
    assert importers[0].extra_library_paths == [Path("D:/Steam")]
    assert all(i.probe is probe for i in importers)
    assert get_importer(GameSource.MANUAL, probe) is None
