from __future__ import annotations

import pytest

from conftest import FakeProbe, make_exe

from core.errors import (
    EntryNotAFileError, EntryNotExecutableError, EntryPathNotFoundError, ManualEntryError,
)
from core.manual import create_manual_game, validate_executable
from core.models import GameSource


def test_valid_windows_exe(tmp_path):
    exe = make_exe(tmp_path / "Doom.exe")
    assert validate_executable(exe, FakeProbe("win32")) == exe


def test_missing_path(tmp_path):
    with pytest.raises(EntryPathNotFoundError):
        validate_executable(tmp_path / "nope.exe", FakeProbe("win32"))


def test_directory_is_not_a_file(tmp_path):
    with pytest.raises(EntryNotAFileError):
        validate_executable(tmp_path, FakeProbe("linux"))


def test_windows_requires_exe_suffix(tmp_path):
    script = make_exe(tmp_path / "start.bat")
    with pytest.raises(EntryNotExecutableError):
        validate_executable(script, FakeProbe("win32"))
    assert validate_executable(script, FakeProbe("linux")) == script


def test_entry_errors_are_value_errors(tmp_path):
    with pytest.raises(ValueError):
        validate_executable(tmp_path / "nope", FakeProbe("linux"))
    assert issubclass(EntryNotAFileError, ManualEntryError)


def test_macos_app_bundle(tmp_path):
    bundle = tmp_path / "Celeste.app"
    binary = make_exe(bundle / "Contents" / "MacOS" / "Celeste")
    make_exe(bundle / "Contents" / "MacOS" / "helper")
    assert validate_executable(bundle, FakeProbe("darwin")) == binary


def test_macos_empty_bundle(tmp_path):
    bundle = tmp_path / "Broken.app"
    (bundle / "Contents").mkdir(parents=True)
    with pytest.raises(EntryNotExecutableError):
        validate_executable(bundle, FakeProbe("darwin"))


def test_create_manual_game(tmp_path):
    exe = make_exe(tmp_path / "Doom.exe")
    game = create_manual_game("  DOOM  ", exe, "-fullscreen")
    assert game.name == "DOOM"
    assert game.source is GameSource.MANUAL
    assert game.source_id is None
    assert game.install_path is None
    assert game.launch_args == "-fullscreen"


def test_blank_name_uses_file_stem(tmp_path):
    exe = make_exe(tmp_path / "Doom.exe")
    assert create_manual_game("", exe).name == "Doom"
