from __future__ import annotations

import pytest

from conftest import make_exe

from core import launcher
from core.errors import ExecutableNotFoundError, LaunchError, SpawnFailedError
from core.launcher import launch_game, parse_args


class FakePopen:
    calls = []

    def __init__(self, argv, **kwargs):
        self.argv = argv
        self.kwargs = kwargs
        self.pid = 4242
        FakePopen.calls.append(self)

    def wait(self):
        return 0


@pytest.fixture
def fake_popen(monkeypatch):
    FakePopen.calls = []
    monkeypatch.setattr(launcher.subprocess, "Popen", FakePopen)
    return FakePopen


@pytest.mark.parametrize("args, expected", [
    ('-path "C:\\Program Files\\Game" -windowed', ["-path", "C:\\Program Files\\Game", "-windowed"]),
    ("-novid  -console", ["-novid", "-console"]),
    ("'single quoted' plain", ["single quoted", "plain"]),
    ("-a\t-b", ["-a\t-b"]),
    ('"it\'s fine"', ["it's fine"]),
    ('--name="Big Boss"', ["--name=Big Boss"]),
    ("", []),
    ("   ", []),
    ('"unterminated span', ["unterminated span"]),
])
def test_parse_args(args, expected):
    assert parse_args(args) == expected


def test_launch_runs_in_game_folder(tmp_path, fake_popen):
    exe = make_exe(tmp_path / "Game" / "game.exe")
    proc = launch_game(exe, '-windowed -width 1280 "-name X"')

    assert proc.argv == [str(exe), "-windowed", "-width", "1280", "-name X"]
    assert proc.kwargs["cwd"] == str(exe.parent)
    assert len(fake_popen.calls) == 1


def test_launch_without_args(tmp_path, fake_popen):
    exe = make_exe(tmp_path / "game.exe")
    launch_game(exe)
    assert fake_popen.calls[0].argv == [str(exe)]


def test_missing_executable(tmp_path, fake_popen):
    with pytest.raises(ExecutableNotFoundError):
        launch_game(tmp_path / "gone.exe")
    assert fake_popen.calls == []


def test_spawn_failure(tmp_path, monkeypatch):
    def refuse(argv, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(launcher.subprocess, "Popen", refuse)
    exe = make_exe(tmp_path / "game.exe")
    with pytest.raises(SpawnFailedError) as excinfo:
        launch_game(exe)
    assert isinstance(excinfo.value, LaunchError)
    assert "Permission denied" in str(excinfo.value)
