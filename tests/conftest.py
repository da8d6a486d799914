from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from core.models import Game, GameSource
from core.probe import Probe
from core.tasks import TaskRunner


class FakeProbe(Probe):
    """A machine with a fixed platform, environment, home and registry."""

    def __init__(self, platform: str = "linux", env: Optional[dict] = None,
                 home: Optional[Path] = None, registry: Optional[dict] = None):
        super().__init__(platform)
        self._env = dict(env or {})
        self._home = home or Path("/nonexistent-home")
        self._registry = dict(registry or {})

    def env(self, name, default=None):
        return self._env.get(name, default)

    def home(self):
        return self._home

    def registry_string(self, hive, key_path, value):
        if not self.is_windows:
            return None
        return self._registry.get((hive, key_path, value))


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def runner():
    runner = TaskRunner()
    yield runner
    runner.wait_idle(timeout=5)


def make_exe(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"MZ")
    path.chmod(0o755)
    return path


def make_game(name: str, tmp_path: Path, source: GameSource = GameSource.MANUAL,
              source_id: Optional[str] = None, **kwargs) -> Game:
    if source is not GameSource.MANUAL and source_id is None:
        source_id = name.lower().replace(" ", "-")
    return Game(
        name=name,
        executable_path=tmp_path / f"{name}.exe",
        source=source,
        source_id=source_id,
        **kwargs,
    )
