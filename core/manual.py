"""
Manual game entries for GameShelf.

Games the user adds by hand: no scanning, just a name and an executable
that has to exist.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .errors import EntryNotAFileError, EntryNotExecutableError, EntryPathNotFoundError
from .models import Game, GameSource
from .probe import Probe


def resolve_app_bundle(app_path: Path) -> Optional[Path]:
    """
    Find the binary inside a macOS .app bundle.

    Prefers Contents/MacOS/<bundle name>, otherwise the first file there.
    """
    contents = app_path / "Contents" / "MacOS"
    if not contents.is_dir():
        return None
    exe = contents / app_path.stem
    if exe.is_file():
        return exe
    for path in sorted(contents.iterdir()):
        if path.is_file():
            return path
    return None


def validate_executable(path: Path, probe: Optional[Probe] = None) -> Path:
    """
    Check a user-chosen executable and return the path to launch.

    Raises a ManualEntryError subclass when the path is unusable.
    """
    probe = probe or Probe()
    path = Path(path)

    if probe.is_macos and path.suffix == ".app" and path.is_dir():
        resolved = resolve_app_bundle(path)
        if resolved is None:
            raise EntryNotExecutableError(f"No executable inside {path}")
        return resolved

    if not path.exists():
        raise EntryPathNotFoundError(f"Path does not exist: {path}")
    if not path.is_file():
        raise EntryNotAFileError(f"Path is not a file: {path}")
    if probe.is_windows and path.suffix.lower() != ".exe":
        raise EntryNotExecutableError(f"File is not an executable: {path}")
    return path


def create_manual_game(name: str, executable_path: Path,
                       launch_args: Optional[str] = None) -> Game:
    name = name.strip() or Path(executable_path).stem
    return Game(
        name=name,
        executable_path=Path(executable_path),
        source=GameSource.MANUAL,
        launch_args=launch_args or None,
    )
