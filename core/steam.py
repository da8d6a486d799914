"""
Steam importer for GameShelf.

Finds installed Steam games by:
1. Locating the Steam install (registry on Windows, well-known folders elsewhere)
2. Reading libraryfolders.vdf for every library folder
3. Parsing each appmanifest_*.acf and guessing the main executable
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from .errors import SourceIOError, SourcePathNotFoundError
from .importer import GameImporter
from .models import DetectedGame, GameSource
from .probe import HKLM, Probe

logger = logging.getLogger(__name__)

_REGISTRY_KEYS = (
    r"SOFTWARE\WOW6432Node\Valve\Steam",     # 64-bit Windows
    r"SOFTWARE\Valve\Steam",                 # 32-bit Windows or 32-bit Steam
)

_LINUX_CANDIDATES = (
    ".local/share/Steam",
    ".steam/steam",
    ".steam/debian-installation",
)


def extract_vdf_value(line: str) -> Optional[str]:
    """
    Pull the value out of a '"key"  "value"' line.

    This is not a VDF grammar, just enough to read flat key/value lines.
    """
    parts = line.split('"')
    if len(parts) >= 4:
        return parts[3]
    return None


def extract_vdf_value_by_key(content: str, key: str) -> Optional[str]:
    """Value of the first line whose key matches (case-insensitive)."""
    search = f'"{key}"'.lower()
    for line in content.splitlines():
        line = line.strip()
        if line.lower().startswith(search):
            return extract_vdf_value(line)
    return None


def is_executable(path: Path, windows: bool) -> bool:
    if windows:
        return path.suffix.lower() == ".exe"
    try:
        return bool(path.stat().st_mode & 0o111)
    except OSError:
        return False


def find_executable_in_dir(directory: Path, windows: bool) -> Optional[Path]:
    """
    Guess the main executable of a game folder.

    Shorter file names win; ties keep directory listing order.
    """
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        logger.debug(f"Cannot list {directory}: {e}")
        return None

    candidates = [p for p in entries if p.is_file() and is_executable(p, windows)]
    if not candidates:
        return None
    candidates.sort(key=lambda p: len(p.name))
    return candidates[0]


def _same_folder_key(path: Path) -> str:
    return os.path.normcase(os.path.normpath(str(path)))


class SteamImporter(GameImporter):
    source = GameSource.STEAM

    def __init__(self, probe: Optional[Probe] = None,
                 extra_library_paths: Iterable[Path] = ()):
        super().__init__(probe)
        self.extra_library_paths = [Path(p) for p in extra_library_paths]

    def locate(self) -> Optional[Path]:
        probe = self.probe
        try:
            if probe.is_windows:
                for key in _REGISTRY_KEYS:
                    install_path = probe.registry_string(HKLM, key, "InstallPath")
                    if install_path:
                        return Path(install_path)
                return None

            if probe.is_macos:
                path = probe.home() / "Library" / "Application Support" / "Steam"
                return path if probe.exists(path) else None

            if probe.is_linux:
                home = probe.home()
                for candidate in _LINUX_CANDIDATES:
                    path = home / candidate
                    if probe.exists(path):
                        return path
        except (OSError, RuntimeError) as e:
            logger.debug(f"Steam lookup failed: {e}")
        return None

    def library_folders(self, root: Path) -> list[Path]:
        """
        All steamapps folders: the default one, those listed in
        libraryfolders.vdf, then user-configured extra libraries.
        """
        default = root / "steamapps"
        folders = [default]
        seen = {_same_folder_key(default)}

        def _add(folder: Path) -> None:
            key = _same_folder_key(folder)
            if key not in seen and folder.is_dir():
                seen.add(key)
                folders.append(folder)

        vdf_path = default / "libraryfolders.vdf"
        if vdf_path.exists():
            try:
                content = vdf_path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                raise SourceIOError(f"Cannot read {vdf_path}: {e}") from e

            for line in content.splitlines():
                line = line.strip()
                if not line.startswith('"path"'):
                    continue
                value = extract_vdf_value(line)
                if value:
                    _add(Path(value.replace("\\\\", "\\")) / "steamapps")
        else:
            logger.debug(f"No libraryfolders.vdf under {default}")

        for extra in self.extra_library_paths:
            if extra.name.lower() == "steamapps":
                _add(extra)
            else:
                _add(extra / "steamapps")

        return folders

    def parse_app_manifest(self, manifest_path: Path) -> Optional[DetectedGame]:
        try:
            content = manifest_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Skipping unreadable manifest {manifest_path}: {e}")
            return None

        app_id = extract_vdf_value_by_key(content, "appid")
        name = extract_vdf_value_by_key(content, "name")
        install_dir = extract_vdf_value_by_key(content, "installdir")
        if not (app_id and name and install_dir):
            logger.debug(f"Skipping incomplete manifest {manifest_path}")
            return None

        install_path = manifest_path.parent / "common" / install_dir
        if not install_path.is_dir():
            logger.debug(f"Skipping {name}: {install_path} not found")
            return None

        executable = find_executable_in_dir(install_path, self.probe.is_windows)
        if executable is None:
            logger.debug(f"Skipping {name}: no executable in {install_path}")
            return None

        return DetectedGame(
            name=name,
            source_id=app_id,
            executable_path=executable,
            install_path=install_path,
        )

    def scan(self, root: Path) -> list[DetectedGame]:
        if not root.is_dir():
            raise SourcePathNotFoundError(root)

        games = []
        for folder in self.library_folders(root):
            try:
                entries = list(folder.iterdir())
            except OSError as e:
                logger.warning(f"Cannot read Steam library {folder}: {e}")
                continue

            for path in entries:
                if path.name.startswith("appmanifest_") and path.name.endswith(".acf"):
                    game = self.parse_app_manifest(path)
                    if game:
                        games.append(game)
        return games

    def watch_paths(self) -> list[Path]:
        root = self.locate()
        if root is None:
            return []
        try:
            return [f for f in self.library_folders(root) if f.is_dir()]
        except SourceIOError:
            return [root]
