"""
Epic Games Store importer for GameShelf.

The Epic launcher keeps one JSON manifest (*.item) per installed game in
its Data/Manifests folder. Only Windows installs are supported.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from .errors import SourceIOError, SourcePathNotFoundError
from .importer import GameImporter
from .models import DetectedGame, GameSource
from .probe import HKLM

logger = logging.getLogger(__name__)

_REGISTRY_KEY = r"SOFTWARE\WOW6432Node\Epic Games\EpicGamesLauncher"
_REQUIRED_FIELDS = ("DisplayName", "InstallLocation", "AppName", "LaunchExecutable")


def parse_manifest(path: Path) -> Optional[DetectedGame]:
    """Read one .item manifest; None if it is unusable."""
    try:
        manifest = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug(f"Skipping unreadable Epic manifest {path}: {e}")
        return None

    if not isinstance(manifest, dict):
        return None
    values = [manifest.get(k) for k in _REQUIRED_FIELDS]
    if not all(isinstance(v, str) and v for v in values):
        logger.debug(f"Skipping Epic manifest with missing fields: {path}")
        return None

    name, install_location, app_name, launch_executable = values
    install_path = Path(install_location)
    executable_path = install_path / launch_executable
    if not executable_path.exists():
        logger.debug(f"Skipping {name}: {executable_path} not found")
        return None

    return DetectedGame(
        name=name,
        source_id=app_name,
        executable_path=executable_path,
        install_path=install_path,
    )


class EpicImporter(GameImporter):
    source = GameSource.EPIC

    def locate(self) -> Optional[Path]:
        probe = self.probe
        if not probe.is_windows:
            return None

        default = probe.program_data() / "Epic" / "EpicGamesLauncher" / "Data" / "Manifests"
        if probe.exists(default):
            return default

        app_data = probe.registry_string(HKLM, _REGISTRY_KEY, "AppDataPath")
        if app_data:
            manifests = Path(app_data) / "Manifests"
            if probe.exists(manifests):
                return manifests
        return None

    def scan(self, root: Path) -> list[DetectedGame]:
        if not root.is_dir():
            raise SourcePathNotFoundError(root)
        try:
            entries = sorted(root.iterdir())
        except OSError as e:
            raise SourceIOError(f"Cannot read Epic manifests in {root}: {e}") from e

        games = []
        for path in entries:
            if path.suffix == ".item":
                game = parse_manifest(path)
                if game:
                    games.append(game)
        return games
