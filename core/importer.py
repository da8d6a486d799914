"""
Importer contract for GameShelf.

Every launcher source (Steam, Epic, GOG) is wrapped in a GameImporter:
locate the launcher, then scan it for installed games. Manual entries have
no importer; the user supplies name and executable directly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from .errors import NotInstalledError
from .models import DetectedGame, GameSource
from .probe import Probe

logger = logging.getLogger(__name__)

IMPORT_SOURCES = (GameSource.STEAM, GameSource.EPIC, GameSource.GOG)


class GameImporter(ABC):
    """One third-party launcher."""

    source: GameSource

    def __init__(self, probe: Optional[Probe] = None):
        self.probe = probe or Probe()

    @abstractmethod
    def locate(self) -> Optional[Path]:
        """
        Find the launcher's install root (or manifest location).

        Never raises: anything that prevents finding it yields None.
        """

    @abstractmethod
    def scan(self, root: Path) -> list[DetectedGame]:
        """Read every installed game below a located root."""

    def is_available(self) -> bool:
        return self.locate() is not None

    def scan_games(self) -> list[DetectedGame]:
        """
        Locate the launcher and scan it.

        Raises NotInstalledError when the launcher cannot be found, so an
        empty list always means "looked, found nothing".
        """
        root = self.locate()
        if root is None:
            raise NotInstalledError(self.source.label)
        games = self.scan(root)
        logger.info(f"Found {len(games)} {self.source.label} games")
        return games

    def watch_paths(self) -> list[Path]:
        """Directories whose changes mean a rescan is worthwhile."""
        root = self.locate()
        return [root] if root is not None else []


def get_importer(source: GameSource, probe: Optional[Probe] = None,
                 extra_steam_paths: Iterable[Path] = ()) -> Optional[GameImporter]:
    """Build the importer for a source; Manual has none."""
    from .epic import EpicImporter
    from .gog import GOGImporter
    from .steam import SteamImporter

    if source is GameSource.STEAM:
        return SteamImporter(probe, extra_library_paths=extra_steam_paths)
    if source is GameSource.EPIC:
        return EpicImporter(probe)
    if source is GameSource.GOG:
        return GOGImporter(probe)
    return None


def all_importers(probe: Optional[Probe] = None,
                  extra_steam_paths: Iterable[Path] = ()) -> list[GameImporter]:
    return [get_importer(s, probe, extra_steam_paths) for s in IMPORT_SOURCES]
