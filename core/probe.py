"""
Environment probe for GameShelf.

All reads of ambient OS state (platform, environment variables, home
directory, Windows registry) go through a Probe instance so importers can
be pointed at a fake machine in tests.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .models import GameSource

logger = logging.getLogger(__name__)

APP_NAME = "GameShelf"

HKLM = "HKEY_LOCAL_MACHINE"
HKCU = "HKEY_CURRENT_USER"


class Probe:
    """Reads the real machine."""

    def __init__(self, platform: Optional[str] = None):
        self.platform = platform or sys.platform

    @property
    def is_windows(self) -> bool:
        return self.platform == "win32"

    @property
    def is_macos(self) -> bool:
        return self.platform == "darwin"

    @property
    def is_linux(self) -> bool:
        return self.platform.startswith("linux")

    def env(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return os.environ.get(name, default)

    def home(self) -> Path:
        return Path.home()

    def exists(self, path: Path) -> bool:
        return path.exists()

    def registry_string(self, hive: str, key_path: str, value: str) -> Optional[str]:
        """Read a string value from the Windows registry, or None."""
        if not self.is_windows:
            return None
        try:
            import winreg
            root = {
                HKLM: winreg.HKEY_LOCAL_MACHINE,
                HKCU: winreg.HKEY_CURRENT_USER,
            }[hive]
            with winreg.OpenKey(root, key_path) as key:
                data, _ = winreg.QueryValueEx(key, value)
                return str(data)
        except (ImportError, KeyError, OSError):
            return None

    def program_data(self) -> Path:
        return Path(self.env("PROGRAMDATA") or "C:/ProgramData")

    def platform_name(self) -> str:
        if self.is_windows:
            return "Windows"
        if self.is_macos:
            return "macOS"
        if self.is_linux:
            return "Linux"
        return "Unknown"

    def source_supported(self, source: GameSource) -> bool:
        """Whether importing from this launcher makes sense on this OS."""
        if source in (GameSource.EPIC, GameSource.GOG):
            return self.is_windows
        return True

    def is_running_under_wine(self) -> bool:
        return self.env("WINEPREFIX") is not None or self.env("WINE") is not None

    def user_data_dir(self) -> Path:
        """Per-user directory holding the library, config and log."""
        if self.is_windows:
            base = self.env("APPDATA")
            root = Path(base) if base else self.home() / "AppData" / "Roaming"
            return root / APP_NAME
        if self.is_macos:
            return self.home() / "Library" / "Application Support" / APP_NAME
        xdg = self.env("XDG_DATA_HOME")
        root = Path(xdg) if xdg else self.home() / ".local" / "share"
        return root / APP_NAME.lower()
