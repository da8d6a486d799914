"""
GameShelf tray icon.

Keeps GameShelf reachable while the library window is hidden. The menu
launches recent games and starts imports; a dot shows import status.
The icon never touches the shelf itself; it only calls back into the app.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Callable, Optional

import pystray
from pystray import MenuItem
from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)


# pystray has no double-click hook on Windows; catch WM_LBUTTONDBLCLK ourselves
if sys.platform == "win32":
    class _Win32Icon(pystray.Icon):
        WM_LBUTTONDBLCLK = 0x0203

        def __init__(self, *args, **kwargs):
            self._on_double_click = kwargs.pop("on_double_click", None)
            super().__init__(*args, **kwargs)

        def _on_notify(self, wparam, lparam):
            super()._on_notify(wparam, lparam)
            if lparam == self.WM_LBUTTONDBLCLK and self._on_double_click:
                self._on_double_click(self, None)

    _IconClass = _Win32Icon
else:
    _IconClass = pystray.Icon


def draw_icon(status: Optional[tuple[int, int, int]] = None) -> Image.Image:
    """Dark rounded square with a shelf of three game spines."""
    size = 64
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.rounded_rectangle([0, 0, size - 1, size - 1], radius=12, fill=(36, 41, 56))

    spines = [
        ([12, 14, 22, 50], (231, 76, 60)),
        ([26, 20, 36, 50], (52, 152, 219)),
        ([40, 10, 50, 50], (46, 204, 113)),
    ]
    for box, color in spines:
        draw.rectangle(box, fill=color)
    draw.rectangle([8, 50, 56, 54], fill=(200, 200, 210))

    if status is not None:
        draw.ellipse([size - 18, 2, size - 2, 18], fill=status)
    return image


class TrayIcon:
    """The GameShelf tray icon and its menu."""

    def __init__(
        self,
        on_show_library: Callable[[], None],
        on_quit: Callable[[], None],
        get_recent_items: Callable[[], list[MenuItem]],
        get_import_items: Callable[[], list[MenuItem]],
        is_importing: Callable[[], bool],
    ):
        self._on_show_library = on_show_library
        self._on_quit = on_quit
        self._get_recent_items = get_recent_items
        self._get_import_items = get_import_items
        self._is_importing = is_importing
        self._icon: Optional[pystray.Icon] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Show the icon; pystray's loop runs on its own daemon thread."""
        self._create_icon()
        self._thread = threading.Thread(target=self._icon.run, name="tray", daemon=True)
        self._thread.start()
        logger.info("Tray icon shown")

    def stop(self) -> None:
        icon, self._icon = self._icon, None
        if icon is not None:
            icon.stop()
            logger.info("Tray icon removed")

    def update(self) -> None:
        """Refresh the image, tooltip and menu without restarting."""
        if self._icon:
            self._icon.icon = self._create_image()
            self._icon.title = self._get_tooltip()
            self._icon.menu = self._build_menu()
            self._icon.update_menu()

    def _create_icon(self) -> None:
        kwargs = {
            "name": "gameshelf",
            "icon": self._create_image(),
            "title": self._get_tooltip(),
            "menu": self._build_menu(),
        }
        if sys.platform == "win32":
            kwargs["on_double_click"] = lambda icon, item: self._on_show_library()
        self._icon = _IconClass(**kwargs)

    def _build_menu(self) -> pystray.Menu:
        recent = self._get_recent_items()
        imports = self._get_import_items()

        items = [MenuItem("Open Library", lambda: self._on_show_library(), default=True)]
        if recent:
            items += [pystray.Menu.SEPARATOR, *recent]
        if imports:
            items += [pystray.Menu.SEPARATOR, MenuItem("Import", pystray.Menu(*imports))]
        items += [pystray.Menu.SEPARATOR, MenuItem("Quit", lambda: self._on_quit())]
        return pystray.Menu(*items)

    def _create_image(self) -> Image.Image:
        if self._is_importing():
            return draw_icon((255, 165, 0))  # Orange while importing
        return draw_icon((0, 200, 0))

    def _get_tooltip(self) -> str:
        if self._is_importing():
            return "GameShelf\nImporting games..."
        return "GameShelf"
