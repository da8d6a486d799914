"""
GameShelf: Application Core

Wires together the shelf (library, config, importers, launcher), the
background task queue, the tray icon and the library window.
"""

from __future__ import annotations

import argparse
import logging
import sys
import tkinter as tk
from pathlib import Path
from tkinter import messagebox, ttk
from typing import Optional

from pystray import MenuItem

from core.config import LOG_FILE, THEME_DARK
from core.models import GameSource
from core.probe import Probe
from core.shelf import Shelf, ShelfEvent
from ui.library_window import LibraryWindow
from ui.tray import TrayIcon

VERSION = "0.1.0"

logger = logging.getLogger(__name__)

_DARK_COLORS = {"background": "#1e1f29", "foreground": "#e6e6eb", "field": "#2a2c3a"}


def setup_logging(data_dir: Path, verbose: bool = False) -> Path:
    """Log to gameshelf.log in the data folder and route uncaught errors there."""
    data_dir.mkdir(parents=True, exist_ok=True)
    log_file = data_dir / LOG_FILE
    logging.basicConfig(
        filename=str(log_file),
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    sys.excepthook = lambda et, ev, tb: logging.error(
        "Uncaught exception", exc_info=(et, ev, tb),
    )
    return log_file


class GameShelfApp:
    """Main application class. Owns the shelf and the UI."""

    def __init__(self, data_dir: Path, silent: bool = False, probe: Optional[Probe] = None):
        self.silent = silent
        self.data_dir = data_dir
        logger.info(f"Starting GameShelf v{VERSION} (data: {data_dir})")

        self.shelf = Shelf(data_dir, probe=probe)
        probe = self.shelf.probe
        wine = " under Wine" if probe.is_running_under_wine() else ""
        logger.info(f"Running on {probe.platform_name()}{wine}")

        # Tkinter root (hidden)
        self.root = tk.Tk()
        self.root.withdraw()
        self.root.report_callback_exception = self._report_callback_exception
        self._apply_theme(self.shelf.config.theme)

        self.library_window = LibraryWindow(self)
        self.tray: Optional[TrayIcon] = None
        self.sources: list[GameSource] = []
        self._was_importing = False

        self.root.after(100, self._process_events)

    def start(self) -> None:
        """Initialize and run the application."""
        try:
            self.sources = self.shelf.available_sources()
            logger.info(
                f"Loaded {self.shelf.library.game_count()} games, "
                f"sources available: {[s.label for s in self.sources]}"
            )
            if self.shelf.config.auto_import:
                self.shelf.start_auto_import()

            self.tray = TrayIcon(
                on_show_library=lambda: self.root.after(0, self.show_library),
                on_quit=lambda: self.root.after(0, self.quit),
                get_recent_items=self._build_recent_menu_items,
                get_import_items=self._build_import_menu_items,
                is_importing=self.shelf.is_importing,
            )
            self.tray.start()

            if not self.silent and not self.shelf.config.start_minimized:
                self.root.after(100, self.show_library)

            logger.info("Startup complete")
            self.root.mainloop()

        except Exception as e:
            logger.error(f"Fatal error during startup: {e}")
            if self.tray:
                self.tray.stop()
            raise

    def quit(self) -> None:
        """Clean shutdown: stop watchers, flush pending results, save."""
        logger.info("Shutting down")
        try:
            self.shelf.shutdown()
        finally:
            if self.tray:
                self.tray.stop()
            self.root.quit()
            self.root.destroy()

    def show_library(self) -> None:
        self.library_window.show()

    def start_import(self, source: GameSource) -> None:
        if self.shelf.start_import(source):
            self.library_window.log(f"Importing from {source.label}...")
        else:
            self.library_window.log(f"{source.label} import already running, queued another")
        self._refresh_tray()

    def launch(self, game_id) -> None:
        if not self.shelf.launch(game_id):
            game = self.shelf.library.get_game(game_id)
            if game is not None:
                self.library_window.log(f"{game.name} is already starting")

    def apply_settings(self, **changes) -> None:
        old = self.shelf.config
        auto_before, theme_before = old.auto_import, old.theme
        self.shelf.set_config(**changes)

        if self.shelf.config.theme != theme_before:
            self._apply_theme(self.shelf.config.theme)
        if self.shelf.config.auto_import and not auto_before:
            count = self.shelf.start_auto_import()
            self.library_window.log(f"Watching {count} launchers for new games")
        elif auto_before and not self.shelf.config.auto_import:
            self.shelf.stop_auto_import()
            self.library_window.log("Stopped watching launchers")

    # --- Internal ---

    def _apply_theme(self, theme: str) -> None:
        style = ttk.Style(self.root)
        try:
            style.theme_use("clam")
        except tk.TclError as e:
            logger.debug(f"Theme 'clam' unavailable: {e}")
            return
        if theme == THEME_DARK:
            bg, fg, field = (_DARK_COLORS[k] for k in ("background", "foreground", "field"))
            style.configure(".", background=bg, foreground=fg, fieldbackground=field)
            style.configure("Treeview", background=field, foreground=fg, fieldbackground=field)
            style.map("Treeview", background=[("selected", "#3d5a80")])
        else:
            style.configure(".", background="#f0f0f0", foreground="#000000", fieldbackground="#ffffff")
            style.configure("Treeview", background="#ffffff", foreground="#000000",
                            fieldbackground="#ffffff")

    def _report_callback_exception(self, exc, val, tb) -> None:
        logging.error("Uncaught exception in UI callback", exc_info=(exc, val, tb))

    def _process_events(self) -> None:
        """Apply finished background work on the tkinter main thread."""
        try:
            changed = False
            for event in self.shelf.process_events():
                changed = True
                self._show_event(event)
            importing = self.shelf.is_importing()
            if changed or importing != self._was_importing:
                self._was_importing = importing
                self.library_window.refresh()
                self._refresh_tray()
        finally:
            self.root.after(100, self._process_events)

    def _show_event(self, event: ShelfEvent) -> None:
        prefix = "" if event.ok else "Error: "
        self.library_window.log(f"[{event.kind}] {prefix}{event.message}")
        if not event.ok and event.kind == "launch":
            messagebox.showerror("Launch Failed", event.message)

    def _refresh_tray(self) -> None:
        if self.tray:
            self.tray.update()

    def _on_main_thread(self, fn, *args):
        """Tray menu action that runs `fn(*args)` on the tkinter thread."""
        def action(icon, item):
            self.root.after(0, lambda: fn(*args))
        return action

    def _build_recent_menu_items(self) -> list[MenuItem]:
        """Recently played games for the tray menu."""
        items = []
        for game in self.shelf.library.recently_played(5):
            items.append(
                MenuItem(
                    game.name,
                    self._on_main_thread(self.launch, game.id),
                )
            )
        return items

    def _build_import_menu_items(self) -> list[MenuItem]:
        items = []
        for source in self.sources:
            busy = self.shelf.is_importing(source)
            items.append(
                MenuItem(
                    f"{source.label} [Importing]" if busy else source.label,
                    self._on_main_thread(self.start_import, source),
                    enabled=not busy,
                )
            )
        return items


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="GameShelf game library")
    parser.add_argument(
        "--data-dir", type=Path, default=None,
        help="Folder for library.json, config.json and the log",
    )
    parser.add_argument(
        "--silent", action="store_true",
        help="Start minimized to tray without showing the library window",
    )
    parser.add_argument("--verbose", action="store_true", help="Log debug messages")
    args = parser.parse_args(argv)

    data_dir = args.data_dir or Probe().user_data_dir()
    log_file = setup_logging(data_dir, args.verbose)

    try:
        app = GameShelfApp(data_dir, silent=args.silent)
        app.start()
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        if not args.silent:
            messagebox.showerror(
                "Fatal Error",
                f"A fatal error occurred: {e}\nCheck {log_file} for details.",
            )
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
