"""
Library window for GameShelf.

The main UI window: search, category filter, sort order, the game list,
launch/favorite/edit controls, settings and a log pane. The window reads
the library freely but every change goes through the app's Shelf.
"""

from __future__ import annotations

import logging
import tkinter as tk
import uuid
from pathlib import Path
from tkinter import filedialog, messagebox, simpledialog, ttk
from typing import TYPE_CHECKING

from core.config import THEME_DARK, THEME_LIGHT
from core.errors import ManualEntryError
from core.models import GameSource, SortOrder

if TYPE_CHECKING:
    from GameShelf import GameShelfApp

logger = logging.getLogger(__name__)

ALL_GAMES = "All Games"
FAVORITES = "Favorites"


class LibraryWindow:
    """Main library window."""

    def __init__(self, app: GameShelfApp):
        self.app = app
        self.window: tk.Toplevel | None = None
        self._tree: ttk.Treeview | None = None
        self._log_text: tk.Text | None = None
        self._category_ids: dict[str, object] = {}

    @property
    def shelf(self):
        return self.app.shelf

    def show(self) -> None:
        """Show the window, creating it if needed."""
        if self.window is None or not self.window.winfo_exists():
            self._create()
        self.window.deiconify()
        self.window.lift()

    def hide(self) -> None:
        if self.window:
            self.window.withdraw()

    def log(self, message: str) -> None:
        if self._log_text and self._log_text.winfo_exists():
            self._log_text.insert(tk.END, message + "\n")
            self._log_text.see(tk.END)

    def refresh(self) -> None:
        """Re-run the current filter and redraw the game list."""
        if self._tree is None or not self._tree.winfo_exists():
            return
        selected = self._selected_game_id()
        self._tree.delete(*self._tree.get_children())

        category, favorites_only = self._current_filter()
        games = self.shelf.filtered_and_sorted(
            query=self._search_var.get(),
            category=category,
            order=self._current_sort(),
            favorites_only=favorites_only,
        )
        for game in games:
            last = game.last_played.astimezone().strftime("%Y-%m-%d %H:%M") if game.last_played else "Never"
            self._tree.insert("", "end", iid=str(game.id), values=(
                ("★ " if game.favorite else "") + game.name,
                game.source.label if self.shelf.config.show_sources else "",
                game.playtime_display(),
                last,
            ))
        if selected is not None and self._tree.exists(str(selected)):
            self._tree.selection_set(str(selected))
        self._status_var.set(f"{len(games)} of {self.shelf.library.game_count()} games")

    def _create(self) -> None:
        self.window = tk.Toplevel(self.app.root)
        self.window.title("GameShelf")
        self.window.geometry("960x640")
        self.window.protocol("WM_DELETE_WINDOW", self._on_close)

        menubar = tk.Menu(self.window)
        self.window.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="Add Game...", command=self._add_game)
        file_menu.add_command(label="Settings...", command=self._show_settings)
        file_menu.add_separator()
        file_menu.add_command(label="Minimize to Tray", command=self.hide)
        file_menu.add_command(label="Quit", command=self.app.quit)

        import_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="Import", menu=import_menu)
        for source in (GameSource.STEAM, GameSource.EPIC, GameSource.GOG):
            state = "normal" if source in self.app.sources else "disabled"
            import_menu.add_command(
                label=f"Import from {source.label}", state=state,
                command=lambda s=source: self.app.start_import(s),
            )

        category_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="Categories", menu=category_menu)
        category_menu.add_command(label="New Category...", command=self._new_category)
        category_menu.add_command(label="Delete Selected Category", command=self._delete_category)

        self.window.grid_columnconfigure(0, weight=1)
        self.window.grid_rowconfigure(1, weight=1)

        header = ttk.Frame(self.window)
        header.grid(row=0, column=0, sticky="ew", padx=5, pady=(5, 2))
        self._create_header(header)

        paned = ttk.PanedWindow(self.window, orient=tk.VERTICAL)
        paned.grid(row=1, column=0, sticky="nsew", padx=5, pady=2)

        games_frame = ttk.Frame(paned)
        paned.add(games_frame, weight=3)
        self._create_game_list(games_frame)

        log_frame = ttk.LabelFrame(paned, text="Log")
        paned.add(log_frame, weight=1)
        self._create_log(log_frame)

        self._status_var = tk.StringVar()
        ttk.Label(self.window, textvariable=self._status_var).grid(
            row=2, column=0, sticky="w", padx=5, pady=(0, 5),
        )
        self.refresh()

    def _create_header(self, parent: ttk.Frame) -> None:
        parent.columnconfigure(1, weight=1)

        ttk.Label(parent, text="Search:").grid(row=0, column=0, sticky="w")
        self._search_var = tk.StringVar()
        self._search_var.trace_add("write", lambda *_: self.refresh())
        ttk.Entry(parent, textvariable=self._search_var).grid(row=0, column=1, sticky="ew", padx=2)

        self._category_var = tk.StringVar(value=ALL_GAMES)
        self._category_box = ttk.Combobox(
            parent, textvariable=self._category_var, state="readonly", width=18,
        )
        self._category_box.grid(row=0, column=2, padx=2)
        self._category_box.bind("<<ComboboxSelected>>", lambda e: self.refresh())
        self._reload_categories()

        self._sort_var = tk.StringVar(value=self.shelf.config.default_sort.label)
        sort_box = ttk.Combobox(
            parent, textvariable=self._sort_var, state="readonly", width=16,
            values=[o.label for o in SortOrder],
        )
        sort_box.grid(row=0, column=3, padx=2)
        sort_box.bind("<<ComboboxSelected>>", lambda e: self._on_sort_changed())

    def _create_game_list(self, parent: ttk.Frame) -> None:
        parent.grid_columnconfigure(0, weight=1)
        parent.grid_rowconfigure(0, weight=1)

        columns = ("name", "source", "playtime", "last_played")
        tree = ttk.Treeview(parent, columns=columns, show="headings", selectmode="browse")
        tree.heading("name", text="Name", anchor="w")
        tree.heading("source", text="Source", anchor="center")
        tree.heading("playtime", text="Playtime", anchor="center")
        tree.heading("last_played", text="Last Played", anchor="center")
        tree.column("name", width=380, anchor="w")
        tree.column("source", width=120, anchor="center")
        tree.column("playtime", width=100, anchor="e")
        tree.column("last_played", width=160, anchor="center")
        tree.grid(row=0, column=0, sticky="nsew")
        tree.bind("<Double-1>", lambda e: self._launch_selected())

        scrollbar = ttk.Scrollbar(parent, orient="vertical", command=tree.yview)
        scrollbar.grid(row=0, column=1, sticky="ns")
        tree.configure(yscrollcommand=scrollbar.set)
        self._tree = tree

        buttons = ttk.Frame(parent)
        buttons.grid(row=1, column=0, columnspan=2, sticky="w", pady=2)
        ttk.Button(buttons, text="Launch", command=self._launch_selected).pack(side=tk.LEFT, padx=(0, 5))
        ttk.Button(buttons, text="Favorite", command=self._toggle_favorite).pack(side=tk.LEFT, padx=5)
        ttk.Button(buttons, text="Launch Options...", command=self._edit_args).pack(side=tk.LEFT, padx=5)
        ttk.Button(buttons, text="Rename...", command=self._rename).pack(side=tk.LEFT, padx=5)
        ttk.Button(buttons, text="Categories...", command=self._edit_categories).pack(side=tk.LEFT, padx=5)
        ttk.Button(buttons, text="Remove", command=self._remove_selected).pack(side=tk.LEFT, padx=5)

    def _create_log(self, parent: ttk.LabelFrame) -> None:
        parent.grid_columnconfigure(0, weight=1)
        parent.grid_rowconfigure(0, weight=1)

        self._log_text = tk.Text(parent, wrap="word", height=6)
        self._log_text.grid(row=0, column=0, sticky="nsew")
        scrollbar = ttk.Scrollbar(parent, orient="vertical", command=self._log_text.yview)
        scrollbar.grid(row=0, column=1, sticky="ns")
        self._log_text.config(yscrollcommand=scrollbar.set)

    # --- Filters ---

    def _reload_categories(self) -> None:
        categories = sorted(self.shelf.library.all_categories(), key=lambda c: c.name.lower())
        self._category_ids = {c.name: c.id for c in categories}
        self._category_box.config(values=[ALL_GAMES, FAVORITES, *self._category_ids])
        if self._category_var.get() not in (ALL_GAMES, FAVORITES, *self._category_ids):
            self._category_var.set(ALL_GAMES)

    def _current_filter(self):
        choice = self._category_var.get()
        if choice == FAVORITES:
            return None, True
        return self._category_ids.get(choice), False

    def _current_sort(self) -> SortOrder:
        label = self._sort_var.get()
        for order in SortOrder:
            if order.label == label:
                return order
        return self.shelf.config.default_sort

    def _on_sort_changed(self) -> None:
        self.shelf.set_config(default_sort=self._current_sort())
        self.refresh()

    # --- Game actions ---

    def _selected_game_id(self):
        if self._tree is None:
            return None
        selection = self._tree.selection()
        if not selection:
            return None
        return uuid.UUID(selection[0])

    def _require_selection(self):
        game_id = self._selected_game_id()
        if game_id is None:
            messagebox.showinfo("No Selection", "Select a game first.", parent=self.window)
        return game_id

    def _launch_selected(self) -> None:
        game_id = self._require_selection()
        if game_id is not None:
            self.app.launch(game_id)

    def _toggle_favorite(self) -> None:
        game_id = self._require_selection()
        if game_id is not None:
            self.shelf.toggle_favorite(game_id)
            self.refresh()

    def _edit_args(self) -> None:
        game_id = self._require_selection()
        if game_id is None:
            return
        game = self.shelf.library.get_game(game_id)
        args = simpledialog.askstring(
            "Launch Options", f"Arguments for {game.name}:",
            initialvalue=game.launch_args or "", parent=self.window,
        )
        if args is not None:
            self.shelf.update_game(game_id, launch_args=args.strip())

    def _rename(self) -> None:
        game_id = self._require_selection()
        if game_id is None:
            return
        game = self.shelf.library.get_game(game_id)
        name = simpledialog.askstring("Rename", "Name:", initialvalue=game.name, parent=self.window)
        if name and name.strip():
            self.shelf.update_game(game_id, name=name.strip())
            self.refresh()

    def _remove_selected(self) -> None:
        game_id = self._require_selection()
        if game_id is None:
            return
        game = self.shelf.library.get_game(game_id)
        if messagebox.askyesno("Remove Game", f"Remove {game.name} from the library?\n\n"
                               "The game itself stays installed.", parent=self.window):
            self.shelf.remove_game(game_id)
            self.refresh()

    def _add_game(self) -> None:
        path = filedialog.askopenfilename(title="Select game executable", parent=self.window)
        if not path:
            return
        name = simpledialog.askstring(
            "Add Game", "Name:", initialvalue=Path(path).stem, parent=self.window,
        )
        if name is None:
            return
        try:
            game = self.shelf.add_manual_game(name, Path(path))
        except ManualEntryError as e:
            logger.warning(f"Could not add {path}: {e}")
            messagebox.showerror("Add Game", str(e), parent=self.window)
            return
        self.log(f"Added {game.name}")
        self.refresh()

    # --- Categories ---

    def _new_category(self) -> None:
        name = simpledialog.askstring("New Category", "Name:", parent=self.window)
        if name and name.strip():
            self.shelf.add_category(name.strip())
            self._reload_categories()

    def _delete_category(self) -> None:
        choice = self._category_var.get()
        category_id = self._category_ids.get(choice)
        if category_id is None:
            messagebox.showinfo("Categories", "Select a category in the filter first.",
                                parent=self.window)
            return
        if messagebox.askyesno("Delete Category", f"Delete category {choice}?\n\n"
                               "Games in it stay in the library.", parent=self.window):
            self.shelf.remove_category(category_id)
            self._category_var.set(ALL_GAMES)
            self._reload_categories()
            self.refresh()

    def _edit_categories(self) -> None:
        game_id = self._require_selection()
        if game_id is None:
            return
        game = self.shelf.library.get_game(game_id)

        dialog = tk.Toplevel(self.window)
        dialog.title(f"Categories: {game.name}")
        dialog.transient(self.window)
        checks: dict[object, tk.BooleanVar] = {}
        for name, category_id in self._category_ids.items():
            var = tk.BooleanVar(value=game.has_category(category_id))
            ttk.Checkbutton(dialog, text=name, variable=var).pack(anchor="w", padx=10)
            checks[category_id] = var

        def _apply() -> None:
            for category_id, var in checks.items():
                if var.get():
                    self.shelf.assign_category(game_id, category_id)
                else:
                    self.shelf.unassign_category(game_id, category_id)
            dialog.destroy()
            self.refresh()

        ttk.Button(dialog, text="OK", command=_apply).pack(pady=5)

    # --- Settings ---

    def _show_settings(self) -> None:
        config = self.shelf.config
        dialog = tk.Toplevel(self.window)
        dialog.title("Settings")
        dialog.transient(self.window)
        dialog.columnconfigure(1, weight=1)

        theme_var = tk.StringVar(value=config.theme)
        ttk.Label(dialog, text="Theme:").grid(row=0, column=0, sticky="w", padx=5)
        ttk.Combobox(dialog, textvariable=theme_var, state="readonly",
                     values=[THEME_DARK, THEME_LIGHT]).grid(row=0, column=1, sticky="w", padx=5)

        flags = {
            "start_minimized": "Start minimized to tray",
            "close_to_tray": "Closing the window keeps GameShelf in the tray",
            "show_sources": "Show game sources",
            "auto_import": "Re-import automatically when launchers change",
        }
        flag_vars = {}
        for row, (name, text) in enumerate(flags.items(), start=1):
            var = tk.BooleanVar(value=getattr(config, name))
            ttk.Checkbutton(dialog, text=text, variable=var).grid(
                row=row, column=0, columnspan=2, sticky="w", padx=5,
            )
            flag_vars[name] = var

        row = len(flags) + 1
        ttk.Label(dialog, text="Extra Steam libraries:").grid(row=row, column=0, sticky="nw", padx=5)
        paths_list = tk.Listbox(dialog, height=4)
        paths_list.grid(row=row, column=1, sticky="ew", padx=5)
        for path in config.steam_library_paths:
            paths_list.insert(tk.END, str(path))

        def _add_path() -> None:
            folder = filedialog.askdirectory(parent=dialog)
            if folder:
                paths_list.insert(tk.END, folder)

        def _remove_path() -> None:
            for index in reversed(paths_list.curselection()):
                paths_list.delete(index)

        path_buttons = ttk.Frame(dialog)
        path_buttons.grid(row=row + 1, column=1, sticky="w", padx=5)
        ttk.Button(path_buttons, text="Add...", command=_add_path).pack(side=tk.LEFT)
        ttk.Button(path_buttons, text="Remove", command=_remove_path).pack(side=tk.LEFT, padx=5)

        def _save() -> None:
            changes = {name: var.get() for name, var in flag_vars.items()}
            changes["theme"] = theme_var.get()
            changes["steam_library_paths"] = [Path(p) for p in paths_list.get(0, tk.END)]
            self.app.apply_settings(**changes)
            dialog.destroy()
            self.refresh()

        ttk.Button(dialog, text="Save Settings", command=_save).grid(
            row=row + 2, column=1, sticky="e", padx=5, pady=5,
        )

    def _on_close(self) -> None:
        if self.shelf.config.close_to_tray:
            self.hide()
        else:
            self.app.quit()

