from typing import Any, Dict, Optional, Set

from storage import ClientStorage

THEME_KEY = "theme"
MODES = ("light", "dark")


class ThemeState:
    """Light/dark preference of one client.

    The chosen mode is persisted and mirrored onto `root_classes`, the class
    list of the rendered document root. Nothing is rendered before
    `initialize` has picked the starting mode.
    """

    def __init__(self, storage: ClientStorage, ambient: Optional[str] = None):
        self.storage = storage
        self.ambient = ambient
        self.theme = "light"
        self.root_classes: Set[str] = set()
        self.mounted = False

    @property
    def is_dark(self) -> bool:
        return self.theme == "dark"

    def initialize(self) -> None:
        saved = self.storage.load(THEME_KEY)
        if saved in MODES:
            initial = saved
        elif self.ambient == "dark":
            initial = "dark"
        else:
            initial = "light"
        self._apply(initial)
        self.mounted = True

    def toggle_theme(self) -> str:
        self.set_theme_mode("light" if self.theme == "dark" else "dark")
        return self.theme

    def set_theme_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown theme '{mode}'")
        self._apply(mode)
        self.storage.save(THEME_KEY, mode)

    def _apply(self, mode: str) -> None:
        self.theme = mode
        if mode == "dark":
            self.root_classes.add("dark")
        else:
            self.root_classes.discard("dark")

    def snapshot(self) -> Dict[str, Any]:
        if not self.mounted:
            raise RuntimeError("Theme is not initialized")
        return {
            "theme": self.theme,
            "is_dark": self.is_dark,
            "root_class": " ".join(sorted(self.root_classes)),
        }
