import pytest

from storage import ClientStorage, MemoryStore
from theme import THEME_KEY, ThemeState


@pytest.fixture
def storage():
    return ClientStorage(MemoryStore(), "client-1")


def test_saved_preference_wins_over_ambient(storage):
    storage.save(THEME_KEY, "light")
    theme = ThemeState(storage, ambient="dark")
    theme.initialize()
    assert theme.theme == "light"
    assert theme.root_classes == set()


def test_ambient_preference_used_when_nothing_saved(storage):
    theme = ThemeState(storage, ambient="dark")
    theme.initialize()
    assert theme.is_dark
    assert "dark" in theme.root_classes


def test_defaults_to_light(storage):
    theme = ThemeState(storage)
    theme.initialize()
    assert theme.snapshot() == {"theme": "light", "is_dark": False, "root_class": ""}


def test_toggle_persists_and_mirrors_root_class(storage):
    theme = ThemeState(storage)
    theme.initialize()

    assert theme.toggle_theme() == "dark"
    assert storage.load(THEME_KEY) == "dark"
    assert theme.snapshot()["root_class"] == "dark"

    theme.toggle_theme()
    assert storage.load(THEME_KEY) == "light"
    assert theme.root_classes == set()


def test_set_theme_mode_rejects_unknown_modes(storage):
    theme = ThemeState(storage)
    theme.initialize()
    with pytest.raises(ValueError):
        theme.set_theme_mode("sepia")
    assert storage.load(THEME_KEY) is None


def test_nothing_renders_before_initialize(storage):
    with pytest.raises(RuntimeError):
        ThemeState(storage).snapshot()
