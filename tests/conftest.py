# Shared fixtures: a minimal qtbot stand-in when pytest-qt is missing and a
# clean service locator for every test.

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from studio.models import ColorScheme  # noqa: E402
from studio.services.event_bus import EventBus  # noqa: E402
from studio.services.service_locator import services  # noqa: E402
from studio.services.style_root import InMemoryStyleRoot  # noqa: E402
from studio.services.theme_editor import ThemeEditor  # noqa: E402
from studio.services.theme_observer import ThemeSelection  # noqa: E402
from studio.services.theme_storage import InMemoryThemeStorage  # noqa: E402

try:
    import pytestqt  # type: ignore  # noqa: F401
except ImportError:  # pragma: no cover

    @pytest.fixture
    def qtbot():
        """Keeps widgets alive for the test; enough for ``addWidget`` callers."""
        widgets_mod = pytest.importorskip("PyQt6.QtWidgets")
        _app = widgets_mod.QApplication.instance() or widgets_mod.QApplication(sys.argv)
        kept = []

        class _Bot:
            def addWidget(self, widget):
                kept.append(widget)

        yield _Bot()


@pytest.fixture(autouse=True)
def _clean_services():
    services.clear()
    yield
    services.clear()


BASE_TOKENS = {
    "light": {
        "--primary": "oklch(0.55 0.2 260)",
        "--background": "oklch(1 0 0)",
        "--foreground": "oklch(0.15 0 0)",
        "--border": "oklch(0.9 0.01 250)",
        "--radius": "0.5rem",
    },
    "dark": {
        "--primary": "oklch(0.7 0.18 260)",
        "--background": "oklch(0.15 0 0)",
        "--foreground": "oklch(0.98 0 0)",
        "--border": "oklch(0.3 0.01 250)",
        "--radius": "0.5rem",
    },
}


@pytest.fixture
def style_root():
    return InMemoryStyleRoot(BASE_TOKENS)


@pytest.fixture
def selection():
    return ThemeSelection("default", ColorScheme.LIGHT)


@pytest.fixture
def storage():
    return InMemoryThemeStorage()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def editor(style_root, selection, storage, bus):
    return ThemeEditor(style_root, selection, storage, bus=bus)


@pytest.fixture
def make_context(tmp_path):
    """Factory around ``create_editor`` rooted in ``tmp_path``; detaches logging afterwards."""
    from studio.app.bootstrap import create_editor

    created = []

    def factory(**kwargs):
        kwargs.setdefault("config_dir", tmp_path)
        ctx = create_editor(**kwargs)
        created.append(ctx)
        return ctx

    yield factory
    for ctx in created:
        ctx.shutdown()
