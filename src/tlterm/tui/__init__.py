"""tlterm menu simulator package.

Modules:
    themes  — Device theme palettes as color schemes and CSS generation
    widgets — MenuPanel, row/capture rendering, _safe_action decorator
    app     — MenuSimulatorApp (Textual App driving the menu engine)
"""

from .themes import COLOR_SCHEMES, DEFAULT_SCHEME, get_scheme, build_css
from .widgets import MenuPanel, render_rows, render_capture, _safe_action
from .app import MenuSimulatorApp

__all__ = [
    "COLOR_SCHEMES",
    "DEFAULT_SCHEME",
    "get_scheme",
    "build_css",
    "MenuPanel",
    "render_rows",
    "render_capture",
    "_safe_action",
    "MenuSimulatorApp",
]
