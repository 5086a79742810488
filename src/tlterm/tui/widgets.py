"""Widgets for the menu simulator.

Contains the MenuPanel (rows or text capture for the current screen) and
the _safe_action decorator.
"""

from __future__ import annotations

import functools

from rich.markup import escape
from textual.widgets import Static

from ..logging import get_logger, log_context
from ..menu import MenuView

_log = get_logger("tlterm.tui")


# ─── Safe action decorator ────────────────────────────────────────────────

def _safe_action(fn):
    """Decorator that catches exceptions in simulator event handlers.

    Logs the error and shows it in the status line instead of crashing the app.
    """

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except Exception as exc:
            err = f"{type(exc).__name__}: {str(exc)[:100]}"
            _log.error(
                "Error in %s: %s", fn.__name__, err,
                exc_info=True,
                extra={"context": log_context(handler=fn.__name__)},
            )
            self.notify(err, severity="error")
    return wrapper


# ─── Rendering ────────────────────────────────────────────────────────────

def render_rows(view: MenuView, scheme: dict[str, str], width: int = 40) -> str:
    """Rich markup for the visible window of a list screen."""
    lines = []
    for offset, row in enumerate(view.visible_rows):
        index = view.scroll + offset
        label = escape(row.label)
        value = escape(row.value)
        pad = max(1, width - len(row.label) - len(row.value))
        text = f" {label}{' ' * pad}{value} "
        if index == view.selected:
            text = f"[{scheme['highlight_fg']} on {scheme['highlight_bg']}]{text}[/]"
        lines.append(text)
    if view.body:
        lines.append("")
        lines.extend(escape(line) for line in view.body)
    return "\n".join(lines)


def render_capture(view: MenuView, scheme: dict[str, str]) -> str:
    cap = view.capture
    return "\n".join([
        escape(cap.prompt),
        "",
        f"[{scheme['highlight_fg']} on {scheme['highlight_bg']}] {escape(cap.text)}_ [/]",
        "",
        f"[{scheme['fg_dim']}]{escape(cap.help)}[/]",
    ])


class MenuPanel(Static):
    """Body of the simulated device screen."""

    def show_view(self, view: MenuView, scheme: dict[str, str]) -> None:
        if view.capture is not None:
            self.update(render_capture(view, scheme))
        else:
            self.update(render_rows(view, scheme))
