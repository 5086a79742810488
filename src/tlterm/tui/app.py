"""Settings-menu simulator.

A Textual app standing in for the device display: it renders the menu
engine's ``MenuView`` and turns key presses into encoder/keyboard events.

    up / k      rotate counter-clockwise   move(-1)
    down / j    rotate clockwise           move(+1)
    enter       click                      select()
    escape      long press                 cancel()
    s           open the menu while it is hidden
    other keys  keyboard                   key(ch)
"""

from __future__ import annotations

from typing import Optional

from textual.app import App, ComposeResult
from textual.events import Key
from textual.widgets import Static

from ..context import DeviceContext
from ..logging import get_logger
from ..menu import MenuView, Screen
from ..settings import ServerConfig, Theme, get_palette
from .themes import DEFAULT_SCHEME, build_css, get_scheme
from .widgets import MenuPanel, _safe_action

_log = get_logger("tlterm.tui")

HIDDEN_TEXT = "Terminal session\n\nPress s to open settings, ctrl+q to quit"

SCAN_POLL_INTERVAL = 0.25


class MenuSimulatorApp(App):
    """Textual app driving a ``MenuEngine`` from the keyboard."""

    CSS = build_css(DEFAULT_SCHEME)

    def __init__(self, ctx: DeviceContext, *, open_menu: bool = True, **kwargs):
        device_theme = Theme.coerce(ctx.settings.display.theme)
        self.__class__.CSS = build_css(device_theme)
        super().__init__(**kwargs)
        self.ctx = ctx
        self.menu = ctx.menu
        self._device_theme = device_theme
        self._cs = get_scheme(device_theme)  # shortcut for inline markup
        self._open_menu = open_menu
        self.feedback_log: list[str] = []
        self.connect_requests: list[tuple[str, int]] = []
        self.restart_requested = False

        self.menu.on_render = self._on_render
        self.menu.on_feedback = self._on_feedback
        self.menu.on_theme = self._on_theme
        self.menu.on_brightness = self._on_brightness
        self.menu.on_connect = self._on_connect
        self.menu.on_restart = self._on_restart

    # ─── Widget composition ────────────────────────────────────────

    def compose(self) -> ComposeResult:
        yield Static("", id="menu-title")
        yield MenuPanel("", id="menu-body")
        yield Static("", id="feedback")
        yield Static("", id="menu-status")

    def on_mount(self) -> None:
        self.title = "tlterm"
        self._poll_timer = self.set_interval(SCAN_POLL_INTERVAL, self._poll_scan)
        if self._open_menu and not self.menu.active:
            self.menu.show()
        else:
            self._on_render(self.menu.view())

    # ─── Input ─────────────────────────────────────────────────────

    def on_key(self, event: Key) -> None:
        if self.route_key(event.key, event.character):
            event.prevent_default()
            event.stop()

    @_safe_action
    def route_key(self, key: str, character: Optional[str] = None) -> bool:
        """Map one key press to a menu event. Returns True when consumed."""
        menu = self.menu
        if not menu.active:
            if key in ("s", "enter"):
                menu.show()
                return True
            return False
        if key == "escape":
            menu.cancel()
            return True
        if menu.capture is not None:
            if key == "enter":
                return menu.key("\n")
            if key == "backspace":
                return menu.key("\b")
            if character and len(character) == 1 and character.isprintable():
                return menu.key(character)
            return False
        if key in ("up", "k"):
            menu.move(-1)
        elif key in ("down", "j"):
            menu.move(1)
        elif key == "enter":
            menu.select()
        elif character and len(character) == 1 and character.isprintable():
            return menu.key(character)
        else:
            return False
        return True

    def _poll_scan(self) -> None:
        self.menu.poll()

    # ─── Menu hooks ────────────────────────────────────────────────

    def _on_render(self, view: MenuView) -> None:
        try:
            title = self.query_one("#menu-title", Static)
            body = self.query_one("#menu-body", MenuPanel)
            status = self.query_one("#menu-status", Static)
        except Exception:
            return  # not mounted yet
        if view.screen is Screen.HIDDEN:
            title.update("tlterm")
            body.update(HIDDEN_TEXT)
            status.update("")
            return
        title.update(view.title)
        body.show_view(view, self._cs)
        status.update(view.status)

    def _on_feedback(self, pattern: str) -> None:
        self.feedback_log.append(pattern)
        try:
            self.query_one("#feedback", Static).update(f"haptic: {pattern}")
        except Exception:
            pass

    def _on_theme(self, theme: Theme) -> None:
        self._device_theme = Theme.coerce(theme)
        self._cs = get_scheme(theme)
        self.__class__.CSS = build_css(theme)
        s = self._cs
        self.screen.styles.background = s["bg"]
        self.screen.styles.color = s["fg"]
        for wid in ("#menu-title", "#menu-status"):
            widget = self.query_one(wid)
            widget.styles.background = s["bg_alt"]
        self.sub_title = get_palette(theme).name
        _log.debug("Simulator theme: %s", get_palette(theme).name)

    def _on_brightness(self, value: int) -> None:
        self.sub_title = f"brightness {value * 100 // 255}%"

    def _on_connect(self, server: ServerConfig, remote: bool) -> None:
        self.connect_requests.append((server.host, server.port))
        kind = "remote" if remote else "local"
        self.notify(f"Connecting to {kind} server {server.host}:{server.port}")

    def _on_restart(self) -> None:
        self.restart_requested = True
        self.notify("Restart requested")
