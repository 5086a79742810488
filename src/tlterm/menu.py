"""Settings menu state machine.

Screens are described by row tables: each row has a label, a value column,
an optional ``select`` action and an optional ``adjust`` action.  ``move``
on a row with ``adjust`` changes the value in place; otherwise it moves the
selection (wrapping at both ends) inside a five-row visible window.

Text capture (WiFi add/edit and the server field editor) replaces the row
list with a single-line buffer until it is committed or cancelled.

Every change to the settings record is saved through ``SettingsStore``
before the render callback runs.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, NamedTuple, Optional

from .logging import get_logger, log_context
from .settings import (
    HOST_LEN,
    MAX_WIFI_NETWORKS,
    SERVER_PASS_LEN,
    SETTINGS_VERSION,
    SSID_LEN,
    THEME_PALETTES,
    USER_LEN,
    WIFI_PASS_LEN,
    DeviceSettings,
    ServerConfig,
    SettingsStore,
    Theme,
    get_palette,
)
from .wifi_scan import MAX_SCAN_RESULTS, ScanResult, WifiScanner

_log = get_logger("tlterm.menu")

VISIBLE_ROWS = 5

BRIGHTNESS_STEP = 25
BRIGHTNESS_MIN = 10
BRIGHTNESS_MAX = 255
PERCENT_STEP = 10


class Screen(str, enum.Enum):
    HIDDEN = "hidden"
    MAIN = "main"
    DISPLAY = "display"
    WIFI_LIST = "wifi_list"
    WIFI_SCAN = "wifi_scan"
    WIFI_ADD = "wifi_add"
    WIFI_EDIT = "wifi_edit"
    SERVER_LOCAL = "server_local"
    SERVER_REMOTE = "server_remote"
    SYSTEM = "system"
    ABOUT = "about"


# Where "back" leads from each screen.
PARENT: dict[Screen, Screen] = {
    Screen.MAIN: Screen.HIDDEN,
    Screen.DISPLAY: Screen.MAIN,
    Screen.WIFI_LIST: Screen.MAIN,
    Screen.SERVER_LOCAL: Screen.MAIN,
    Screen.SERVER_REMOTE: Screen.MAIN,
    Screen.SYSTEM: Screen.MAIN,
    Screen.ABOUT: Screen.MAIN,
    Screen.WIFI_SCAN: Screen.WIFI_LIST,
    Screen.WIFI_ADD: Screen.WIFI_LIST,
    Screen.WIFI_EDIT: Screen.WIFI_LIST,
}

TITLES: dict[Screen, str] = {
    Screen.MAIN: "SETTINGS",
    Screen.DISPLAY: "DISPLAY",
    Screen.WIFI_LIST: "WIFI NETWORKS",
    Screen.WIFI_SCAN: "SELECT NETWORK",
    Screen.WIFI_ADD: "ADD WIFI",
    Screen.WIFI_EDIT: "EDIT WIFI",
    Screen.SERVER_LOCAL: "LOCAL SSH SERVER",
    Screen.SERVER_REMOTE: "REMOTE SSH SERVER",
    Screen.SYSTEM: "SYSTEM SETTINGS",
    Screen.ABOUT: "ABOUT",
}

HELP: dict[Screen, str] = {
    Screen.MAIN: "Rotate to scroll, click to select",
    Screen.DISPLAY: "Rotate to adjust, click Back to return",
    Screen.WIFI_LIST: "Click network to toggle, d=delete, e=edit password",
    Screen.WIFI_SCAN: "Select network to add",
    Screen.SERVER_LOCAL: "Click to edit field",
    Screen.SERVER_REMOTE: "Click to edit field",
    Screen.SYSTEM: "Rotate to adjust values, click to toggle",
    Screen.ABOUT: "",
}

CAPTURE_HELP = "Type on keyboard, ENTER to save, ESC to cancel"

ABOUT_TEXT = (
    "tlterm terminal appliance",
    f"Settings schema v{SETTINGS_VERSION}",
    "",
    "Gateway terminal over WebSocket",
    "Rotary encoder + QWERTY keyboard",
)

BACKSPACE_CHARS = ("\b", "\x7f")
ENTER_CHARS = ("\n", "\r")
ESCAPE_CHAR = "\x1b"


class CaptureTarget(str, enum.Enum):
    WIFI_SSID = "wifi_ssid"
    WIFI_PASSWORD = "wifi_password"
    WIFI_EDIT_PASSWORD = "wifi_edit_password"
    SERVER_HOST = "host"
    SERVER_PORT = "port"
    SERVER_USERNAME = "username"
    SERVER_PASSWORD = "password"


# Server editor rows 2-5 edit these fields, in order.
SERVER_FIELDS = (
    CaptureTarget.SERVER_HOST,
    CaptureTarget.SERVER_PORT,
    CaptureTarget.SERVER_USERNAME,
    CaptureTarget.SERVER_PASSWORD,
)

_MAX_LEN: dict[CaptureTarget, int] = {
    CaptureTarget.WIFI_SSID: SSID_LEN - 1,
    CaptureTarget.WIFI_PASSWORD: WIFI_PASS_LEN - 1,
    CaptureTarget.WIFI_EDIT_PASSWORD: WIFI_PASS_LEN - 1,
    CaptureTarget.SERVER_HOST: HOST_LEN - 1,
    CaptureTarget.SERVER_PORT: 5,
    CaptureTarget.SERVER_USERNAME: USER_LEN - 1,
    CaptureTarget.SERVER_PASSWORD: SERVER_PASS_LEN - 1,
}

_SECRET = {CaptureTarget.WIFI_PASSWORD, CaptureTarget.WIFI_EDIT_PASSWORD, CaptureTarget.SERVER_PASSWORD}


@dataclass
class TextCapture:
    """An in-progress single-line text entry."""

    target: CaptureTarget
    owner: Screen
    prompt: str
    buffer: str = ""
    index: int = -1          # network slot for WIFI_EDIT_PASSWORD

    @property
    def secret(self) -> bool:
        return self.target in _SECRET

    @property
    def max_len(self) -> int:
        return _MAX_LEN[self.target]


# ─── Render description ───────────────────────────────────────────────────

@dataclass(frozen=True)
class MenuRow:
    label: str
    value: str = ""


@dataclass(frozen=True)
class CaptureView:
    prompt: str
    text: str
    help: str = CAPTURE_HELP


@dataclass(frozen=True)
class MenuView:
    """Everything a render sink needs to draw the current screen."""

    screen: Screen
    title: str
    rows: tuple[MenuRow, ...] = ()
    selected: int = 0
    scroll: int = 0
    status: str = ""
    capture: Optional[CaptureView] = None
    body: tuple[str, ...] = field(default_factory=tuple)

    @property
    def visible_rows(self) -> tuple[MenuRow, ...]:
        return self.rows[self.scroll:self.scroll + VISIBLE_ROWS]


class _Row(NamedTuple):
    label: str
    value: str = ""
    select: Optional[Callable[[], None]] = None
    adjust: Optional[Callable[[int], None]] = None


def _on_off(flag: bool) -> str:
    return "ON" if flag else "OFF"


def _yes_no(flag: bool) -> str:
    return "YES" if flag else "NO"


def _percent_of_255(value: int) -> str:
    return f"{value * 100 // 255}%"


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


# ─── Engine ───────────────────────────────────────────────────────────────

class MenuEngine:
    """Finite-state machine over the settings screens.

    Hooks (all optional):
        on_render(view)             after every handled event
        on_feedback(pattern)        "click", "tick", "bump", "double"
        on_brightness(value)        brightness changed
        on_theme(theme)             theme changed
        on_connect(server, remote)  "Connect Now"
        on_restart()                "Restart Device"
        on_hide()                   menu closed
    """

    def __init__(self, store: SettingsStore, scanner: Optional[WifiScanner] = None):
        self.store = store
        self.scanner = scanner
        self.screen = Screen.HIDDEN
        self.selected = 0
        self.scroll = 0
        self.capture: Optional[TextCapture] = None
        self.status = ""
        self.scanning = False
        self.scan_results: list[ScanResult] = []
        self.connected_ssid = ""
        self._pending_ssid = ""

        self.on_render: Optional[Callable[[MenuView], None]] = None
        self.on_feedback: Optional[Callable[[str], None]] = None
        self.on_brightness: Optional[Callable[[int], None]] = None
        self.on_theme: Optional[Callable[[Theme], None]] = None
        self.on_connect: Optional[Callable[[ServerConfig, bool], None]] = None
        self.on_restart: Optional[Callable[[], None]] = None
        self.on_hide: Optional[Callable[[], None]] = None

        self._row_tables: dict[Screen, Callable[[], list[_Row]]] = {
            Screen.MAIN: self._main_rows,
            Screen.DISPLAY: self._display_rows,
            Screen.WIFI_LIST: self._wifi_list_rows,
            Screen.WIFI_SCAN: self._wifi_scan_rows,
            Screen.SERVER_LOCAL: lambda: self._server_rows(remote=False),
            Screen.SERVER_REMOTE: lambda: self._server_rows(remote=True),
            Screen.SYSTEM: self._system_rows,
            Screen.ABOUT: self._about_rows,
        }

    @property
    def settings(self) -> DeviceSettings:
        return self.store.settings

    @property
    def active(self) -> bool:
        return self.screen is not Screen.HIDDEN

    # ─── Row tables ───────────────────────────────────────────────

    def _back_row(self) -> _Row:
        return _Row("[< Back]", "", self.go_back)

    def _main_rows(self) -> list[_Row]:
        s = self.settings
        return [
            _Row("[X] Close Settings", "", self.hide),
            _Row("Display Settings", _percent_of_255(s.display.brightness),
                 lambda: self.enter(Screen.DISPLAY)),
            _Row("WiFi Networks", f"{s.wifi_network_count} saved",
                 lambda: self.enter(Screen.WIFI_LIST)),
            _Row("Local Server (SSH)", _on_off(s.local_server.enabled),
                 lambda: self.enter(Screen.SERVER_LOCAL)),
            _Row("Remote Server (SSH)", _on_off(s.remote_server.enabled),
                 lambda: self.enter(Screen.SERVER_REMOTE)),
            _Row("System", "", lambda: self.enter(Screen.SYSTEM)),
            _Row("About", "", lambda: self.enter(Screen.ABOUT)),
        ]

    def _display_rows(self) -> list[_Row]:
        s = self.settings
        return [
            self._back_row(),
            _Row("Brightness", _percent_of_255(s.display.brightness), None, self._adjust_brightness),
            _Row("Theme", get_palette(s.display.theme).name, None, self._adjust_theme),
        ]

    def _wifi_list_rows(self) -> list[_Row]:
        rows = [self._back_row(), _Row("[~] Scan for Networks", "", lambda: self.enter(Screen.WIFI_SCAN))]
        for i, net in enumerate(self.settings.wifi_networks):
            if self.connected_ssid and net.ssid == self.connected_ssid:
                status = "Connected"
            elif not net.enabled:
                status = "Disabled"
            else:
                status = ""
            rows.append(_Row(net.ssid, status, lambda i=i: self._toggle_network(i)))
        rows.append(_Row("[+] Add Network Manually", "", self._start_wifi_add))
        return rows

    def _wifi_scan_rows(self) -> list[_Row]:
        rows = [self._back_row()]
        if self.scanning:
            return rows
        for result in self.scan_results:
            rows.append(_Row(result.ssid, f"{result.rssi}dBm",
                             lambda ssid=result.ssid: self._start_wifi_add(ssid)))
        return rows

    def _server_rows(self, remote: bool) -> list[_Row]:
        server = self._server(remote)
        rows = [
            self._back_row(),
            _Row("Enabled", _yes_no(server.enabled), lambda: self._toggle_server(remote, "enabled")),
        ]
        values = (server.host, str(server.port), server.username, "****")
        for target, label, value in zip(SERVER_FIELDS, ("Host", "Port", "Username", "Password"), values):
            rows.append(_Row(label, value, lambda t=target: self._start_server_edit(remote, t)))
        rows += [
            _Row("SSL/TLS", _yes_no(server.use_ssl), lambda: self._toggle_server(remote, "use_ssl")),
            _Row("", ""),
            _Row("[Test Connection]", "", self._test_connection),
            _Row("[Connect Now]", "", lambda: self._connect_now(remote)),
        ]
        return rows

    def _system_rows(self) -> list[_Row]:
        s = self.settings
        return [
            self._back_row(),
            _Row("Sound", _on_off(s.sound.enabled), lambda: self._toggle(s.sound, "enabled")),
            _Row("Volume", f"{s.sound.volume}%", None,
                 lambda d: self._adjust_percent(s.sound, "volume", d)),
            _Row("Haptic Feedback", _on_off(s.haptic.enabled), lambda: self._toggle(s.haptic, "enabled")),
            _Row("Haptic Intensity", f"{s.haptic.intensity}%", None,
                 lambda d: self._adjust_percent(s.haptic, "intensity", d)),
            _Row("Auto-connect WiFi", _on_off(s.wifi_auto_connect),
                 lambda: self._toggle(s, "wifi_auto_connect")),
            _Row("Prefer Remote Server", _on_off(s.prefer_remote),
                 lambda: self._toggle(s, "prefer_remote")),
            _Row("[Reset All Settings]", "", self._reset_all),
            _Row("[Restart Device]", "", self._restart),
        ]

    def _about_rows(self) -> list[_Row]:
        return [self._back_row()]

    def _rows(self) -> list[_Row]:
        table = self._row_tables.get(self.screen)
        return table() if table is not None else []

    def item_count(self) -> int:
        return len(self._rows())

    # ─── Navigation ───────────────────────────────────────────────

    def show(self) -> None:
        """Hidden -> Main."""
        self.enter(Screen.MAIN)
        self._feedback("double")

    def hide(self) -> None:
        self.screen = Screen.HIDDEN
        self.capture = None
        self.scanning = False
        self.selected = self.scroll = 0
        self.status = ""
        _log.debug("Menu hidden")
        if self.on_hide:
            self.on_hide()
        self._render()

    def enter(self, screen: Screen) -> None:
        """Switch screens; selection and scroll start at the top."""
        if screen is Screen.HIDDEN:
            self.hide()
            return
        self.screen = screen
        self.selected = 0
        self.scroll = 0
        self.status = ""
        if screen not in (Screen.WIFI_ADD, Screen.WIFI_EDIT):
            self.capture = None
        if screen is Screen.WIFI_SCAN:
            self._start_scan()
        _log.debug("Enter screen", extra={"context": log_context(screen=screen.value)})
        self._render()

    def go_back(self) -> None:
        if self.screen is Screen.HIDDEN:
            return
        self.capture = None
        self.enter(PARENT[self.screen])

    def move(self, delta: int) -> None:
        """Encoder rotation: adjust the current value or move the selection."""
        if not self.active or self.capture is not None or delta == 0:
            return
        rows = self._rows()
        if not rows:
            return
        self._clamp_selection(len(rows))
        row = rows[self.selected]
        if row.adjust is not None:
            row.adjust(delta)
            self._feedback("tick")
            self._render()
            return
        self.selected = (self.selected + delta) % len(rows)
        self._scroll_to_selection()
        self._feedback("tick")
        self._render()

    def select(self) -> None:
        """Encoder click / Enter."""
        if not self.active:
            return
        if self.capture is not None:
            self._commit_capture()
            return
        rows = self._rows()
        if not rows:
            return
        self._clamp_selection(len(rows))
        row = rows[self.selected]
        self._feedback("click")
        if row.select is not None:
            row.select()
        else:
            self._render()

    def cancel(self) -> None:
        """Long-press / Escape: abandon capture, otherwise go up one level."""
        if not self.active:
            return
        if self.capture is not None:
            owner = self.capture.owner
            _log.debug("Text capture cancelled",
                       extra={"context": log_context(screen=self.screen.value)})
            self.capture = None
            self._pending_ssid = ""
            self._feedback("bump")
            self.enter(owner)
            return
        self._feedback("bump")
        self.go_back()

    def key(self, ch: str) -> bool:
        """Keyboard input. Returns True when the key was consumed."""
        if not self.active or not ch:
            return False
        if ch == ESCAPE_CHAR:
            self.cancel()
            return True
        if self.capture is not None:
            return self._capture_key(ch)
        if ch in ENTER_CHARS:
            self.select()
            return True
        if ch == "q":
            self._feedback("bump")
            self.go_back()
            return True
        if self.screen is Screen.WIFI_LIST and ch in ("d", "e"):
            index = self.selected - 2
            if 0 <= index < self.settings.wifi_network_count:
                if ch == "d":
                    self.delete_network(index)
                else:
                    self._start_wifi_edit(index)
                return True
        return False

    def poll(self) -> bool:
        """Check an outstanding scan. Safe to call at any time, any number of times."""
        if not self.scanning or self.scanner is None:
            return False
        results = self.scanner.poll()
        if results is None:
            return False
        self.scanning = False
        self.scan_results = list(results)[:MAX_SCAN_RESULTS]
        _log.info("WiFi scan complete: %d networks", len(self.scan_results))
        if self.screen is Screen.WIFI_SCAN:
            self.selected = self.scroll = 0
            if not self.scan_results:
                self.status = "No networks found. Try again."
            self._render()
        return True

    def _clamp_selection(self, count: int) -> None:
        if count <= 0:
            self.selected = self.scroll = 0
            return
        if self.selected >= count:
            self.selected = count - 1
        self._scroll_to_selection()

    def _scroll_to_selection(self) -> None:
        if self.selected < self.scroll:
            self.scroll = self.selected
        elif self.selected >= self.scroll + VISIBLE_ROWS:
            self.scroll = self.selected - VISIBLE_ROWS + 1

    # ─── Settings mutations (each followed by save) ───────────────

    def _save(self) -> None:
        self.store.save()

    def _adjust_brightness(self, delta: int) -> None:
        display = self.settings.display
        step = BRIGHTNESS_STEP if delta > 0 else -BRIGHTNESS_STEP
        display.brightness = _clamp(display.brightness + step, BRIGHTNESS_MIN, BRIGHTNESS_MAX)
        self._save()
        if self.on_brightness:
            self.on_brightness(self.settings.display.brightness)

    def _adjust_theme(self, delta: int) -> None:
        display = self.settings.display
        step = 1 if delta > 0 else -1
        display.theme = Theme((int(display.theme) + step) % len(THEME_PALETTES))
        self._save()
        if self.on_theme:
            self.on_theme(self.settings.display.theme)

    def _adjust_percent(self, obj: object, attr: str, delta: int) -> None:
        step = PERCENT_STEP if delta > 0 else -PERCENT_STEP
        setattr(obj, attr, _clamp(getattr(obj, attr) + step, 0, 100))
        self._save()

    def _toggle(self, obj: object, attr: str) -> None:
        setattr(obj, attr, not getattr(obj, attr))
        self._save()
        self._render()

    def _toggle_network(self, index: int) -> None:
        net = self.settings.wifi_networks[index]
        net.enabled = not net.enabled
        self._save()
        self._render()

    def _toggle_server(self, remote: bool, attr: str) -> None:
        self._toggle(self._server(remote), attr)

    def delete_network(self, index: int) -> bool:
        """Remove a saved network; later entries shift down one slot."""
        if not self.settings.delete_network(index):
            return False
        self._save()
        _log.info("WiFi network deleted", extra={"context": log_context(slot=index)})
        self._feedback("double")
        self._clamp_selection(self.item_count())
        self._render()
        return True

    def _reset_all(self) -> None:
        self.store.reset()
        self._save()
        self.status = "Settings reset to defaults"
        if self.on_brightness:
            self.on_brightness(self.settings.display.brightness)
        if self.on_theme:
            self.on_theme(self.settings.display.theme)
        self._render()

    def _restart(self) -> None:
        self.status = "Restarting..."
        self._render()
        if self.on_restart:
            self.on_restart()

    def _test_connection(self) -> None:
        self.status = "Test not implemented yet"
        self._render()

    def _connect_now(self, remote: bool) -> None:
        server = self._server(remote)
        self.hide()
        if self.on_connect:
            self.on_connect(server, remote)

    def _server(self, remote: bool) -> ServerConfig:
        return self.settings.remote_server if remote else self.settings.local_server

    # ─── Text capture ─────────────────────────────────────────────

    def _start_wifi_add(self, ssid: str = "") -> None:
        """Step 0 asks for the SSID; a scanned network skips straight to the password."""
        if ssid:
            self._pending_ssid = ssid
            self.capture = TextCapture(CaptureTarget.WIFI_PASSWORD, Screen.WIFI_LIST,
                                       f"Enter password for '{ssid}':")
        else:
            self._pending_ssid = ""
            self.capture = TextCapture(CaptureTarget.WIFI_SSID, Screen.WIFI_LIST,
                                       "Enter network name (SSID):")
        self.enter(Screen.WIFI_ADD)

    def _start_wifi_edit(self, index: int) -> None:
        ssid = self.settings.wifi_networks[index].ssid
        self.capture = TextCapture(CaptureTarget.WIFI_EDIT_PASSWORD, Screen.WIFI_LIST,
                                   f"Enter new password for '{ssid}':", index=index)
        self.enter(Screen.WIFI_EDIT)

    def _start_server_edit(self, remote: bool, target: CaptureTarget) -> None:
        server = self._server(remote)
        prompts = {
            CaptureTarget.SERVER_HOST: ("Enter server hostname or IP:", server.host),
            CaptureTarget.SERVER_PORT: ("Enter port number (e.g., 22):", str(server.port)),
            CaptureTarget.SERVER_USERNAME: ("Enter SSH username:", server.username),
            CaptureTarget.SERVER_PASSWORD: ("Enter SSH password:", ""),
        }
        prompt, initial = prompts[target]
        self.capture = TextCapture(target, self.screen, prompt, buffer=initial)
        self.status = "Password hidden for security" if target is CaptureTarget.SERVER_PASSWORD else ""
        self._render()

    def _capture_key(self, ch: str) -> bool:
        cap = self.capture
        if ch in ENTER_CHARS:
            self._commit_capture()
        elif ch in BACKSPACE_CHARS:
            cap.buffer = cap.buffer[:-1]
            self._render()
        elif len(ch) == 1 and 32 <= ord(ch) <= 126:
            if len(cap.buffer) < cap.max_len:
                cap.buffer += ch
                self._render()
        else:
            return False
        return True

    def _commit_capture(self) -> None:
        cap = self.capture
        text = cap.buffer
        if cap.target is CaptureTarget.WIFI_SSID:
            # Step 0 -> 1: nothing is written yet.
            self._pending_ssid = text
            self.capture = TextCapture(CaptureTarget.WIFI_PASSWORD, cap.owner,
                                       f"Enter password for '{text}':")
            self._render()
            return

        self.capture = None
        if cap.target is CaptureTarget.WIFI_PASSWORD:
            full = False
            if self.settings.add_network(self._pending_ssid, text):
                self._save()
                _log.info("WiFi network added",
                          extra={"context": log_context(ssid=self.settings.wifi_networks[-1].ssid)})
                self._feedback("double")
            elif self.settings.wifi_network_count >= MAX_WIFI_NETWORKS:
                full = True
                _log.warning("WiFi network list full, not added")
            self._pending_ssid = ""
            self.enter(cap.owner)
            if full:
                self.status = f"Network list full ({MAX_WIFI_NETWORKS} max)"
                self._render()
            return

        if cap.target is CaptureTarget.WIFI_EDIT_PASSWORD:
            nets = self.settings.wifi_networks
            if 0 <= cap.index < len(nets):
                nets[cap.index].password = text
                self._save()
            self.enter(cap.owner)
            return

        server = self._server(cap.owner is Screen.SERVER_REMOTE)
        invalid = False
        if cap.target is CaptureTarget.SERVER_PORT:
            text = text.strip()
            port = int(text) if text.isdigit() else 0
            if 0 < port <= 0xFFFF:
                server.port = port
                self._save()
            else:
                invalid = True
                _log.warning("Invalid port %r, keeping %d", text, server.port)
        else:
            setattr(server, cap.target.value, text)
            self._save()
        self.enter(cap.owner)
        if invalid:
            self.status = "Invalid port, unchanged"
            self._render()

    # ─── Output ───────────────────────────────────────────────────

    def _start_scan(self) -> None:
        self.scan_results = []
        if self.scanner is None:
            self.scanning = False
            self.status = "No networks found. Try again."
            return
        self.scanning = True
        self.scanner.start_scan()
        _log.debug("WiFi scan started")

    def _feedback(self, pattern: str) -> None:
        if self.on_feedback and self.settings.haptic.enabled:
            self.on_feedback(pattern)

    def _render(self) -> None:
        if self.on_render:
            self.on_render(self.view())

    def view(self) -> MenuView:
        if self.screen is Screen.HIDDEN:
            return MenuView(screen=Screen.HIDDEN, title="")
        if self.capture is not None:
            cap = self.capture
            shown = "*" * len(cap.buffer) if cap.secret else cap.buffer
            title = TITLES[self.screen]
            if self.screen in (Screen.SERVER_LOCAL, Screen.SERVER_REMOTE):
                title = "EDIT REMOTE" if self.screen is Screen.SERVER_REMOTE else "EDIT LOCAL"
            return MenuView(
                screen=self.screen, title=title, status=self.status,
                capture=CaptureView(prompt=cap.prompt, text=shown),
            )
        rows = self._rows()
        self._clamp_selection(len(rows))
        title = TITLES[self.screen]
        if self.screen is Screen.WIFI_SCAN and self.scanning:
            title = "SCANNING..."
        if len(rows) > VISIBLE_ROWS:
            title = f"{title} [{self.selected + 1}/{len(rows)}]"
        status = self.status or HELP.get(self.screen, "")
        if self.screen is Screen.WIFI_SCAN and self.scanning:
            status = self.status or "Scanning for networks..."
        return MenuView(
            screen=self.screen,
            title=title,
            rows=tuple(MenuRow(r.label, r.value) for r in rows),
            selected=self.selected,
            scroll=self.scroll,
            status=status,
            body=ABOUT_TEXT if self.screen is Screen.ABOUT else (),
        )
