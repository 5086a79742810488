"""Layered configuration for the tlterm appliance.

Builds one fully-populated, immutable ``ResolvedConfig`` out of:

  1. DEFAULT_CONFIG / DEFAULT_THEME / DEFAULT_KEYMAP (compiled-in defaults)
  2. the main document (``/config/tlterm_config.yml``)
  3. secure-store wifi credentials (authoritative for secrets)
  4. a named gateway profile (``/config/profiles/<name>.yml``), only when
     explicitly requested
  5. the theme and keymap documents named by the main document

Overlays are field-granular: a field absent from a document keeps the value
of the layer below.  Nothing here raises on bad input; every problem
becomes an entry in ``ConfigResolver.diagnostics`` and a log warning.

Documents carry text only (see ``tlterm.documents``).  Typing rules:

  - strings are taken verbatim (an empty value is an explicit ``""``)
  - booleans are true iff the trimmed text is exactly ``true``
  - unsigned integers must be plain decimal digits that fit the field's
    bit width, otherwise the field is left unchanged
"""

from __future__ import annotations

import copy
import enum
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from .documents import DocumentError, DocumentSource, normalize_path
from .logging import get_logger, log_context
from .storage import BlobStore

_log = get_logger("tlterm.config")


# ─── Well-known paths and keys ────────────────────────────────────────────

MAIN_DOCUMENT = "/config/tlterm_config.yml"
PROFILES_DIR = "/config/profiles"
PROFILE_EXT = ".yml"
DEFAULT_THEME_FILE = "/config/themes/nasa_minimal.yml"
DEFAULT_KEYMAP_FILE = "/config/keymaps/us_qwerty.yml"

SECURE_NAMESPACE = "tlterm_cfg"
KEY_WIFI_SSID = "wifi_ssid"
KEY_WIFI_PASS = "wifi_pass"
KEY_LAST_PROFILE = "last_profile"


# ─── Compiled-in defaults (document-shaped) ───────────────────────────────

DEFAULT_CONFIG: dict[str, Any] = {
    "wifi": {
        "ssid": "",                        # set via secure store or document
        "password": "",
    },
    "gateway": {
        "host": "192.168.1.100",
        "port": 7681,
        "path": "/ws",
        "useSsl": False,
        "sni": "",
        "connectTimeoutMs": 4000,
        "reconnectDelayMs": 800,
        "maxReconnectDelayMs": 5000,
        "pingIntervalMs": 15000,
    },
    "terminal": {
        "cols": 80,
        "rows": 18,
        "scrollbackLines": 0,
        "font": {
            "name": "mono",
            "size": 14,
        },
    },
    "input": {
        "keyboard": {
            "keymapFile": DEFAULT_KEYMAP_FILE,
            "debounceMs": 15,
        },
        "encoder": {
            "pressSendsEnter": True,
            "rotateScrollEnabled": False,
            "rotateStepLines": 1,
        },
    },
    "haptics": {
        "enabled": True,
        "keypressMs": 8,
        "bellMs": 40,
    },
    "ui": {
        "statusBarEnabled": True,
        "themeFile": DEFAULT_THEME_FILE,
    },
    "logging": {
        "serialBaud": 115200,
        "debugWebSocket": False,
        "debugKeyboard": False,
    },
}

DEFAULT_THEME: dict[str, Any] = {
    "name": "nasa_minimal",
    "colors": {
        "bg": (0, 0, 0),
        "fg": (230, 230, 230),
        "muted": (140, 140, 140),
        "ok": (80, 220, 160),
        "warn": (240, 200, 80),
        "err": (255, 90, 90),
        "statusBg": (20, 20, 20),
        "statusFg": (220, 220, 220),
    },
    "terminal": {
        "cursor": {
            "style": "block",              # block, underline, bar
            "blink": True,
        },
        "selection": {
            "invert": True,
        },
    },
    "statusBar": {
        "heightPx": 18,
        "icons": True,
        "showWifi": True,
        "showWebSocket": True,
        "showModifiers": True,
    },
}

DEFAULT_KEYMAP: dict[str, Any] = {
    "name": "",
    "keys": [],
    "modifiers": [],
}

# Bit width of every unsigned field; anything not listed is 32-bit.
_UINT_WIDTHS: dict[str, int] = {
    "gateway.port": 16,
    "terminal.cols": 16,
    "terminal.rows": 16,
    "terminal.scrollbackLines": 16,
    "terminal.font.size": 8,
    "input.keyboard.debounceMs": 8,
    "input.encoder.rotateStepLines": 8,
    "haptics.keypressMs": 8,
    "haptics.bellMs": 8,
    "statusBar.heightPx": 8,
}

# Profile document key -> gateway field. Profiles may touch nothing else.
_PROFILE_FIELDS = ("host", "port", "path", "useSsl", "sni")


# ─── Resolved value types ─────────────────────────────────────────────────

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class WifiConfig:
    ssid: str = ""
    password: str = ""


@dataclass(frozen=True)
class GatewayConfig:
    host: str = "192.168.1.100"
    port: int = 7681
    path: str = "/ws"
    use_ssl: bool = False
    sni: str = ""
    connect_timeout_ms: int = 4000
    reconnect_delay_ms: int = 800
    max_reconnect_delay_ms: int = 5000
    ping_interval_ms: int = 15000

    @property
    def url(self) -> str:
        scheme = "wss" if self.use_ssl else "ws"
        return f"{scheme}://{self.host}:{self.port}{self.path}"


@dataclass(frozen=True)
class TerminalConfig:
    cols: int = 80
    rows: int = 18
    scrollback_lines: int = 0
    font_name: str = "mono"
    font_size: int = 14


@dataclass(frozen=True)
class KeyboardConfig:
    keymap_file: str = DEFAULT_KEYMAP_FILE
    debounce_ms: int = 15


@dataclass(frozen=True)
class EncoderConfig:
    press_sends_enter: bool = True
    rotate_scroll_enabled: bool = False
    rotate_step_lines: int = 1


@dataclass(frozen=True)
class InputConfig:
    keyboard: KeyboardConfig = field(default_factory=KeyboardConfig)
    encoder: EncoderConfig = field(default_factory=EncoderConfig)


@dataclass(frozen=True)
class HapticsConfig:
    enabled: bool = True
    keypress_ms: int = 8
    bell_ms: int = 40


@dataclass(frozen=True)
class UiConfig:
    status_bar_enabled: bool = True
    theme_file: str = DEFAULT_THEME_FILE


@dataclass(frozen=True)
class LoggingConfig:
    serial_baud: int = 115200
    debug_web_socket: bool = False
    debug_keyboard: bool = False


@dataclass(frozen=True)
class ThemeColors:
    bg: RGB = (0, 0, 0)
    fg: RGB = (230, 230, 230)
    muted: RGB = (140, 140, 140)
    ok: RGB = (80, 220, 160)
    warn: RGB = (240, 200, 80)
    err: RGB = (255, 90, 90)
    status_bg: RGB = (20, 20, 20)
    status_fg: RGB = (220, 220, 220)


@dataclass(frozen=True)
class CursorConfig:
    style: str = "block"
    blink: bool = True


@dataclass(frozen=True)
class StatusBarConfig:
    height_px: int = 18
    icons: bool = True
    show_wifi: bool = True
    show_web_socket: bool = True
    show_modifiers: bool = True


@dataclass(frozen=True)
class ThemeConfig:
    name: str = "nasa_minimal"
    colors: ThemeColors = field(default_factory=ThemeColors)
    cursor: CursorConfig = field(default_factory=CursorConfig)
    selection_invert: bool = True
    status_bar: StatusBarConfig = field(default_factory=StatusBarConfig)


class ModifierMode(str, enum.Enum):
    ONESHOT = "oneshot"
    STICKY = "sticky"


@dataclass(frozen=True)
class KeyMapping:
    id: str
    normal: str = ""
    shift: str = ""
    code: Optional[int] = None     # control keys emit a raw code instead of normal/shift


@dataclass(frozen=True)
class ModifierDef:
    id: str
    mode: ModifierMode = ModifierMode.ONESHOT


@dataclass(frozen=True)
class KeymapConfig:
    name: str = ""
    keys: tuple[KeyMapping, ...] = ()
    modifiers: tuple[ModifierDef, ...] = ()


@dataclass(frozen=True)
class ResolvedConfig:
    """The single immutable configuration value consumed at boot."""

    wifi: WifiConfig = field(default_factory=WifiConfig)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    input: InputConfig = field(default_factory=InputConfig)
    haptics: HapticsConfig = field(default_factory=HapticsConfig)
    ui: UiConfig = field(default_factory=UiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    keymap: KeymapConfig = field(default_factory=KeymapConfig)


def build_config(
    raw: dict[str, Any],
    theme: dict[str, Any],
    keymap: dict[str, Any],
    wifi_override: Optional[tuple[str, str]] = None,
) -> ResolvedConfig:
    """Freeze document-shaped dicts into a ``ResolvedConfig``."""
    gw = raw["gateway"]
    term = raw["terminal"]
    kb = raw["input"]["keyboard"]
    enc = raw["input"]["encoder"]
    hap = raw["haptics"]
    ui = raw["ui"]
    lg = raw["logging"]
    ssid, password = raw["wifi"]["ssid"], raw["wifi"]["password"]
    if wifi_override is not None:
        ssid, password = wifi_override
    colors = theme["colors"]
    sb = theme["statusBar"]
    return ResolvedConfig(
        wifi=WifiConfig(ssid=ssid, password=password),
        gateway=GatewayConfig(
            host=gw["host"], port=gw["port"], path=gw["path"],
            use_ssl=gw["useSsl"], sni=gw["sni"],
            connect_timeout_ms=gw["connectTimeoutMs"],
            reconnect_delay_ms=gw["reconnectDelayMs"],
            max_reconnect_delay_ms=gw["maxReconnectDelayMs"],
            ping_interval_ms=gw["pingIntervalMs"],
        ),
        terminal=TerminalConfig(
            cols=term["cols"], rows=term["rows"],
            scrollback_lines=term["scrollbackLines"],
            font_name=term["font"]["name"], font_size=term["font"]["size"],
        ),
        input=InputConfig(
            keyboard=KeyboardConfig(keymap_file=kb["keymapFile"], debounce_ms=kb["debounceMs"]),
            encoder=EncoderConfig(
                press_sends_enter=enc["pressSendsEnter"],
                rotate_scroll_enabled=enc["rotateScrollEnabled"],
                rotate_step_lines=enc["rotateStepLines"],
            ),
        ),
        haptics=HapticsConfig(enabled=hap["enabled"], keypress_ms=hap["keypressMs"], bell_ms=hap["bellMs"]),
        ui=UiConfig(status_bar_enabled=ui["statusBarEnabled"], theme_file=ui["themeFile"]),
        logging=LoggingConfig(
            serial_baud=lg["serialBaud"],
            debug_web_socket=lg["debugWebSocket"],
            debug_keyboard=lg["debugKeyboard"],
        ),
        theme=ThemeConfig(
            name=theme["name"],
            colors=ThemeColors(
                bg=tuple(colors["bg"]), fg=tuple(colors["fg"]),
                muted=tuple(colors["muted"]), ok=tuple(colors["ok"]),
                warn=tuple(colors["warn"]), err=tuple(colors["err"]),
                status_bg=tuple(colors["statusBg"]), status_fg=tuple(colors["statusFg"]),
            ),
            cursor=CursorConfig(
                style=theme["terminal"]["cursor"]["style"],
                blink=theme["terminal"]["cursor"]["blink"],
            ),
            selection_invert=theme["terminal"]["selection"]["invert"],
            status_bar=StatusBarConfig(
                height_px=sb["heightPx"], icons=sb["icons"], show_wifi=sb["showWifi"],
                show_web_socket=sb["showWebSocket"], show_modifiers=sb["showModifiers"],
            ),
        ),
        keymap=KeymapConfig(
            name=keymap["name"],
            keys=tuple(keymap["keys"]),
            modifiers=tuple(keymap["modifiers"]),
        ),
    )


# ─── Text-node parsing ────────────────────────────────────────────────────

_UINT_RE = re.compile(r"^\d+$")
_INT_RE = re.compile(r"^[+-]?\d+$")


def parse_uint(text: str, width: int = 32) -> Optional[int]:
    """Parse an unsigned decimal of *width* bits. ``None`` means "leave unchanged"."""
    text = text.strip()
    if not _UINT_RE.match(text):
        return None
    value = int(text)
    if value >= 1 << width:
        return None
    return value


def parse_bool(text: str) -> bool:
    """True iff the trimmed text is exactly ``true`` (case-sensitive)."""
    return text.strip() == "true"


def _parse_int(text: str) -> Optional[int]:
    text = text.strip()
    return int(text) if _INT_RE.match(text) else None


def _closest_match(key: str, valid_keys: set[str], max_distance: int = 3) -> str | None:
    """Find the closest match for a key in a set of valid keys."""
    best_match = None
    best_dist = max_distance + 1
    key_lower = key.lower()
    for candidate in valid_keys:
        cand_lower = candidate.lower()
        if key_lower == cand_lower:
            return candidate
        if abs(len(key_lower) - len(cand_lower)) > max_distance:
            continue
        dist = _edit_distance(key_lower, cand_lower)
        if dist < best_dist:
            best_dist = dist
            best_match = candidate
    return best_match if best_dist <= max_distance else None


def _edit_distance(a: str, b: str) -> int:
    """Compute Levenshtein edit distance between two strings."""
    if len(a) > len(b):
        a, b = b, a
    prev = list(range(len(a) + 1))
    for j in range(1, len(b) + 1):
        curr = [j] + [0] * len(a)
        for i in range(1, len(a) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr[i] = min(curr[i - 1] + 1, prev[i] + 1, prev[i - 1] + cost)
        prev = curr
    return prev[len(a)]


def _is_rgb(value: Any) -> bool:
    return isinstance(value, tuple) and len(value) == 3


def _parse_rgb(node: Any, where: str, warnings: list[str]) -> Optional[RGB]:
    """Color nodes carry ``r``/``g``/``b``; a missing component reads as 0."""
    if not isinstance(node, dict):
        warnings.append(f"{where} must be a mapping with r/g/b — left unchanged")
        return None
    rgb = []
    for comp in ("r", "g", "b"):
        text = node.get(comp, "0")
        value = _parse_int(text) if isinstance(text, str) else None
        if value is None:
            warnings.append(f"{where}.{comp} '{text}' is not an integer — using 0")
            value = 0
        rgb.append(max(0, min(255, value)))
    return (rgb[0], rgb[1], rgb[2])


def _overlay(
    target: dict[str, Any],
    doc: dict[str, Any],
    prefix: str,
    warnings: list[str],
    origin: str,
) -> None:
    """Overlay text nodes from *doc* onto the typed dict *target*, field by field.

    The shape and types of *target* (the layer below) decide how each node
    is parsed; *target* is mutated in place.
    """
    for key, node in doc.items():
        path = f"{prefix}.{key}" if prefix else key
        if key not in target:
            hint = _closest_match(key, set(target))
            hint_txt = f" (did you mean '{hint}'?)" if hint else ""
            warnings.append(f"{origin}: unknown key '{path}'{hint_txt} — ignored")
            continue
        current = target[key]
        if isinstance(current, dict):
            if node == "":
                continue
            if not isinstance(node, dict):
                warnings.append(f"{origin}: '{path}' must be a section — ignored")
                continue
            _overlay(current, node, path, warnings, origin)
        elif _is_rgb(current):
            rgb = _parse_rgb(node, f"{origin}: '{path}'", warnings)
            if rgb is not None:
                target[key] = rgb
        elif not isinstance(node, str):
            warnings.append(f"{origin}: '{path}' must be a text value — left unchanged")
        elif isinstance(current, bool):
            target[key] = parse_bool(node)
        elif isinstance(current, int):
            width = _UINT_WIDTHS.get(path, 32)
            value = parse_uint(node, width)
            if value is None:
                warnings.append(
                    f"{origin}: '{path}' value '{node}' is not a {width}-bit unsigned integer "
                    f"— keeping {current}"
                )
            else:
                target[key] = value
        else:
            target[key] = node


def _parse_keymap(doc: dict[str, Any], origin: str, warnings: list[str]) -> dict[str, Any]:
    """A successfully parsed keymap replaces both key and modifier lists."""
    keymap: dict[str, Any] = {"name": "", "keys": [], "modifiers": []}
    name = doc.get("name")
    if isinstance(name, str):
        keymap["name"] = name

    keys = doc.get("keys", [])
    if keys == "":
        keys = []
    if not isinstance(keys, list):
        warnings.append(f"{origin}: 'keys' must be a list — no keys loaded")
        keys = []
    for i, entry in enumerate(keys):
        if not isinstance(entry, dict) or not isinstance(entry.get("id", ""), str):
            warnings.append(f"{origin}: keys[{i}] is not a key mapping — skipped")
            continue
        code = None
        if "code" in entry:
            code = _parse_int(entry["code"]) if isinstance(entry["code"], str) else None
            if code is None:
                warnings.append(f"{origin}: keys[{i}].code '{entry['code']}' is not an integer — ignored")
        keymap["keys"].append(KeyMapping(
            id=entry.get("id", ""),
            normal=entry.get("normal", "") if isinstance(entry.get("normal", ""), str) else "",
            shift=entry.get("shift", "") if isinstance(entry.get("shift", ""), str) else "",
            code=code,
        ))

    modifiers = doc.get("modifiers", [])
    if modifiers == "":
        modifiers = []
    if not isinstance(modifiers, list):
        warnings.append(f"{origin}: 'modifiers' must be a list — no modifiers loaded")
        modifiers = []
    for i, entry in enumerate(modifiers):
        if not isinstance(entry, dict) or not isinstance(entry.get("id", ""), str):
            warnings.append(f"{origin}: modifiers[{i}] is not a modifier definition — skipped")
            continue
        mode_text = entry.get("mode", "oneshot")
        try:
            mode = ModifierMode(mode_text)
        except ValueError:
            warnings.append(
                f"{origin}: modifiers[{i}].mode '{mode_text}' must be oneshot or sticky — using oneshot"
            )
            mode = ModifierMode.ONESHOT
        keymap["modifiers"].append(ModifierDef(id=entry.get("id", ""), mode=mode))
    return keymap


# ─── Secure store ─────────────────────────────────────────────────────────

class SecureStore:
    """Credentials and the last-used profile, kept out of the filesystem."""

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs

    def save_wifi(self, ssid: str, password: str) -> bool:
        ok = self.blobs.write_str(KEY_WIFI_SSID, ssid)
        ok = self.blobs.write_str(KEY_WIFI_PASS, password) and ok
        return ok

    def load_wifi(self) -> Optional[tuple[str, str]]:
        """Stored credentials, or ``None`` when no non-empty SSID is stored."""
        ssid = self.blobs.read_str(KEY_WIFI_SSID)
        if not ssid:
            return None
        return ssid, self.blobs.read_str(KEY_WIFI_PASS)

    def save_last_profile(self, name: str) -> bool:
        return self.blobs.write_str(KEY_LAST_PROFILE, name)

    def last_profile(self) -> str:
        return self.blobs.read_str(KEY_LAST_PROFILE)

    def clear(self) -> bool:
        return self.blobs.clear()


# ─── Resolver ─────────────────────────────────────────────────────────────

_PROFILE_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class ConfigResolver:
    """Owns the layered configuration state and produces ``ResolvedConfig`` values."""

    def __init__(
        self,
        source: DocumentSource,
        secure: SecureStore,
        main_path: str = MAIN_DOCUMENT,
        profiles_dir: str = PROFILES_DIR,
    ):
        self.source = source
        self.secure = secure
        self.main_path = main_path
        self.profiles_dir = profiles_dir
        self.diagnostics: list[str] = []
        self._raw: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self._theme: dict[str, Any] = copy.deepcopy(DEFAULT_THEME)
        self._keymap: dict[str, Any] = copy.deepcopy(DEFAULT_KEYMAP)
        self._secure_wifi: Optional[tuple[str, str]] = None
        self.active_profile: str = ""
        self.config: ResolvedConfig = self._build()

    # ─── Internals ────────────────────────────────────────────────

    def _build(self) -> ResolvedConfig:
        self.config = build_config(self._raw, self._theme, self._keymap, self._secure_wifi)
        return self.config

    def _report(self, warnings: list[str]) -> None:
        for w in warnings:
            _log.warning("Config: %s", w)
        self.diagnostics.extend(warnings)

    def _load_document(self, path: str, kind: str) -> Optional[dict[str, Any]]:
        try:
            doc = self.source.load(path, kind)
        except DocumentError as e:
            self._report([f"{kind} document {e.path} unusable ({e.message}) — keeping previous values"])
            return None
        if doc is None:
            self._report([f"{kind} document {path} not found — keeping previous values"])
        return doc

    # ─── Public API ───────────────────────────────────────────────

    def resolve(self, main_path: Optional[str] = None) -> ResolvedConfig:
        """Rebuild the configuration from scratch. Never raises."""
        if main_path is not None:
            self.main_path = main_path
        self.diagnostics = []
        self._raw = copy.deepcopy(DEFAULT_CONFIG)
        self._theme = copy.deepcopy(DEFAULT_THEME)
        self._keymap = copy.deepcopy(DEFAULT_KEYMAP)
        self.active_profile = ""

        doc = self._load_document(self.main_path, "config")
        if doc is not None:
            warnings: list[str] = []
            _overlay(self._raw, doc, "", warnings, self.main_path)
            self._report(warnings)
            _log.info("Config document applied", extra={"context": log_context(path=self.main_path)})

        self._secure_wifi = self.secure.load_wifi()
        if self._secure_wifi is not None:
            _log.info("Wi-Fi credentials taken from secure store")

        if self._raw["ui"]["themeFile"]:
            self.load_theme()
        if self._raw["input"]["keyboard"]["keymapFile"]:
            self.load_keymap()
        return self._build()

    def reload(self) -> ResolvedConfig:
        """Re-resolve from the current main document (drops any loaded profile)."""
        return self.resolve(self.main_path)

    def profile_path(self, name: str) -> str:
        return f"{self.profiles_dir.rstrip('/')}/{name}{PROFILE_EXT}"

    def load_profile(self, name: str) -> bool:
        """Overlay gateway connection fields from profile *name*.

        On success the profile becomes the secure store's "last used profile".
        """
        if not _PROFILE_NAME_RE.match(name or ""):
            self._report([f"invalid profile name {name!r}"])
            return False
        path = self.profile_path(name)
        doc = self._load_document(path, "profile")
        if doc is None:
            return False
        warnings: list[str] = []
        gateway_doc = {}
        for key, node in doc.items():
            if key in _PROFILE_FIELDS:
                gateway_doc[key] = node
            else:
                hint = _closest_match(key, set(_PROFILE_FIELDS))
                hint_txt = f" (did you mean '{hint}'?)" if hint else ""
                warnings.append(f"{path}: key '{key}'{hint_txt} is not a profile field — ignored")
        _overlay(self._raw["gateway"], gateway_doc, "gateway", warnings, path)
        self._report(warnings)
        self.active_profile = name
        self.secure.save_last_profile(name)
        self._build()
        _log.info("Profile loaded: %s", name, extra={"context": log_context(path=path)})
        return True

    def load_theme(self) -> bool:
        path = self._raw["ui"]["themeFile"]
        if not path:
            return False
        path = normalize_path(path)
        doc = self._load_document(path, "theme")
        if doc is None:
            return False
        theme = copy.deepcopy(self._theme)
        warnings: list[str] = []
        _overlay(theme, doc, "", warnings, path)
        self._report(warnings)
        self._theme = theme
        self._build()
        return True

    def load_keymap(self) -> bool:
        path = self._raw["input"]["keyboard"]["keymapFile"]
        if not path:
            return False
        path = normalize_path(path)
        doc = self._load_document(path, "keymap")
        if doc is None:
            return False
        warnings: list[str] = []
        self._keymap = _parse_keymap(doc, path, warnings)
        self._report(warnings)
        self._build()
        _log.info(
            "Loaded keymap '%s': %d keys, %d modifiers",
            self._keymap["name"], len(self._keymap["keys"]), len(self._keymap["modifiers"]),
        )
        return True

    def list_profiles(self) -> list[str]:
        return [
            n[: -len(PROFILE_EXT)]
            for n in self.source.list_dir(self.profiles_dir, PROFILE_EXT)
        ]

    def save_wifi(self, ssid: str, password: str) -> bool:
        """Store credentials securely; they take effect immediately."""
        ok = self.secure.save_wifi(ssid, password)
        self._secure_wifi = (ssid, password) if ssid else None
        if not ssid:
            self._raw["wifi"]["ssid"] = ""
            self._raw["wifi"]["password"] = password
        self._build()
        return ok

    def last_profile(self) -> str:
        return self.secure.last_profile()


# ─── Presentation / seeding ───────────────────────────────────────────────

def format_config(config: ResolvedConfig) -> str:
    """Human-readable summary, credentials masked."""
    gw = config.gateway
    lines = [
        "=== Current Configuration ===",
        f"Wi-Fi SSID: {config.wifi.ssid}",
        f"Wi-Fi Pass: {'****' if config.wifi.password else '(empty)'}",
        "",
        f"Gateway: {gw.url}",
        f"  Connect timeout: {gw.connect_timeout_ms}ms",
        f"  Reconnect delay: {gw.reconnect_delay_ms}-{gw.max_reconnect_delay_ms}ms",
        f"  Ping interval: {gw.ping_interval_ms}ms",
    ]
    if gw.sni:
        lines.append(f"  SNI: {gw.sni}")
    lines += [
        "",
        f"Terminal: {config.terminal.cols}x{config.terminal.rows}",
        f"  Font: {config.terminal.font_name} @ {config.terminal.font_size}",
        f"  Scrollback: {config.terminal.scrollback_lines} lines",
        "",
        f"Haptics: {'ON' if config.haptics.enabled else 'OFF'} "
        f"(keypress={config.haptics.keypress_ms}ms, bell={config.haptics.bell_ms}ms)",
        "",
        f"Theme: {config.theme.name}",
        f"  Cursor: {config.theme.cursor.style}, blink={'yes' if config.theme.cursor.blink else 'no'}",
        f"Keymap: {config.keymap.name or '(none)'} "
        f"({len(config.keymap.keys)} keys, {len(config.keymap.modifiers)} modifiers)",
        "==============================",
    ]
    return "\n".join(lines)


def _to_document(obj: Any) -> Any:
    """Typed defaults -> plain YAML-friendly values (RGB tuples become r/g/b)."""
    if isinstance(obj, dict):
        return {k: _to_document(v) for k, v in obj.items()}
    if _is_rgb(obj):
        return {"r": obj[0], "g": obj[1], "b": obj[2]}
    return obj


def _us_qwerty() -> dict[str, Any]:
    keys: list[dict[str, Any]] = []
    for ch in "abcdefghijklmnopqrstuvwxyz":
        keys.append({"id": ch.upper(), "normal": ch, "shift": ch.upper()})
    for digit, shifted in zip("1234567890", "!@#$%^&*()"):
        keys.append({"id": digit, "normal": digit, "shift": shifted})
    for key_id, normal, shifted in (
        ("COMMA", ",", "<"), ("PERIOD", ".", ">"), ("SLASH", "/", "?"),
        ("MINUS", "-", "_"), ("EQUALS", "=", "+"), ("SPACE", " ", " "),
    ):
        keys.append({"id": key_id, "normal": normal, "shift": shifted})
    for key_id, code in (("ENTER", 13), ("BACKSPACE", 8), ("TAB", 9), ("ESC", 27)):
        keys.append({"id": key_id, "code": code})
    return {
        "name": "us_qwerty",
        "keys": keys,
        "modifiers": [
            {"id": "SHIFT", "mode": "oneshot"},
            {"id": "CTRL", "mode": "oneshot"},
            {"id": "ALT", "mode": "sticky"},
        ],
    }


SAMPLE_PROFILES: dict[str, dict[str, Any]] = {
    "lan": {"host": "192.168.1.100", "port": 7681, "path": "/ws", "useSsl": False, "sni": ""},
    "tailscale": {"host": "gateway.tailnet.example", "port": 443, "path": "/ws",
                  "useSsl": True, "sni": "gateway.tailnet.example"},
}


def seed_documents(source: DocumentSource) -> list[str]:
    """Write the default documents into an empty device filesystem.

    Existing files are never overwritten. Returns the paths written.
    """
    written = []
    plan = [
        (MAIN_DOCUMENT, "config", _to_document(DEFAULT_CONFIG)),
        (DEFAULT_THEME_FILE, "theme", _to_document(DEFAULT_THEME)),
        (DEFAULT_KEYMAP_FILE, "keymap", _us_qwerty()),
    ]
    for name, body in SAMPLE_PROFILES.items():
        plan.append((f"{PROFILES_DIR}/{name}{PROFILE_EXT}", "profile", body))
    for path, kind, body in plan:
        if source.write_document(path, kind, body):
            written.append(path)
    return written
