"""Device settings: the versioned, checksummed, fixed-size record.

The record is a packed little-endian struct (``RECORD_FORMAT``).  Strings
are NUL-terminated inside fixed-width fields, so the longest storable value
is one byte shorter than the field.  The trailing ``uint32`` is the
checksum over every preceding byte:

    checksum = (sum(byte[i] * (i + 1)) mod 2**32) ^ 0xDEADBEEF

``decode_settings`` is the pure validation gate: size, then version, then
checksum, each with its own exception.  ``SettingsStore`` wraps it with the
reset-and-resave recovery path and owns the one working copy the menu edits.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, NamedTuple, Optional

from .logging import get_logger, log_context
from .storage import BlobStore, BlobStoreError

_log = get_logger("tlterm.settings")

SETTINGS_VERSION = 12
SETTINGS_KEY = "settings"
SETTINGS_NAMESPACE = "tlterm"
MAX_WIFI_NETWORKS = 5
CHECKSUM_XOR = 0xDEADBEEF

STATUS_OK = "ok"
STATUS_SIZE = "size_mismatch"
STATUS_VERSION = "version_mismatch"
STATUS_CHECKSUM = "checksum_mismatch"

# Field widths (bytes, including the terminating NUL)
SSID_LEN = 32
WIFI_PASS_LEN = 64
HOST_LEN = 64
PATH_LEN = 32
USER_LEN = 32
SERVER_PASS_LEN = 32

_NETWORK_FMT = f"{SSID_LEN}s{WIFI_PASS_LEN}s?"
_SERVER_FMT = f"{HOST_LEN}sH{PATH_LEN}s{USER_LEN}s{SERVER_PASS_LEN}s??"

RECORD_FORMAT = (
    "<BBB"                              # version, brightness, theme
    + _NETWORK_FMT * MAX_WIFI_NETWORKS
    + "B?"                              # wifiNetworkCount, wifiAutoConnect
    + _SERVER_FMT * 2                   # local, remote
    + "??B?B"                           # preferRemote, sound on/volume, haptic on/intensity
    + "I"                               # checksum
)
RECORD_SIZE = struct.calcsize(RECORD_FORMAT)


# ─── Exceptions ───────────────────────────────────────────────────────────

class SettingsError(Exception):
    """A stored settings blob failed validation."""

    status = ""


class SettingsSizeError(SettingsError):
    status = STATUS_SIZE


class SettingsVersionError(SettingsError):
    status = STATUS_VERSION


class SettingsChecksumError(SettingsError):
    status = STATUS_CHECKSUM


# ─── Themes ───────────────────────────────────────────────────────────────

class Theme(enum.IntEnum):
    GREEN = 0
    AMBER = 1
    HIGH_CONTRAST = 2
    LIGHT = 3
    CYAN = 4

    @classmethod
    def coerce(cls, value: int) -> "Theme":
        """Stored theme byte -> Theme; anything out of range is GREEN."""
        try:
            return cls(value)
        except ValueError:
            return cls.GREEN


class Palette(NamedTuple):
    background: int
    foreground: int
    accent: int
    status_bar: int
    name: str


THEME_PALETTES: dict[Theme, Palette] = {
    Theme.GREEN: Palette(0x000000, 0x00FF00, 0x00AA00, 0x222222, "Green Terminal"),
    Theme.AMBER: Palette(0x000000, 0xFFBF00, 0xCC9900, 0x1A1A00, "Amber Retro"),
    Theme.HIGH_CONTRAST: Palette(0x000000, 0xFFFFFF, 0xAAAAAA, 0x333333, "High Contrast"),
    Theme.LIGHT: Palette(0xFFFFFF, 0x000000, 0x666666, 0xEEEEEE, "Light Mode"),
    Theme.CYAN: Palette(0x000000, 0x00FFFF, 0x00AAAA, 0x002222, "Cyan Terminal"),
}


def get_palette(theme: int) -> Palette:
    return THEME_PALETTES[Theme.coerce(theme)]


# ─── Value types ──────────────────────────────────────────────────────────

@dataclass
class WifiNetwork:
    ssid: str = ""
    password: str = ""
    enabled: bool = True


@dataclass
class ServerConfig:
    host: str = ""
    port: int = 22
    path: str = ""
    username: str = ""
    password: str = ""
    use_ssl: bool = False
    enabled: bool = True


@dataclass
class DisplaySettings:
    brightness: int = 200
    theme: Theme = Theme.GREEN


@dataclass
class SoundSettings:
    enabled: bool = True
    volume: int = 50


@dataclass
class HapticSettings:
    enabled: bool = True
    intensity: int = 80


@dataclass
class DeviceSettings:
    version: int = SETTINGS_VERSION
    display: DisplaySettings = field(default_factory=DisplaySettings)
    wifi_networks: list[WifiNetwork] = field(default_factory=list)
    wifi_auto_connect: bool = True
    local_server: ServerConfig = field(default_factory=ServerConfig)
    remote_server: ServerConfig = field(default_factory=ServerConfig)
    prefer_remote: bool = False
    sound: SoundSettings = field(default_factory=SoundSettings)
    haptic: HapticSettings = field(default_factory=HapticSettings)
    checksum: int = 0

    @property
    def wifi_network_count(self) -> int:
        return len(self.wifi_networks)

    def add_network(self, ssid: str, password: str, enabled: bool = True) -> bool:
        """Append a network at the next free slot. False when full or ssid empty."""
        if not ssid or len(self.wifi_networks) >= MAX_WIFI_NETWORKS:
            return False
        self.wifi_networks.append(WifiNetwork(
            ssid=fit_field(ssid, SSID_LEN),
            password=fit_field(password, WIFI_PASS_LEN),
            enabled=enabled,
        ))
        return True

    def delete_network(self, index: int) -> bool:
        """Remove slot *index*; later entries shift down by one."""
        if not 0 <= index < len(self.wifi_networks):
            return False
        del self.wifi_networks[index]
        return True

    def copy_from(self, other: "DeviceSettings") -> None:
        """Replace every field in place so existing references stay valid."""
        for f in fields(self):
            setattr(self, f.name, getattr(other, f.name))


def factory_defaults() -> DeviceSettings:
    """Hard-coded factory settings (the seed values are deployment data)."""
    return DeviceSettings(
        display=DisplaySettings(brightness=200, theme=Theme.GREEN),
        wifi_networks=[WifiNetwork(ssid="HomeNetwork", password="changeme", enabled=True)],
        wifi_auto_connect=True,
        local_server=ServerConfig(
            host="192.168.1.100", port=22, username="user", password="", enabled=True,
        ),
        remote_server=ServerConfig(
            host="100.64.0.1", port=22, username="user", password="", enabled=True,
        ),
        prefer_remote=False,
        sound=SoundSettings(enabled=True, volume=50),
        haptic=HapticSettings(enabled=True, intensity=80),
    )


# ─── Codec ────────────────────────────────────────────────────────────────

def compute_checksum(body: bytes) -> int:
    """Weighted byte sum over *body* (the record minus its checksum field)."""
    total = 0
    for i, b in enumerate(body):
        total = (total + b * (i + 1)) & 0xFFFFFFFF
    return total ^ CHECKSUM_XOR


def stamp(record: bytes) -> bytes:
    """Return *record* with its trailing checksum field recomputed."""
    body = bytes(record[:-4])
    return body + struct.pack("<I", compute_checksum(body))


def verify(record: bytes) -> bool:
    if len(record) != RECORD_SIZE:
        return False
    (stored,) = struct.unpack("<I", record[-4:])
    return stored == compute_checksum(record[:-4])


def _enc(text: str, size: int) -> bytes:
    # Keep room for the NUL and never split a UTF-8 sequence.
    raw = text.encode("utf-8")[: size - 1]
    return raw.decode("utf-8", errors="ignore").encode("utf-8")


def fit_field(text: str, size: int) -> str:
    """*text* as it will read back from a field of *size* bytes."""
    return _enc(text, size).decode("utf-8")


def _dec(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def _clamp(value: int, hi: int) -> int:
    return max(0, min(hi, int(value)))


def _server_values(server: ServerConfig) -> list[Any]:
    return [
        _enc(server.host, HOST_LEN), _clamp(server.port, 0xFFFF),
        _enc(server.path, PATH_LEN), _enc(server.username, USER_LEN),
        _enc(server.password, SERVER_PASS_LEN), bool(server.use_ssl), bool(server.enabled),
    ]


def encode_settings(settings: DeviceSettings) -> bytes:
    """Serialize *settings* to the fixed-size record and stamp its checksum.

    The computed checksum is also written back to ``settings.checksum``.
    """
    values: list[Any] = [
        _clamp(settings.version, 0xFF),
        _clamp(settings.display.brightness, 0xFF),
        int(Theme.coerce(settings.display.theme)),
    ]
    networks = settings.wifi_networks[:MAX_WIFI_NETWORKS]
    for i in range(MAX_WIFI_NETWORKS):
        if i < len(networks):
            net = networks[i]
            values += [_enc(net.ssid, SSID_LEN), _enc(net.password, WIFI_PASS_LEN), bool(net.enabled)]
        else:
            values += [b"", b"", False]
    values += [len(networks), bool(settings.wifi_auto_connect)]
    values += _server_values(settings.local_server)
    values += _server_values(settings.remote_server)
    values += [
        bool(settings.prefer_remote),
        bool(settings.sound.enabled), _clamp(settings.sound.volume, 0xFF),
        bool(settings.haptic.enabled), _clamp(settings.haptic.intensity, 0xFF),
        0,
    ]
    record = stamp(struct.pack(RECORD_FORMAT, *values))
    (settings.checksum,) = struct.unpack("<I", record[-4:])
    return record


def _server_from(values: tuple[Any, ...]) -> ServerConfig:
    host, port, path, user, password, use_ssl, enabled = values
    return ServerConfig(
        host=_dec(host), port=port, path=_dec(path), username=_dec(user),
        password=_dec(password), use_ssl=use_ssl, enabled=enabled,
    )


def decode_settings(blob: Optional[bytes]) -> DeviceSettings:
    """Validate and deserialize a stored record.

    Raises, in gate order, ``SettingsSizeError``, ``SettingsVersionError``
    or ``SettingsChecksumError``.  A missing blob counts as a size mismatch.
    """
    if blob is None or len(blob) != RECORD_SIZE:
        got = "missing" if blob is None else f"{len(blob)} bytes"
        raise SettingsSizeError(f"expected {RECORD_SIZE} bytes, got {got}")
    if blob[0] != SETTINGS_VERSION:
        raise SettingsVersionError(f"stored version {blob[0]}, current {SETTINGS_VERSION}")
    if not verify(blob):
        raise SettingsChecksumError("stored checksum does not match record contents")
    return _unpack(blob)


def _unpack(blob: bytes) -> DeviceSettings:
    v = struct.unpack(RECORD_FORMAT, blob)
    pos = 3
    slots = []
    for _ in range(MAX_WIFI_NETWORKS):
        ssid, password, enabled = v[pos:pos + 3]
        slots.append(WifiNetwork(ssid=_dec(ssid), password=_dec(password), enabled=enabled))
        pos += 3
    count, auto_connect = v[pos:pos + 2]
    pos += 2
    local = _server_from(v[pos:pos + 7])
    remote = _server_from(v[pos + 7:pos + 14])
    pos += 14
    prefer_remote, sound_on, volume, haptic_on, intensity, checksum = v[pos:pos + 6]
    return DeviceSettings(
        version=v[0],
        display=DisplaySettings(brightness=v[1], theme=Theme.coerce(v[2])),
        wifi_networks=slots[:min(count, MAX_WIFI_NETWORKS)],
        wifi_auto_connect=auto_connect,
        local_server=local,
        remote_server=remote,
        prefer_remote=prefer_remote,
        sound=SoundSettings(enabled=sound_on, volume=volume),
        haptic=HapticSettings(enabled=haptic_on, intensity=intensity),
        checksum=checksum,
    )


def settings_to_dict(settings: DeviceSettings, *, mask_secrets: bool = True) -> dict[str, Any]:
    """Plain-dict view for dumping (theme by name, passwords masked)."""
    data = asdict(settings)
    data["display"]["theme"] = get_palette(settings.display.theme).name
    data["wifi_network_count"] = settings.wifi_network_count
    if mask_secrets:
        for net in data["wifi_networks"]:
            net["password"] = "****" if net["password"] else ""
        for key in ("local_server", "remote_server"):
            pw = data[key]["password"]
            data[key]["password"] = "****" if pw else ""
    return data


# ─── Store ────────────────────────────────────────────────────────────────

class SettingsStore:
    """Owns the persisted record and the single in-memory working copy.

    ``settings`` keeps its identity for the store's lifetime: ``load`` and
    ``reset`` copy new values into it, so holders of the reference (the
    menu engine, the render sink) always see the current state.
    """

    def __init__(
        self,
        blobs: BlobStore,
        defaults: Callable[[], DeviceSettings] = factory_defaults,
        key: str = SETTINGS_KEY,
    ):
        self.blobs = blobs
        self.defaults = defaults
        self.key = key
        self.settings = defaults()
        self.last_load_status = ""

    def load(self) -> DeviceSettings:
        try:
            blob = self.blobs.read(self.key)
        except BlobStoreError as e:
            _log.warning("Settings blob unreadable: %s", e,
                         extra={"context": log_context(key=self.key)})
            blob = None
        try:
            loaded = decode_settings(blob)
        except SettingsError as e:
            self.last_load_status = e.status
            _log.warning("Settings invalid (%s), resetting to defaults", e,
                         extra={"context": log_context(key=self.key, reason=e.status)})
            self.reset()
            self.save()
            return self.settings
        self.settings.copy_from(loaded)
        self.last_load_status = STATUS_OK
        _log.info("Settings loaded", extra={"context": log_context(key=self.key)})
        return self.settings

    def save(self, settings: Optional[DeviceSettings] = None) -> bool:
        """Stamp and write the whole record as one blob write.

        The working copy is replaced by the record as it will read back
        (truncated strings, clamped numbers, fresh nested objects), so it
        never differs from what the next ``load`` returns.
        """
        record = encode_settings(self.settings if settings is None else settings)
        self.settings.copy_from(_unpack(record))
        ok = self.blobs.write(self.key, record)
        if ok:
            _log.debug("Settings saved", extra={"context": log_context(key=self.key)})
        return ok

    def reset(self) -> DeviceSettings:
        """Reinitialize to factory defaults in place (does not save)."""
        self.settings.copy_from(self.defaults())
        self.settings.version = SETTINGS_VERSION
        encode_settings(self.settings)
        _log.info("Settings reset to factory defaults")
        return self.settings
