"""The device context: one object owning every collaborator.

Built once at startup and passed by reference, instead of process-wide
config and settings globals.  Tests build it over ``tmp_path`` or fully
in memory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .config import MAIN_DOCUMENT, SECURE_NAMESPACE, ConfigResolver, ResolvedConfig, SecureStore
from .documents import DocumentSource
from .logging import get_logger
from .menu import MenuEngine
from .settings import SETTINGS_NAMESPACE, DeviceSettings, SettingsStore
from .storage import BlobStore, FileBlobStore, MemoryBlobStore
from .wifi_scan import WifiScanner

_log = get_logger("tlterm.context")

DATA_DIR = os.path.join(
    os.environ.get("XDG_DATA_HOME", os.path.expanduser("~/.local/share")),
    "tlterm",
)


def default_fs_root() -> str:
    return os.environ.get("TLTERM_FS_ROOT", os.path.join(DATA_DIR, "fs"))


def default_nvs_root() -> str:
    return os.environ.get("TLTERM_NVS_ROOT", os.path.join(DATA_DIR, "nvs"))


@dataclass
class DeviceContext:
    source: DocumentSource
    resolver: ConfigResolver
    store: SettingsStore
    menu: MenuEngine

    @classmethod
    def create(
        cls,
        fs_root: Optional[str] = None,
        nvs_root: Optional[str] = None,
        *,
        config_path: str = MAIN_DOCUMENT,
        ephemeral: bool = False,
        scanner: Optional[WifiScanner] = None,
    ) -> "DeviceContext":
        """Wire the collaborators. Nothing is read until ``boot``."""
        source = DocumentSource(fs_root or default_fs_root())
        secure_blobs: BlobStore
        settings_blobs: BlobStore
        if ephemeral:
            secure_blobs = MemoryBlobStore(SECURE_NAMESPACE)
            settings_blobs = MemoryBlobStore(SETTINGS_NAMESPACE)
        else:
            root = nvs_root or default_nvs_root()
            secure_blobs = FileBlobStore(root, SECURE_NAMESPACE)
            settings_blobs = FileBlobStore(root, SETTINGS_NAMESPACE)
        resolver = ConfigResolver(source, SecureStore(secure_blobs), main_path=config_path)
        store = SettingsStore(settings_blobs)
        menu = MenuEngine(store, scanner)
        return cls(source=source, resolver=resolver, store=store, menu=menu)

    @property
    def config(self) -> ResolvedConfig:
        return self.resolver.config

    @property
    def settings(self) -> DeviceSettings:
        return self.store.settings

    def boot(self, profile: str = "", use_last_profile: bool = False) -> "DeviceContext":
        """Resolve configuration and load settings. Never raises."""
        self.resolver.resolve()
        name = profile or (self.resolver.last_profile() if use_last_profile else "")
        if name and not self.resolver.load_profile(name):
            _log.warning("Profile '%s' could not be loaded, using document gateway", name)
        self.store.load()
        _log.info(
            "Boot complete: gateway %s, settings %s",
            self.config.gateway.url, self.store.last_load_status,
        )
        return self
