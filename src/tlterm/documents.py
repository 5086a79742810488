"""Structured documents on the device filesystem.

The device filesystem is a plain directory (``fs_root``) addressed with
root-relative paths such as ``/config/tlterm_config.yml``.  Documents are
YAML with a single root key naming their kind (``config``, ``profile``,
``theme``, ``keymap``).

Documents are parsed with ``yaml.BaseLoader``: every scalar stays text,
so ``"true"``/``"True"``/``"8080"`` reach the resolver exactly as written
and typing rules live in one place (``tlterm.config``).  An empty value
(``ssid:``) is the empty string, not "absent".
"""

from __future__ import annotations

import os
import posixpath
from typing import Any, Optional

import yaml

from .logging import get_logger, log_context

_log = get_logger("tlterm.documents")

DOCUMENT_KINDS = ("config", "profile", "theme", "keymap")


class DocumentError(Exception):
    """A document exists but could not be parsed into the expected shape."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


def normalize_path(path: str) -> str:
    """Make *path* filesystem-root-relative: ``themes/x.yml`` -> ``/themes/x.yml``."""
    path = path.strip()
    if not path.startswith("/"):
        path = "/" + path
    return posixpath.normpath(path)

    """The device filesystem rooted at ``fs_root``: parse, list and seed documents."""
class DocumentSource:
    """Read-only view of the device filesystem rooted at ``fs_root``."""

    def __init__(self, fs_root: str):
        self.fs_root = os.path.abspath(fs_root)

    def _local(self, path: str) -> str:
        rel = normalize_path(path).lstrip("/")
        local = os.path.abspath(os.path.join(self.fs_root, rel))
        # normpath already collapsed "..", this keeps symlink-free paths inside the root
        if local != self.fs_root and not local.startswith(self.fs_root + os.sep):
            raise DocumentError(path, "path escapes filesystem root")
        return local

    def exists(self, path: str) -> bool:
        try:
            return os.path.isfile(self._local(path))
        except DocumentError:
            return False

    def read_text(self, path: str) -> Optional[str]:
        """Return the document text, or ``None`` when absent or empty."""
        try:
            with open(self._local(path), "r", encoding="utf-8") as f:
                text = f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentError(path, f"unreadable: {e}") from e
        return text if text.strip() else None

    def load(self, path: str, kind: str) -> Optional[dict[str, Any]]:
        """Parse the document at *path* and return its *kind* root node.

        Returns ``None`` when the document is absent ("fast absent").
        Raises ``DocumentError`` on syntax errors or a wrong root node.
        """
        if kind not in DOCUMENT_KINDS:
            raise ValueError(f"unknown document kind {kind!r}")
        text = self.read_text(path)
        if text is None:
            return None
        try:
            data = yaml.load(text, Loader=yaml.BaseLoader)
        except yaml.YAMLError as e:
            raise DocumentError(path, f"syntax error: {e}") from e
        if not isinstance(data, dict) or kind not in data:
            raise DocumentError(path, f"missing root node '{kind}'")
        root = data[kind]
        if root == "":
            root = {}
        if not isinstance(root, dict):
            raise DocumentError(path, f"root node '{kind}' must be a mapping")
        _log.debug("Parsed %s document", kind, extra={"context": log_context(path=path)})
        return root

    def list_dir(self, path: str, suffix: str = "") -> list[str]:
        """File names in directory *path* ending in *suffix* (sorted)."""
        try:
            names = os.listdir(self._local(path))
        except (FileNotFoundError, NotADirectoryError, DocumentError):
            return []
        local = self._local(path)
        return sorted(
            n for n in names
            if n.endswith(suffix) and os.path.isfile(os.path.join(local, n))
        )

    def write_document(self, path: str, kind: str, body: dict[str, Any], *, overwrite: bool = False) -> bool:
        """Write a ``{kind: body}`` document. Returns False if it already exists."""
        local = self._local(path)
        if os.path.exists(local) and not overwrite:
            return False
        os.makedirs(os.path.dirname(local), exist_ok=True)
        with open(local, "w", encoding="utf-8") as f:
            yaml.safe_dump({kind: body}, f, default_flow_style=False, sort_keys=False)
        return True
