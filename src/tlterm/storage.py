"""Namespaced key -> bytes storage (the device's non-volatile store).

Two backends share one small interface:

* ``FileBlobStore`` keeps one file per key under ``<root>/<namespace>/``
  and replaces it atomically on every write.
* ``MemoryBlobStore`` keeps everything in a dict (simulator ``--ephemeral``
  mode and tests).

``read`` distinguishes *not found* (``None``) from *error*
(``BlobStoreError``).  ``write`` never raises: a failed write is logged
here, the only place that knows about it, and reported as ``False``.
"""

from __future__ import annotations

import os
import re
import tempfile
from typing import Optional

from .logging import get_logger, log_context

_log = get_logger("tlterm.storage")

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


class BlobStoreError(Exception):
    """A blob could not be read or the store is unusable."""


def _check_key(key: str) -> None:
    if not _KEY_RE.match(key):
        raise ValueError(f"invalid blob key {key!r}")


class BlobStore:
    """Interface for one namespace of the non-volatile store."""

    namespace: str = ""

    def read(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def write(self, key: str, data: bytes) -> bool:
        raise NotImplementedError

    def erase(self, key: str) -> bool:
        raise NotImplementedError

    def keys(self) -> list[str]:
        raise NotImplementedError

    def clear(self) -> bool:
        ok = True
        for key in self.keys():
            ok = self.erase(key) and ok
        return ok

    # ─── String helpers (secure scalar values) ────────────────────

    def read_str(self, key: str, default: str = "") -> str:
        """Read a UTF-8 scalar; missing or unreadable keys yield *default*."""
        try:
            data = self.read(key)
        except BlobStoreError as e:
            _log.warning("Blob read failed: %s", e,
                         extra={"context": log_context(key=key)})
            return default
        if data is None:
            return default
        return data.decode("utf-8", errors="replace")

    def write_str(self, key: str, value: str) -> bool:
        return self.write(key, value.encode("utf-8"))


class MemoryBlobStore(BlobStore):
    """Dict-backed store. ``writes`` counts successful writes per key."""

    def __init__(self, namespace: str = "default", initial: Optional[dict[str, bytes]] = None):
        self.namespace = namespace
        self._data: dict[str, bytes] = dict(initial or {})
        self.writes: dict[str, int] = {}
        self.fail_writes = False

    def read(self, key: str) -> Optional[bytes]:
        _check_key(key)
        return self._data.get(key)

    def write(self, key: str, data: bytes) -> bool:
        _check_key(key)
        if self.fail_writes:
            _log.warning("Blob write failed (simulated)",
                         extra={"context": log_context(key=key, namespace=self.namespace)})
            return False
        self._data[key] = bytes(data)
        self.writes[key] = self.writes.get(key, 0) + 1
        return True

    def erase(self, key: str) -> bool:
        _check_key(key)
        self._data.pop(key, None)
        return True

    def keys(self) -> list[str]:
        return sorted(self._data)


class FileBlobStore(BlobStore):
    """One file per key under ``<root>/<namespace>/``."""

    def __init__(self, root: str, namespace: str):
        _check_key(namespace)
        self.root = root
        self.namespace = namespace
        self.directory = os.path.join(root, namespace)

    def _path(self, key: str) -> str:
        _check_key(key)
        return os.path.join(self.directory, key)

    def read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BlobStoreError(f"cannot read {self.namespace}/{key}: {e}") from e

    def write(self, key: str, data: bytes) -> bool:
        """Write *data* as one atomic replace. Best effort, never raises."""
        path = self._path(key)
        tmp = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{key}.", dir=self.directory)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
            tmp = None
            return True
        except OSError as e:
            _log.warning("Blob write failed: %s", e,
                         extra={"context": log_context(key=key, namespace=self.namespace)})
            return False
        finally:
            if tmp is not None:
                try:
                    os.unlink(tmp)
                except OSError:
                    pass

    def erase(self, key: str) -> bool:
        try:
            os.unlink(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            _log.warning("Blob erase failed: %s", e,
                         extra={"context": log_context(key=key, namespace=self.namespace)})
            return False
        return True

    def keys(self) -> list[str]:
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        return sorted(n for n in names if not n.startswith(".") and _KEY_RE.match(n))
