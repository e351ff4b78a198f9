from __future__ import annotations

"""Local key-value persistence and the per-domain replica adapter.

`KeyValueStore` is the desktop stand-in for the platform preferences store:
a flat mapping of string keys to UTF-8 JSON blobs. `ReplicaStore` keeps one
domain's records and tombstones in it under that domain's fixed keys.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Generic, Optional, Protocol, TypeVar

from ..sync.reconciler import ReplicaState
from .schema import DecodeError

if TYPE_CHECKING:
    from ..sync.domains import Domain

logger = logging.getLogger(__name__)

P = TypeVar("P")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """All keys in one JSON document; every write rewrites the file atomically."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable local store %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring local store %s: not a JSON object", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            value = self._data.get(key)
        return value.encode("utf-8") if value is not None else None

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = value.decode("utf-8")
            self._write()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._write()


# --- preference flags ---

def get_flag(store: KeyValueStore, key: str, default: bool = False) -> bool:
    raw = store.get(key)
    if raw is None:
        return default
    return raw.strip().lower() == b"true"


def set_flag(store: KeyValueStore, key: str, value: bool) -> None:
    try:
        store.set(key, b"true" if value else b"false")
    except OSError as exc:
        logger.error("Failed to persist preference %s: %s", key, exc)


def has_flag(store: KeyValueStore, key: str) -> bool:
    return store.get(key) is not None


class ReplicaStore(Generic[P]):
    """Load/save one domain's `ReplicaState` in a local key-value store."""

    def __init__(self, domain: "Domain[P]", kv: KeyValueStore) -> None:
        self.domain = domain
        self.kv = kv

    def load(self) -> ReplicaState[P]:
        try:
            records = self.domain.decode_records(self.kv.get(self.domain.records_key))
        except DecodeError as exc:
            logger.warning("Discarding local %s records: %s", self.domain.name, exc)
            records = {}
        try:
            tombstones = self.domain.decode_tombstones(self.kv.get(self.domain.tombstones_key))
        except DecodeError as exc:
            logger.warning("Discarding local %s tombstones: %s", self.domain.name, exc)
            tombstones = {}
        return ReplicaState(records, tombstones)

    def save(self, state: ReplicaState[P]) -> bool:
        try:
            self.kv.set(self.domain.records_key, self.domain.encode_records(state.records))
            self.kv.set(self.domain.tombstones_key, self.domain.encode_tombstones(state.tombstones))
        except OSError as exc:
            logger.error("Failed to persist local %s state: %s", self.domain.name, exc)
            return False
        return True
