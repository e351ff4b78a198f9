from __future__ import annotations

"""Remote key-value stores shared by a user's devices.

The contract mirrors a cloud key-value service: reads may be stale, writes
propagate eventually, and `flush` only reports whether a propagation attempt
went through. Change notifications carry the keys another device wrote and
may arrive late or more than once.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[List[str]], None]


class RemoteStore(Protocol):
    def is_available(self) -> bool: ...

    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...

    def flush(self) -> bool: ...

    def subscribe(self, handler: ChangeHandler) -> None: ...

    def unsubscribe(self, handler: ChangeHandler) -> None: ...


class _Notifier:
    def __init__(self) -> None:
        self._handlers: List[ChangeHandler] = []

    def subscribe(self, handler: ChangeHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def notify(self, keys: Iterable[str]) -> None:
        changed = sorted(set(keys))
        if not changed:
            return
        for h in list(self._handlers):
            try:
                h(changed)
            except Exception:
                logger.exception("Remote change handler failed for keys %s", changed)


class MemoryCloud:
    """In-process stand-in for the shared cloud store.

    Devices attach through `device()`; a write from one device view notifies
    every other view. `deliver=False` holds notifications until `deliver_pending()`
    to simulate late propagation.
    """

    def __init__(self, *, deliver: bool = True) -> None:
        self._data: Dict[str, bytes] = {}
        self._views: List["MemoryRemoteStore"] = []
        self._pending: List[tuple["MemoryRemoteStore", List[str]]] = []
        self._lock = threading.Lock()
        self.available = True
        self.deliver = deliver

    def device(self) -> "MemoryRemoteStore":
        view = MemoryRemoteStore(self)
        self._views.append(view)
        return view

    def read(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def write(self, origin: "MemoryRemoteStore", key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)
            targets = [v for v in self._views if v is not origin]
        for view in targets:
            if self.deliver:
                view.notify([key])
            else:
                self._pending.append((view, [key]))

    def deliver_pending(self) -> int:
        pending, self._pending = self._pending, []
        for view, keys in pending:
            view.notify(keys)
        return len(pending)


class MemoryRemoteStore:
    """One device's view of a `MemoryCloud`."""

    def __init__(self, cloud: MemoryCloud) -> None:
        self.cloud = cloud
        self._notifier = _Notifier()
        self.flush_result = True
        self.flush_calls = 0

    def is_available(self) -> bool:
        return self.cloud.available

    def get(self, key: str) -> Optional[bytes]:
        return self.cloud.read(key)

    def set(self, key: str, value: bytes) -> None:
        self.cloud.write(self, key, value)

    def flush(self) -> bool:
        self.flush_calls += 1
        return self.flush_result

    def subscribe(self, handler: ChangeHandler) -> None:
        self._notifier.subscribe(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        self._notifier.unsubscribe(handler)

    def notify(self, keys: Iterable[str]) -> None:
        self._notifier.notify(keys)


class DirectoryRemoteStore:
    """Remote store backed by a directory that a file-sync service replicates.

    One file per key. The store is available only while the directory exists.
    `poll()` detects files rewritten by other devices (by modification time)
    and fires change notifications for them.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._notifier = _Notifier()
        self._seen: Dict[str, int] = {}
        self._dirty: List[Path] = []
        self._lock = threading.Lock()
        if self.root.is_dir():
            self._seen = self._scan()

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def _scan(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for p in self.root.glob("*.json"):
            try:
                out[p.stem] = p.stat().st_mtime_ns
            except OSError:
                continue
        return out

    def is_available(self) -> bool:
        return self.root.is_dir()

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Remote read of %s failed: %s", key, exc)
            return None

    def set(self, key: str, value: bytes) -> None:
        p = self._path(key)
        tmp = p.with_name(p.name + ".tmp")
        try:
            tmp.write_bytes(value)
            os.replace(tmp, p)
            with self._lock:
                self._seen[key] = p.stat().st_mtime_ns
                self._dirty.append(p)
        except OSError as exc:
            logger.warning("Remote write of %s failed: %s", key, exc)

    def flush(self) -> bool:
        with self._lock:
            dirty, self._dirty = self._dirty, []
        ok = True
        for p in dirty:
            try:
                fd = os.open(p, os.O_RDONLY)
            except OSError:
                ok = False
                continue
            try:
                os.fsync(fd)
            except OSError:
                ok = False
            finally:
                os.close(fd)
        return ok

    def poll(self) -> List[str]:
        """Notify subscribers of keys changed on disk since the last look."""
        if not self.is_available():
            return []
        current = self._scan()
        with self._lock:
            changed = [k for k, mtime in current.items() if self._seen.get(k) != mtime]
            self._seen = current
        self._notifier.notify(changed)
        return changed

    def subscribe(self, handler: ChangeHandler) -> None:
        self._notifier.subscribe(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        self._notifier.unsubscribe(handler)
