from __future__ import annotations

"""Sync Controller: owns one domain's replica and decides when to reconcile.

States:
- DISABLED: local-only; remote notifications are ignored
- ENABLING: initial pull-then-push in flight; notifications are ignored
- ENABLED: every trigger runs one reconciliation pass

A reconciliation pass is pull -> merge -> persist if changed -> push if the
remote copy is behind. Passes never interleave: a trigger that arrives while
one runs is folded into a single follow-up pass.

Every remote failure degrades to local-only operation. Losing availability
drops the controller to DISABLED without raising; the user's preference is
kept so the next foreground or manual sync can re-enable.
"""

import logging
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Callable, Generic, List, Optional, TypeVar

from ..app.events import STATE_CHANGED, STATUS_CHANGED, EventBus
from ..app.explain import trace as xtrace
from ..storage.schema import DecodeError
from ..storage.store import KeyValueStore, ReplicaStore, get_flag, has_flag, set_flag
from .dispatch import Dispatcher, InlineDispatcher
from .reconciler import RETENTION, ReplicaState, merge, utcnow

if TYPE_CHECKING:
    from ..storage.remote import RemoteStore
    from .domains import Domain

logger = logging.getLogger(__name__)

P = TypeVar("P")


class SyncStatus(str, Enum):
    DISABLED = "disabled"
    ENABLING = "enabling"
    ENABLED = "enabled"


class SyncController(Generic[P]):
    def __init__(
        self,
        domain: "Domain[P]",
        local: ReplicaStore[P],
        remote: Optional["RemoteStore"],
        prefs: KeyValueStore,
        *,
        pref_key: str,
        pref_set_key: str,
        default_enabled: Callable[[], bool] = lambda: True,
        dispatcher: Optional[Dispatcher] = None,
        clock: Callable[[], datetime] = utcnow,
        retention: timedelta = RETENTION,
        events: Optional[EventBus] = None,
    ) -> None:
        self.domain = domain
        self.local = local
        self.remote = remote
        self.prefs = prefs
        self.pref_key = pref_key
        self.pref_set_key = pref_set_key
        self.default_enabled = default_enabled
        self.dispatcher = dispatcher or InlineDispatcher()
        self.clock = clock
        self.retention = retention
        self.events = events or EventBus()

        self.status = SyncStatus.DISABLED
        self._state: ReplicaState[P] = local.load()
        self._state_lock = threading.RLock()
        self._guard = threading.Lock()
        self._running = False
        self._pending = False
        self._subscribed = False

    # --- state ---

    @property
    def state(self) -> ReplicaState[P]:
        with self._state_lock:
            return self._state

    def update(self, fn: Callable[[ReplicaState[P]], ReplicaState[P]]) -> ReplicaState[P]:
        """Apply `fn` to the current state under the state lock and commit the result."""
        with self._state_lock:
            new_state = fn(self._state)
            self._state = new_state
            self.local.save(new_state)
        self.events.emit(STATE_CHANGED, self.domain.name)
        if self.status is SyncStatus.ENABLED:
            self.dispatcher.submit(self._run_pass)
        return new_state

    # --- preference and lifecycle ---

    @property
    def sync_enabled(self) -> bool:
        return get_flag(self.prefs, self.pref_key)

    def start(self) -> None:
        """Resolve the first-launch default and enable sync if the user wants it."""
        if not has_flag(self.prefs, self.pref_set_key):
            set_flag(self.prefs, self.pref_key, bool(self.default_enabled()))
            set_flag(self.prefs, self.pref_set_key, True)
        if self.sync_enabled:
            self.enable()

    def set_sync_enabled(self, flag: bool) -> bool:
        """Record the user's choice and act on it. Returns whether sync is on afterwards."""
        set_flag(self.prefs, self.pref_key, flag)
        set_flag(self.prefs, self.pref_set_key, True)
        if flag:
            return self.enable()
        self.disable()
        return False

    def enable(self) -> bool:
        """DISABLED -> ENABLING -> ENABLED. Returns False when the remote is unavailable."""
        if self.status is not SyncStatus.DISABLED:
            return True
        if not self._remote_available():
            logger.warning("Remote store not available - %s sync disabled", self.domain.name)
            xtrace("sync_unavailable", {"domain": self.domain.name})
            return False
        self._set_status(SyncStatus.ENABLING)
        self._subscribe()
        self.dispatcher.submit(self._initial_sync)
        return True

    def disable(self) -> None:
        self._unsubscribe()
        self._set_status(SyncStatus.DISABLED)

    # --- triggers ---

    def on_remote_changed(self, keys: List[str]) -> None:
        if self.status is not SyncStatus.ENABLED:
            return
        if not set(keys) & set(self.domain.keys):
            return
        self.dispatcher.submit(self._run_pass)

    def on_foreground(self) -> None:
        if self.status is SyncStatus.ENABLED:
            self.dispatcher.submit(self._run_pass)
        elif self.status is SyncStatus.DISABLED and self.sync_enabled:
            self.enable()

    def sync_now(self) -> bool:
        """Manual sync. No-op when the user has sync switched off."""
        if not self.sync_enabled:
            logger.info("%s sync is disabled", self.domain.name)
            return False
        if self.status is SyncStatus.DISABLED:
            return self.enable()
        if self.status is SyncStatus.ENABLED:
            self.dispatcher.submit(self._run_pass)
        return True

    # --- internals ---

    def _set_status(self, status: SyncStatus) -> None:
        if status is self.status:
            return
        self.status = status
        xtrace("sync_status", {"domain": self.domain.name, "status": status.value})
        self.events.emit(STATUS_CHANGED, status)

    def _subscribe(self) -> None:
        if self.remote is not None and not self._subscribed:
            self.remote.subscribe(self.on_remote_changed)
            self._subscribed = True

    def _unsubscribe(self) -> None:
        if self.remote is not None and self._subscribed:
            self.remote.unsubscribe(self.on_remote_changed)
            self._subscribed = False

    def _remote_available(self) -> bool:
        return self.remote is not None and self.remote.is_available()

    def _downgrade(self) -> None:
        if self.status is SyncStatus.DISABLED:
            return
        logger.warning("Remote store no longer available - disabling %s sync", self.domain.name)
        self.disable()

    def _initial_sync(self) -> None:
        if self.status is not SyncStatus.ENABLING:
            return
        # Pull before pushing so a stale or empty local copy cannot clobber the remote one.
        if self._run_pass(force_push=True):
            if self.status is SyncStatus.ENABLING:
                self._set_status(SyncStatus.ENABLED)

    def _run_pass(self, force_push: bool = False) -> bool:
        with self._guard:
            if self._running:
                self._pending = True
                return True
            self._running = True
        ok = True
        try:
            while True:
                ok = self._reconcile_once(force_push)
                force_push = False
                with self._guard:
                    if not self._pending or not ok:
                        break
                    self._pending = False
        finally:
            with self._guard:
                self._running = False
                self._pending = False
        return ok

    def _pull(self) -> Optional[ReplicaState[P]]:
        if not self._remote_available():
            return None
        assert self.remote is not None
        try:
            records_blob = self.remote.get(self.domain.records_key)
            tombstones_blob = self.remote.get(self.domain.tombstones_key)
        except OSError as exc:
            logger.warning("Remote read for %s failed: %s", self.domain.name, exc)
            return None
        try:
            records = self.domain.decode_records(records_blob)
        except DecodeError as exc:
            logger.warning("Treating remote %s records as empty: %s", self.domain.name, exc)
            records = {}
        try:
            tombstones = self.domain.decode_tombstones(tombstones_blob)
        except DecodeError as exc:
            logger.warning("Treating remote %s tombstones as empty: %s", self.domain.name, exc)
            tombstones = {}
        return ReplicaState(records, tombstones)

    def _reconcile_once(self, force_push: bool = False) -> bool:
        if self.status is SyncStatus.DISABLED:
            return False
        remote_state = self._pull()
        if remote_state is None:
            self._downgrade()
            return False
        with self._state_lock:
            result = merge(self._state, remote_state, now=self.clock(), retention=self.retention)
            if result.changed:
                self._state = result.state
                self.local.save(result.state)
        xtrace(
            "sync_pass",
            {
                "domain": self.domain.name,
                "changed": result.changed,
                "push": result.needs_push or force_push,
                "first_sync": result.first_sync,
                "records": len(result.state.records),
                "tombstones": len(result.state.tombstones),
            },
        )
        if result.changed:
            self.events.emit(STATE_CHANGED, self.domain.name)
        if result.needs_push or force_push:
            return self._push()
        return True

    def _push(self) -> bool:
        if not self._remote_available():
            self._downgrade()
            return False
        assert self.remote is not None
        state = self.state
        try:
            self.remote.set(self.domain.records_key, self.domain.encode_records(state.records))
            self.remote.set(self.domain.tombstones_key, self.domain.encode_tombstones(state.tombstones))
        except OSError as exc:
            # Retried on the next trigger
            logger.warning("Remote write for %s failed: %s", self.domain.name, exc)
            return True
        if self.remote.flush():
            logger.debug("%s sync pushed", self.domain.name)
        else:
            logger.warning("%s sync flush did not complete", self.domain.name)
        return True
