from __future__ import annotations

"""Last-writer-wins reconciliation of replica state with deletion tombstones.

A replica is a mapping of records keyed by id plus a parallel mapping of
deletion timestamps (tombstones). `merge` folds a remote replica into the
local one:

- tombstones: per key, the later deletion wins
- records: the strictly newer write wins; ties keep the local copy
- a tombstone newer than the surviving write drops the key
- a write newer than the tombstone clears it (resurrection)
- tombstones older than the retention window are pruned

The module is pure. Loading, persisting and pushing belong to the caller
(see `studysat.sync.controller`).
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Generic, Iterable, Mapping, Optional, TypeVar

T = TypeVar("T")

RETENTION = timedelta(days=30)

# Stand-in timestamp for payloads that were never stamped.
EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Record(Generic[T]):
    key: str
    payload: T
    timestamp: datetime


@dataclass(frozen=True)
class ReplicaState(Generic[T]):
    """One device's copy of a domain: records plus deletion markers.

    Instances are treated as immutable; the helpers below return new states.
    """

    records: Dict[str, Record[T]] = field(default_factory=dict)
    tombstones: Dict[str, datetime] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.records and not self.tombstones

    def get(self, key: str) -> Optional[Record[T]]:
        """Return the record for `key` unless it is missing or logically deleted."""
        rec = self.records.get(key)
        if rec is None:
            return None
        deleted_at = self.tombstones.get(key)
        if deleted_at is not None and deleted_at > rec.timestamp:
            return None
        return rec

    def live_records(self) -> Dict[str, Record[T]]:
        return {k: r for k, r in self.records.items() if self.get(k) is not None}

    def with_record(self, record: Record[T]) -> "ReplicaState[T]":
        """Upsert a locally written record, clearing an older tombstone."""
        records = dict(self.records)
        records[record.key] = record
        tombstones = dict(self.tombstones)
        deleted_at = tombstones.get(record.key)
        if deleted_at is not None and record.timestamp > deleted_at:
            del tombstones[record.key]
        return ReplicaState(records, tombstones)

    def without(self, keys: Iterable[str], deleted_at: datetime) -> "ReplicaState[T]":
        """Remove `keys` and record their deletion at `deleted_at`."""
        records = dict(self.records)
        tombstones = dict(self.tombstones)
        for key in keys:
            records.pop(key, None)
            current = tombstones.get(key)
            if current is None or deleted_at > current:
                tombstones[key] = deleted_at
        return ReplicaState(records, tombstones)


@dataclass(frozen=True)
class MergeResult(Generic[T]):
    """Outcome of one merge.

    - changed: merged state differs from the local input (persist it)
    - needs_push: the remote copy is behind the merged state (push it)
    - first_sync: remote was empty; nothing was merged
    """

    state: ReplicaState[T]
    changed: bool
    needs_push: bool
    first_sync: bool = False


def merge_tombstones(local: Mapping[str, datetime], remote: Mapping[str, datetime]) -> Dict[str, datetime]:
    merged = dict(local)
    for key, deleted_at in remote.items():
        current = merged.get(key)
        if current is None or deleted_at > current:
            merged[key] = deleted_at
    return merged


def prune_tombstones(
    tombstones: Mapping[str, datetime],
    now: datetime,
    retention: timedelta = RETENTION,
) -> Dict[str, datetime]:
    cutoff = now - retention
    return {k: t for k, t in tombstones.items() if t > cutoff}


def _newer(local: Optional[Record[T]], remote: Optional[Record[T]]) -> Record[T]:
    if local is None:
        assert remote is not None
        return remote
    if remote is None:
        return local
    return remote if remote.timestamp > local.timestamp else local


def _remote_behind(state: ReplicaState[T], remote: ReplicaState[T]) -> bool:
    # Equal timestamps count as up to date even when payloads differ; each
    # side keeps its own copy of a tie.
    if state.tombstones != remote.tombstones or state.records.keys() != remote.records.keys():
        return True
    return any(r.timestamp > remote.records[k].timestamp for k, r in state.records.items())


def merge(
    local: ReplicaState[T],
    remote: ReplicaState[T],
    *,
    now: Optional[datetime] = None,
    retention: timedelta = RETENTION,
) -> MergeResult[T]:
    """Merge `remote` into `local` and report what the caller must do next."""
    if remote.is_empty():
        # Absence on the remote side is not evidence of deletion.
        return MergeResult(local, changed=False, needs_push=not local.is_empty(), first_sync=True)

    now = now or utcnow()
    tombstones = merge_tombstones(local.tombstones, remote.tombstones)
    records: Dict[str, Record[T]] = {}
    for key in set(local.records) | set(remote.records):
        kept = _newer(local.records.get(key), remote.records.get(key))
        deleted_at = tombstones.get(key)
        if deleted_at is not None:
            if deleted_at > kept.timestamp:
                continue
            if deleted_at < kept.timestamp:
                del tombstones[key]
        records[key] = kept
    tombstones = prune_tombstones(tombstones, now, retention)

    changed = records != local.records or tombstones != local.tombstones
    state = ReplicaState(records, tombstones)
    return MergeResult(state, changed=changed, needs_push=_remote_behind(state, remote))
