from __future__ import annotations

import unittest
from datetime import timedelta

from studysat.sync.reconciler import (
    EPOCH,
    Record,
    ReplicaState,
    merge,
    merge_tombstones,
    prune_tombstones,
)

from sync_fixtures import at

NOW = at(86400)


def rec(key, payload, seconds):
    return Record(key=key, payload=payload, timestamp=at(seconds))


def state(records=(), tombstones=None):
    return ReplicaState({r.key: r for r in records}, {k: at(s) for k, s in (tombstones or {}).items()})


class TestMerge(unittest.TestCase):
    def test_newer_remote_write_wins(self):
        local = state([rec("a", "old", 1)])
        remote = state([rec("a", "new", 2)])
        result = merge(local, remote, now=NOW)
        self.assertEqual(result.state.records["a"].payload, "new")
        self.assertTrue(result.changed)
        self.assertFalse(result.needs_push)

    def test_newer_local_write_wins_and_is_pushed(self):
        local = state([rec("a", "mine", 5)])
        remote = state([rec("a", "theirs", 2)])
        result = merge(local, remote, now=NOW)
        self.assertEqual(result.state.records["a"].payload, "mine")
        self.assertFalse(result.changed)
        self.assertTrue(result.needs_push)

    def test_tie_keeps_local_copy(self):
        local = state([rec("a", "local", 5)])
        remote = state([rec("a", "remote", 5)])
        result = merge(local, remote, now=NOW)
        self.assertEqual(result.state.records["a"].payload, "local")
        self.assertFalse(result.changed)
        # A tie is not a reason to overwrite the other side.
        self.assertFalse(result.needs_push)

    def test_union_of_disjoint_keys(self):
        local = state([rec("a", 1, 1)])
        remote = state([rec("b", 2, 2)])
        result = merge(local, remote, now=NOW)
        self.assertEqual(set(result.state.records), {"a", "b"})
        self.assertTrue(result.changed)
        self.assertTrue(result.needs_push)

    def test_remote_deletion_wins_over_older_write(self):
        local = state([rec("k", "p", 5)])
        remote = state(tombstones={"k": 10})
        result = merge(local, remote, now=NOW)
        self.assertNotIn("k", result.state.records)
        self.assertEqual(result.state.tombstones["k"], at(10))
        self.assertTrue(result.changed)

    def test_local_deletion_wins_over_older_remote_write(self):
        local = state(tombstones={"k": 10})
        remote = state([rec("k", "p", 5)])
        result = merge(local, remote, now=NOW)
        self.assertNotIn("k", result.state.records)
        self.assertFalse(result.changed)
        self.assertTrue(result.needs_push)

    def test_newer_write_resurrects_and_clears_tombstone(self):
        local = state(tombstones={"k": 5})
        remote = state([rec("k", "back", 10)])
        result = merge(local, remote, now=NOW)
        self.assertEqual(result.state.records["k"].payload, "back")
        self.assertNotIn("k", result.state.tombstones)

    def test_tombstone_equal_to_write_keeps_both(self):
        local = state([rec("k", "p", 5)])
        remote = state(tombstones={"k": 5})
        result = merge(local, remote, now=NOW)
        self.assertIn("k", result.state.records)
        self.assertIn("k", result.state.tombstones)
        self.assertIsNotNone(result.state.get("k"))

    def test_later_tombstone_wins(self):
        local = state([rec("x", 0, 1)], tombstones={"k": 3})
        remote = state(tombstones={"k": 7})
        result = merge(local, remote, now=NOW)
        self.assertEqual(result.state.tombstones["k"], at(7))

    def test_expired_tombstones_are_pruned(self):
        now = at(0) + timedelta(days=60)
        local = ReplicaState(
            {},
            {"old": now - timedelta(days=31), "fresh": now - timedelta(days=29)},
        )
        remote = state([rec("x", 0, 1)])
        result = merge(local, remote, now=now)
        self.assertNotIn("old", result.state.tombstones)
        self.assertIn("fresh", result.state.tombstones)

    def test_empty_remote_is_first_sync(self):
        local = state([rec("a", 1, 1)], tombstones={"b": 1})
        result = merge(local, ReplicaState(), now=NOW)
        self.assertTrue(result.first_sync)
        self.assertIs(result.state, local)
        self.assertFalse(result.changed)
        self.assertTrue(result.needs_push)

    def test_first_sync_with_nothing_local_needs_no_push(self):
        result = merge(ReplicaState(), ReplicaState(), now=NOW)
        self.assertTrue(result.first_sync)
        self.assertFalse(result.needs_push)

    def test_first_sync_does_not_prune(self):
        local = ReplicaState({}, {"k": NOW - timedelta(days=90)})
        result = merge(local, ReplicaState(), now=NOW)
        self.assertIn("k", result.state.tombstones)


class TestMergeProperties(unittest.TestCase):
    def setUp(self):
        self.a = state(
            [rec("p", "a-p", 10), rec("q", "a-q", 3), rec("r", "a-r", 4)],
            tombstones={"s": 6, "t": 2},
        )
        self.b = state(
            [rec("p", "b-p", 8), rec("q", "b-q", 9), rec("s", "b-s", 5), rec("t", "b-t", 7)],
            tombstones={"r": 5},
        )

    def test_merge_is_idempotent(self):
        once = merge(self.a, self.b, now=NOW).state
        twice = merge(once, self.b, now=NOW)
        self.assertEqual(twice.state, once)
        self.assertFalse(twice.changed)

    def test_both_orders_converge(self):
        ab = merge(self.a, self.b, now=NOW).state
        ba = merge(self.b, self.a, now=NOW).state
        self.assertEqual(ab, ba)
        self.assertEqual({k: r.payload for k, r in ab.records.items()}, {"p": "a-p", "q": "b-q", "t": "b-t"})
        self.assertEqual(set(ab.tombstones), {"r", "s"})

    def test_merged_state_needs_no_further_push(self):
        merged = merge(self.a, self.b, now=NOW).state
        self.assertFalse(merge(merged, merged, now=NOW).needs_push)


class TestReplicaState(unittest.TestCase):
    def test_get_hides_logically_deleted_record(self):
        s = ReplicaState({"k": rec("k", "p", 1)}, {"k": at(2)})
        self.assertIsNone(s.get("k"))
        self.assertEqual(s.live_records(), {})

    def test_with_record_clears_older_tombstone(self):
        s = state(tombstones={"k": 1}).with_record(rec("k", "p", 2))
        self.assertEqual(s.get("k").payload, "p")
        self.assertNotIn("k", s.tombstones)

    def test_with_record_keeps_newer_tombstone(self):
        s = state(tombstones={"k": 3}).with_record(rec("k", "p", 2))
        self.assertIsNone(s.get("k"))

    def test_without_removes_and_tombstones(self):
        s = state([rec("a", 1, 1), rec("b", 2, 1)]).without(["a"], at(5))
        self.assertEqual(set(s.records), {"b"})
        self.assertEqual(s.tombstones, {"a": at(5)})

    def test_epoch_is_older_than_any_real_timestamp(self):
        self.assertLess(EPOCH, at(0))


class TestHelpers(unittest.TestCase):
    def test_merge_tombstones_takes_max(self):
        merged = merge_tombstones({"a": at(1), "b": at(5)}, {"a": at(3), "b": at(2), "c": at(1)})
        self.assertEqual(merged, {"a": at(3), "b": at(5), "c": at(1)})

    def test_prune_boundary_is_exclusive(self):
        now = at(0) + timedelta(days=30)
        kept = prune_tombstones({"edge": at(0), "inside": at(1)}, now)
        self.assertEqual(kept, {"inside": at(1)})


if __name__ == "__main__":
    unittest.main()
