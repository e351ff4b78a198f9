from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from studysat.storage.remote import DirectoryRemoteStore, MemoryCloud


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, keys):
        self.calls.append(list(keys))


class TestMemoryCloud(unittest.TestCase):
    def test_write_notifies_other_devices_only(self):
        cloud = MemoryCloud()
        a, b = cloud.device(), cloud.device()
        seen_a, seen_b = Recorder(), Recorder()
        a.subscribe(seen_a)
        b.subscribe(seen_b)
        a.set("k", b"v")
        self.assertEqual(b.get("k"), b"v")
        self.assertEqual(seen_a.calls, [])
        self.assertEqual(seen_b.calls, [["k"]])

    def test_held_notifications_arrive_on_delivery(self):
        cloud = MemoryCloud(deliver=False)
        a, b = cloud.device(), cloud.device()
        seen = Recorder()
        b.subscribe(seen)
        a.set("k", b"1")
        a.set("k", b"2")
        self.assertEqual(seen.calls, [])
        self.assertEqual(cloud.deliver_pending(), 2)
        self.assertEqual(seen.calls, [["k"], ["k"]])
        self.assertEqual(b.get("k"), b"2")

    def test_unsubscribe_and_failing_handler(self):
        cloud = MemoryCloud()
        a, b = cloud.device(), cloud.device()
        seen = Recorder()

        def broken(keys):
            raise RuntimeError("boom")

        b.subscribe(broken)
        b.subscribe(seen)
        with self.assertLogs("studysat.storage.remote", level="ERROR"):
            a.set("k", b"1")
        self.assertEqual(seen.calls, [["k"]])
        b.unsubscribe(seen)
        b.unsubscribe(broken)
        a.set("k", b"2")
        self.assertEqual(seen.calls, [["k"]])

    def test_availability_and_flush_result(self):
        cloud = MemoryCloud()
        a = cloud.device()
        self.assertTrue(a.is_available())
        cloud.available = False
        self.assertFalse(a.is_available())
        a.flush_result = False
        self.assertFalse(a.flush())
        self.assertEqual(a.flush_calls, 1)


class TestDirectoryRemoteStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_directory_is_unavailable(self):
        store = DirectoryRemoteStore(self.root / "absent")
        self.assertFalse(store.is_available())
        self.assertEqual(store.poll(), [])

    def test_set_get_and_flush(self):
        store = DirectoryRemoteStore(self.root)
        self.assertIsNone(store.get("k"))
        store.set("k", b'{"a":1}')
        self.assertEqual(store.get("k"), b'{"a":1}')
        self.assertTrue((self.root / "k.json").exists())
        self.assertTrue(store.flush())

    def test_poll_reports_writes_from_other_devices(self):
        mine, theirs = DirectoryRemoteStore(self.root), DirectoryRemoteStore(self.root)
        seen = Recorder()
        mine.subscribe(seen)
        theirs.set("savedQuizStates", b"{}")
        self.assertEqual(mine.poll(), ["savedQuizStates"])
        self.assertEqual(seen.calls, [["savedQuizStates"]])
        self.assertEqual(mine.poll(), [])

    def test_poll_ignores_own_writes(self):
        store = DirectoryRemoteStore(self.root)
        store.set("k", b"{}")
        self.assertEqual(store.poll(), [])


if __name__ == "__main__":
    unittest.main()
