from __future__ import annotations

import json
import unittest
from datetime import datetime, timezone

from studysat.questions.filters import FilterOptions, SeenStatus
from studysat.storage.schema import DecodeError, QuestionProgress, QuizState
from studysat.sync.domains import PROGRESS, QUIZ
from studysat.sync.reconciler import EPOCH

from sync_fixtures import at


def quiz(qid="Q1", question_ids=("a", "b"), seconds=0, **kw) -> QuizState:
    return QuizState(id=qid, question_ids=list(question_ids), last_saved=at(seconds), **kw)


class TestProgressDomain(unittest.TestCase):
    def test_records_use_camel_case_keys(self):
        p = QuestionProgress(seen=True, correct=False, last_attempted=at(5))
        blob = PROGRESS.encode_records({"q1": PROGRESS.record("q1", p)})
        raw = json.loads(blob)
        self.assertEqual(set(raw["q1"]), {"seen", "correct", "lastAttempted"})

    def test_records_decode_back_with_timestamps(self):
        p = QuestionProgress(seen=True, correct=True, last_attempted=at(5))
        decoded = PROGRESS.decode_records(PROGRESS.encode_records({"q1": PROGRESS.record("q1", p)}))
        self.assertEqual(decoded["q1"].payload, p)
        self.assertEqual(decoded["q1"].timestamp, at(5))

    def test_unstamped_progress_sorts_as_epoch(self):
        decoded = PROGRESS.decode_records(b'{"q1": {"seen": true}}')
        self.assertEqual(decoded["q1"].timestamp, EPOCH)
        self.assertIsNone(decoded["q1"].payload.correct)

    def test_naive_timestamps_are_read_as_utc(self):
        decoded = PROGRESS.decode_records(b'{"q1": {"seen": true, "lastAttempted": "2026-01-01T00:00:05"}}')
        self.assertEqual(decoded["q1"].timestamp, at(5))

    def test_missing_blob_is_empty(self):
        self.assertEqual(PROGRESS.decode_records(None), {})
        self.assertEqual(PROGRESS.decode_tombstones(b""), {})

    def test_garbage_records_blob_raises(self):
        with self.assertRaises(DecodeError):
            PROGRESS.decode_records(b"not json")
        with self.assertRaises(DecodeError):
            PROGRESS.decode_records(b"[1, 2]")
        with self.assertRaises(DecodeError):
            PROGRESS.decode_records(b'{"q1": {"seen": "maybe"}}')

    def test_tombstones_round_trip_as_iso_strings(self):
        blob = PROGRESS.encode_tombstones({"q1": at(7)})
        self.assertEqual(json.loads(blob), {"q1": "2026-01-01T00:00:07+00:00"})
        self.assertEqual(PROGRESS.decode_tombstones(blob), {"q1": at(7)})

    def test_malformed_tombstones_raise(self):
        with self.assertRaises(DecodeError):
            PROGRESS.decode_tombstones(b'{"q1": "yesterday"}')

    def test_domain_keys(self):
        self.assertEqual(PROGRESS.keys, ("questionProgress", "deletedQuestionProgress"))
        self.assertEqual(QUIZ.keys, ("savedQuizStates", "deletedQuizStates"))


class TestQuizDomain(unittest.TestCase):
    def test_quiz_timestamp_is_last_saved(self):
        q = quiz(seconds=9)
        self.assertEqual(QUIZ.record(q.id, q).timestamp, at(9))

    def test_quiz_without_questions_is_dropped_on_decode(self):
        good, empty = quiz("GOOD"), quiz("EMPTY", question_ids=())
        blob = json.dumps(
            {
                "GOOD": good.model_dump(mode="json", by_alias=True),
                "EMPTY": empty.model_dump(mode="json", by_alias=True),
            }
        ).encode()
        self.assertEqual(set(QUIZ.decode_records(blob)), {"GOOD"})

    def test_legacy_list_blob_is_keyed_by_quiz_id(self):
        a, b = quiz("A", seconds=1), quiz("B", seconds=2)
        blob = json.dumps([a.model_dump(mode="json", by_alias=True), b.model_dump(mode="json", by_alias=True)]).encode()
        decoded = QUIZ.decode_records(blob)
        self.assertEqual(set(decoded), {"A", "B"})
        self.assertEqual(decoded["B"].timestamp, at(2))

    def test_filters_survive_encoding(self):
        q = quiz(filters=FilterOptions(module="math", seen_status=SeenStatus.UNSEEN), current_index=1)
        blob = QUIZ.encode_records({q.id: QUIZ.record(q.id, q)})
        raw = json.loads(blob)["Q1"]
        self.assertEqual(raw["filters"]["seenStatus"], "Unseen")
        self.assertEqual(raw["currentIndex"], 1)
        decoded = QUIZ.decode_records(blob)["Q1"].payload
        self.assertEqual(decoded.filters.module, "math")
        self.assertEqual(decoded.filters.seen_status, SeenStatus.UNSEEN)

    def test_decode_state(self):
        q = quiz()
        state = QUIZ.decode_state(
            QUIZ.encode_records({q.id: QUIZ.record(q.id, q)}),
            QUIZ.encode_tombstones({"OLD": datetime(2025, 12, 1, tzinfo=timezone.utc)}),
        )
        self.assertEqual(set(state.records), {"Q1"})
        self.assertEqual(set(state.tombstones), {"OLD"})


if __name__ == "__main__":
    unittest.main()
