from __future__ import annotations

import unittest

from studysat.stats.stats import COLUMNS, accuracy_table, format_summary, progress_frame
from studysat.storage.schema import QuestionProgress

from sync_fixtures import at, sample_bank


class TestStats(unittest.TestCase):
    def setUp(self):
        progress = {
            "q1": QuestionProgress(seen=True, correct=True, last_attempted=at(1)),
            "q2": QuestionProgress(seen=True, correct=False, last_attempted=at(2)),
            "q3": QuestionProgress(seen=True, last_attempted=at(3)),
        }
        self.df = progress_frame(progress, sample_bank())

    def test_frame_has_one_row_per_question(self):
        self.assertEqual(list(self.df.columns), COLUMNS)
        self.assertEqual(len(self.df), 5)
        self.assertEqual(int(self.df["seen"].sum()), 3)
        self.assertEqual(int(self.df["answered"].sum()), 2)
        self.assertEqual(int(self.df["correct"].sum()), 1)

    def test_accuracy_by_module(self):
        table = accuracy_table(self.df, "module")
        self.assertEqual(list(table.index), ["english", "math"])
        self.assertEqual(int(table.loc["math", "total"]), 3)
        self.assertEqual(int(table.loc["math", "answered"]), 2)
        self.assertAlmostEqual(table.loc["math", "accuracy"], 50.0)
        self.assertEqual(table.loc["english", "accuracy"], 0.0)

    def test_accuracy_table_rejects_unknown_attribute(self):
        with self.assertRaises(ValueError):
            accuracy_table(self.df, "seen")

    def test_summary(self):
        text = format_summary(self.df, "difficulty")
        self.assertIn("Seen: 3/5", text)
        self.assertIn("Answered: 2 (1 correct, 50.0%)", text)
        self.assertIn("E: 1/1 (100.0%)", text)
        self.assertIn("M: 0/1 (0.0%)", text)

    def test_empty_progress(self):
        df = progress_frame({}, sample_bank())
        self.assertIn("Answered: 0 (0 correct, 0.0%)", format_summary(df))


if __name__ == "__main__":
    unittest.main()
