from __future__ import annotations

"""Progress statistics as pandas tables for the stats view and CLI."""

from typing import List, Mapping

import pandas as pd

from ..questions.bank import ATTRIBUTES, QuestionBank
from ..storage.schema import QuestionProgress

COLUMNS = ["question_id", *ATTRIBUTES, "seen", "answered", "correct"]


def progress_frame(progress: Mapping[str, QuestionProgress], bank: QuestionBank) -> pd.DataFrame:
    """One row per bank question with its live progress flags."""
    rows: List[dict] = []
    for q in bank.get_all():
        p = progress.get(q.question_id)
        rows.append(
            {
                "question_id": q.question_id,
                **{a: getattr(q, a) for a in ATTRIBUTES},
                "seen": bool(p is not None and p.seen),
                "answered": bool(p is not None and p.correct is not None),
                "correct": bool(p is not None and p.correct is True),
            }
        )
    df = pd.DataFrame(rows, columns=COLUMNS)
    return df.astype({"seen": "bool", "answered": "bool", "correct": "bool"})


def accuracy_table(df: pd.DataFrame, by: str) -> pd.DataFrame:
    """Per-value counts and accuracy percent for one question attribute.

    Columns: total, seen, answered, correct, accuracy (0 where nothing answered).
    """
    if by not in ATTRIBUTES:
        raise ValueError(f"Unknown attribute: {by}")
    out = df.groupby(by, sort=True).agg(
        total=("question_id", "count"),
        seen=("seen", "sum"),
        answered=("answered", "sum"),
        correct=("correct", "sum"),
    )
    answered = out["answered"].astype("float64")
    out["accuracy"] = (out["correct"].astype("float64") / answered.where(answered > 0)).fillna(0.0) * 100
    return out


def format_summary(df: pd.DataFrame, by: str | None = None) -> str:
    """Return a human-readable summary, optionally broken down by attribute."""
    answered = int(df["answered"].sum())
    correct = int(df["correct"].sum())
    acc = (correct / answered * 100) if answered else 0.0
    lines = [
        f"Seen: {int(df['seen'].sum())}/{len(df)}",
        f"Answered: {answered} ({correct} correct, {acc:.1f}%)",
    ]
    if by:
        table = accuracy_table(df, by)
        for value, row in table.iterrows():
            lines.append(f"{value}: {int(row['correct'])}/{int(row['answered'])} ({row['accuracy']:.1f}%)")
    return "\n".join(lines)
