from __future__ import annotations

"""Progress Manager: per-question seen/correct state.

Every mutation stamps `last_attempted`, goes through the domain's
SyncController (persist locally, then reconcile in the background) and
resets tombstone the affected keys so other devices drop them too.
"""

from typing import Dict, Iterable, List, Optional

from ..questions.bank import QuestionBank
from ..storage.schema import QuestionProgress
from ..sync.controller import SyncController
from ..sync.domains import PROGRESS
from ..sync.reconciler import ReplicaState


class ProgressManager:
    def __init__(self, controller: SyncController[QuestionProgress]) -> None:
        self.controller = controller

    @property
    def progress(self) -> Dict[str, QuestionProgress]:
        """Live progress by question id (logically deleted entries excluded)."""
        return {k: r.payload for k, r in self.controller.state.live_records().items()}

    # --- mutations ---

    def _record(self, question_id: str, *, correct: Optional[bool], answered: bool) -> QuestionProgress:
        now = self.controller.clock()

        def apply(state: ReplicaState[QuestionProgress]) -> ReplicaState[QuestionProgress]:
            current = state.get(question_id)
            base = current.payload if current is not None else QuestionProgress()
            updates = {"seen": True, "last_attempted": now}
            if answered:
                updates["correct"] = correct
            item = base.model_copy(update=updates)
            return state.with_record(PROGRESS.record(question_id, item))

        return self.controller.update(apply).records[question_id].payload

    def mark_seen(self, question_id: str) -> QuestionProgress:
        return self._record(question_id, correct=None, answered=False)

    def mark_answered(self, question_id: str, correct: bool) -> QuestionProgress:
        return self._record(question_id, correct=bool(correct), answered=True)

    def _reset(self, question_ids: Optional[Iterable[str]]) -> int:
        now = self.controller.clock()
        cleared: List[str] = []

        def apply(state: ReplicaState[QuestionProgress]) -> ReplicaState[QuestionProgress]:
            live = state.live_records()
            targets = list(live) if question_ids is None else [q for q in question_ids if q in live]
            cleared[:] = targets
            return state.without(targets, now) if targets else state

        self.controller.update(apply)
        return len(cleared)

    def reset_all(self) -> int:
        """Delete all progress. Returns how many questions were cleared."""
        return self._reset(None)

    def reset_by(self, attribute: str, value: str, bank: QuestionBank) -> int:
        """Delete progress for questions whose `attribute` equals `value`."""
        return self._reset([q.question_id for q in bank.by_attribute(attribute, value)])

    # --- queries ---

    def get_progress(self, question_id: str) -> Optional[QuestionProgress]:
        rec = self.controller.state.get(question_id)
        return rec.payload if rec is not None else None

    def is_seen(self, question_id: str) -> bool:
        p = self.get_progress(question_id)
        return p is not None and p.seen

    def is_correct(self, question_id: str) -> Optional[bool]:
        p = self.get_progress(question_id)
        return p.correct if p is not None else None

    # --- statistics ---

    def total_seen(self) -> int:
        return sum(1 for p in self.progress.values() if p.seen)

    def total_attempted(self) -> int:
        return sum(1 for p in self.progress.values() if p.correct is not None)

    @staticmethod
    def _accuracy(items: Iterable[QuestionProgress]) -> float:
        answered = [p for p in items if p.correct is not None]
        if not answered:
            return 0.0
        correct = sum(1 for p in answered if p.correct)
        return correct / len(answered) * 100

    def overall_accuracy(self) -> float:
        """Percent of answered questions answered correctly (0 when none)."""
        return self._accuracy(self.progress.values())

    def accuracy_by(self, attribute: str, value: str, bank: QuestionBank) -> float:
        ids = {q.question_id for q in bank.by_attribute(attribute, value)}
        return self._accuracy(p for k, p in self.progress.items() if k in ids)
