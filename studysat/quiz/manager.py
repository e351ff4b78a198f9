from __future__ import annotations

"""Quiz State Manager: saved, resumable quizzes keyed by quiz id."""

import logging
from typing import List, Optional

from ..storage.schema import QuizState
from ..sync.controller import SyncController
from ..sync.domains import QUIZ
from ..sync.reconciler import ReplicaState

logger = logging.getLogger(__name__)


class QuizStateManager:
    def __init__(self, controller: SyncController[QuizState]) -> None:
        self.controller = controller

    def saved_quizzes(self) -> List[QuizState]:
        """Live quizzes, most recently saved first."""
        quizzes = [r.payload for r in self.controller.state.live_records().values()]
        return sorted(quizzes, key=lambda q: q.last_saved, reverse=True)

    def save(self, state: QuizState) -> Optional[QuizState]:
        """Upsert `state` stamped with the current time. Quizzes without questions are ignored."""
        if not state.question_ids:
            logger.debug("Not saving quiz %s: no questions", state.id)
            return None
        stamped = state.model_copy(update={"last_saved": self.controller.clock()})
        self.controller.update(lambda s: s.with_record(QUIZ.record(stamped.id, stamped)))
        return stamped

    def load(self, quiz_id: str) -> Optional[QuizState]:
        rec = self.controller.state.get(quiz_id)
        return rec.payload if rec is not None else None

    def most_recent(self) -> Optional[QuizState]:
        quizzes = self.saved_quizzes()
        return quizzes[0] if quizzes else None

    def delete(self, quiz_id: str) -> None:
        now = self.controller.clock()
        self.controller.update(lambda s: s.without([quiz_id], now))

    def clear_most_recent(self) -> Optional[str]:
        recent = self.most_recent()
        if recent is None:
            return None
        self.delete(recent.id)
        return recent.id

    def clear_all(self) -> int:
        """Delete every saved quiz, tombstoning each so other devices drop them too."""
        now = self.controller.clock()
        cleared: List[str] = []

        def apply(state: ReplicaState[QuizState]) -> ReplicaState[QuizState]:
            cleared[:] = list(state.live_records())
            return state.without(cleared, now) if cleared else state

        self.controller.update(apply)
        return len(cleared)
