from __future__ import annotations

"""StudyApp: builds stores, sync controllers and managers and owns their lifecycle.

Nothing here is a singleton; front ends create one StudyApp and pass it
around. Both sync domains share one dispatcher so their remote work stays
on a single sequence.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from ..questions.bank import QuestionBank
from ..questions.filters import FilterOptions
from ..questions.model import Question
from ..progress.manager import ProgressManager
from ..quiz.manager import QuizStateManager
from ..storage.remote import DirectoryRemoteStore, RemoteStore
from ..storage.schema import (
    PROGRESS_SYNC_PREF,
    PROGRESS_SYNC_PREF_SET,
    QUIZ_SYNC_PREF,
    QUIZ_SYNC_PREF_SET,
    QuestionProgress,
    QuizState,
)
from ..storage.store import JsonFileKeyValueStore, KeyValueStore, ReplicaStore, get_flag
from ..sync.controller import SyncController, SyncStatus
from ..sync.dispatch import Dispatcher, InlineDispatcher, make_dispatcher
from ..sync.domains import PROGRESS, QUIZ
from ..sync.reconciler import RETENTION, utcnow
from .events import EventBus

logger = logging.getLogger(__name__)


class StudyApp:
    def __init__(
        self,
        local: KeyValueStore,
        remote: Optional[RemoteStore],
        *,
        bank: Optional[QuestionBank] = None,
        questions_path: Optional[str] = None,
        dispatcher: Optional[Dispatcher] = None,
        clock: Callable[[], datetime] = utcnow,
        retention: timedelta = RETENTION,
        default_sync_enabled: bool = True,
        events: Optional[EventBus] = None,
    ) -> None:
        self.local = local
        self.remote = remote
        self.dispatcher = dispatcher or InlineDispatcher()
        self.events = events or EventBus()
        self._bank = bank
        self._questions_path = questions_path

        self.progress_sync: SyncController[QuestionProgress] = SyncController(
            PROGRESS,
            ReplicaStore(PROGRESS, local),
            remote,
            local,
            pref_key=PROGRESS_SYNC_PREF,
            pref_set_key=PROGRESS_SYNC_PREF_SET,
            default_enabled=lambda: default_sync_enabled,
            dispatcher=self.dispatcher,
            clock=clock,
            retention=retention,
            events=self.events,
        )
        # Quiz sync follows the progress preference until the user sets it separately.
        self.quiz_sync: SyncController[QuizState] = SyncController(
            QUIZ,
            ReplicaStore(QUIZ, local),
            remote,
            local,
            pref_key=QUIZ_SYNC_PREF,
            pref_set_key=QUIZ_SYNC_PREF_SET,
            default_enabled=lambda: get_flag(local, PROGRESS_SYNC_PREF),
            dispatcher=self.dispatcher,
            clock=clock,
            retention=retention,
            events=self.events,
        )
        self.progress = ProgressManager(self.progress_sync)
        self.quizzes = QuizStateManager(self.quiz_sync)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "StudyApp":
        storage = cfg["storage"]
        sync = cfg["sync"]
        remote = DirectoryRemoteStore(storage["remote_dir"]) if storage.get("remote_dir") else None
        return cls(
            JsonFileKeyValueStore(storage["local_path"]),
            remote,
            questions_path=storage.get("questions_path"),
            dispatcher=make_dispatcher(sync["dispatcher"]),
            retention=timedelta(days=int(sync["retention_days"])),
            default_sync_enabled=bool(sync["default_enabled"]),
        )

    @property
    def controllers(self) -> List[SyncController]:
        return [self.progress_sync, self.quiz_sync]

    @property
    def bank(self) -> QuestionBank:
        """The question bank, loaded on first use. Raises QuestionBankError if unreadable."""
        if self._bank is None:
            if not self._questions_path:
                self._bank = QuestionBank()
            else:
                self._bank = QuestionBank.load(self._questions_path)
        return self._bank

    # --- lifecycle ---

    def start(self) -> None:
        # Progress first: quiz sync inherits its preference on first launch.
        for c in self.controllers:
            c.start()

    def on_foreground(self) -> None:
        for c in self.controllers:
            c.on_foreground()

    def poll_remote(self) -> List[str]:
        """Check a directory-backed remote for writes from other devices."""
        if isinstance(self.remote, DirectoryRemoteStore):
            return self.remote.poll()
        return []

    def sync_now(self) -> Dict[str, bool]:
        return {c.domain.name: c.sync_now() for c in self.controllers}

    def set_sync_enabled(self, flag: bool) -> Dict[str, bool]:
        return {c.domain.name: c.set_sync_enabled(flag) for c in self.controllers}

    def sync_status(self) -> Dict[str, SyncStatus]:
        return {c.domain.name: c.status for c in self.controllers}

    def close(self) -> None:
        self.dispatcher.close()
        for c in self.controllers:
            c.disable()

    # --- questions ---

    def filtered_questions(self, filters: FilterOptions) -> List[Question]:
        return self.bank.filtered(filters, self.progress)
