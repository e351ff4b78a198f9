from __future__ import annotations

"""Schema constants and Pydantic models for persisted and synced payloads."""

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..questions.filters import FilterOptions

# --- Constants ---

# Blob keys, identical in the local store and the remote store.
PROGRESS_KEY = "questionProgress"
PROGRESS_DELETED_KEY = "deletedQuestionProgress"
QUIZ_KEY = "savedQuizStates"
QUIZ_DELETED_KEY = "deletedQuizStates"

# Preference flags kept in the local store.
PROGRESS_SYNC_PREF = "iCloudSyncEnabled"
PROGRESS_SYNC_PREF_SET = "hasSetICloudSyncPreference"
QUIZ_SYNC_PREF = "quizICloudSyncEnabled"
QUIZ_SYNC_PREF_SET = "hasSetQuizICloudSyncPreference"


class DecodeError(ValueError):
    """A stored blob could not be decoded."""


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- Pydantic models ---

class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionProgress(_Wire):
    seen: bool = False
    correct: Optional[bool] = None
    last_attempted: Optional[datetime] = None

    @field_validator("last_attempted")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None


class QuestionAnswerState(_Wire):
    question_id: str
    selected_answer_id: Optional[str] = None
    has_submitted: bool = False
    is_correct: Optional[bool] = None


class QuizState(_Wire):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()).upper())
    filters: FilterOptions = Field(default_factory=FilterOptions)
    current_index: int = Field(0, ge=0)
    question_ids: List[str] = Field(default_factory=list)
    answer_states: Dict[str, QuestionAnswerState] = Field(default_factory=dict)
    last_saved: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("last_saved")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @property
    def has_active_quiz(self) -> bool:
        return bool(self.question_ids) and self.current_index < len(self.question_ids)

    def filter_description(self) -> str:
        return self.filters.describe()
