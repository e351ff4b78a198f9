from __future__ import annotations

"""Question filters: attribute matches combined with progress-based status."""

from enum import Enum
from typing import List, Optional, Protocol

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .model import Question


class SeenStatus(str, Enum):
    ALL = "All"
    SEEN = "Seen"
    UNSEEN = "Unseen"


class AnswerStatus(str, Enum):
    ALL = "All"
    UNANSWERED = "Unanswered"
    INCORRECT = "Incorrect"
    CORRECT = "Correct"


class BluebookFilter(str, Enum):
    ALL = "All"
    BLUEBOOK = "Bluebook"
    NOT_BLUEBOOK = "Not Bluebook"


DIFFICULTY_NAMES = {"E": "Easy", "M": "Medium", "H": "Hard"}


class ProgressLookup(Protocol):
    def is_seen(self, question_id: str) -> bool: ...

    def is_correct(self, question_id: str) -> Optional[bool]: ...


class FilterOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    program: Optional[str] = None
    module: Optional[str] = None
    primary_class_desc: Optional[str] = None
    skill_desc: Optional[str] = None
    difficulty: Optional[str] = None
    seen_status: SeenStatus = SeenStatus.ALL
    answer_status: AnswerStatus = AnswerStatus.ALL
    bluebook: BluebookFilter = BluebookFilter.ALL

    def matches_attributes(self, question: Question) -> bool:
        if self.program is not None and question.program != self.program:
            return False
        if self.module is not None and question.module != self.module:
            return False
        if self.primary_class_desc is not None and question.primary_class_desc != self.primary_class_desc:
            return False
        if self.skill_desc is not None and question.skill_desc != self.skill_desc:
            return False
        if self.difficulty is not None and question.difficulty != self.difficulty:
            return False
        if self.bluebook is BluebookFilter.BLUEBOOK and not question.is_bluebook:
            return False
        if self.bluebook is BluebookFilter.NOT_BLUEBOOK and question.is_bluebook:
            return False
        return True

    def matches(self, question: Question, progress: Optional[ProgressLookup] = None) -> bool:
        """AND of every attribute filter and, when `progress` is given, both status filters."""
        if not self.matches_attributes(question):
            return False
        if progress is None:
            return True
        qid = question.question_id
        if self.seen_status is SeenStatus.SEEN and not progress.is_seen(qid):
            return False
        if self.seen_status is SeenStatus.UNSEEN and progress.is_seen(qid):
            return False
        if self.answer_status is not AnswerStatus.ALL:
            correct = progress.is_correct(qid)
            if self.answer_status is AnswerStatus.UNANSWERED and correct is not None:
                return False
            if self.answer_status is AnswerStatus.INCORRECT and correct is not False:
                return False
            if self.answer_status is AnswerStatus.CORRECT and correct is not True:
                return False
        return True

    def describe(self) -> str:
        parts: List[str] = []
        if self.program:
            parts.append(self.program)
        if self.module:
            parts.append(self.module.capitalize())
        if self.difficulty:
            parts.append(DIFFICULTY_NAMES.get(self.difficulty, self.difficulty))
        if self.seen_status is not SeenStatus.ALL:
            parts.append(self.seen_status.value)
        if self.answer_status is not AnswerStatus.ALL:
            parts.append(self.answer_status.value)
        if self.bluebook is not BluebookFilter.ALL:
            parts.append(self.bluebook.value)
        if self.primary_class_desc:
            parts.append(self.primary_class_desc)
        if self.skill_desc:
            parts.append(self.skill_desc)
        return " • ".join(parts) if parts else "All Questions"
