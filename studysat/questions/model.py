from __future__ import annotations

"""Pydantic models for the bundled question bank.

Only the attributes the app filters and syncs on are modelled; the rest of
the content payload is carried through untouched.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AnswerOption(BaseModel):
    id: str
    content: str
    label: Optional[str] = None


class QuestionContent(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    stem: Optional[str] = None
    stimulus: Optional[str] = None
    rationale: Optional[str] = None
    answer_options: Optional[List[AnswerOption]] = Field(default=None, alias="answerOptions")
    correct_answer: Optional[List[str]] = None
    origin: Optional[str] = None


class Question(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(alias="uId")
    question_id: str = Field(alias="questionId")
    program: str
    module: str
    primary_class_desc: str = Field(alias="primary_class_cd_desc")
    skill_desc: str
    difficulty: str
    ibn: Optional[str] = None
    external_id: Optional[str] = None
    content: QuestionContent = Field(default_factory=QuestionContent)

    @property
    def is_bluebook(self) -> bool:
        """Bluebook items carry an `ibn` or name Bluebook as their origin."""
        if self.ibn is not None:
            return True
        origin = self.content.origin
        return origin is not None and "bluebook" in origin.lower()
