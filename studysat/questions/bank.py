from __future__ import annotations

"""Read-only question bank loaded once from the bundled JSON file.

File shape: {"<uId>": {question...}, ...}
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from .filters import FilterOptions, ProgressLookup
from .model import Question

logger = logging.getLogger(__name__)

ATTRIBUTES = ("program", "module", "primary_class_desc", "skill_desc", "difficulty")


class QuestionBankError(Exception):
    """Raised when the bundled question file is missing or unreadable."""


class QuestionBank:
    def __init__(self, questions: Iterable[Question] = ()) -> None:
        self._questions: List[Question] = list(questions)

    @classmethod
    def load(cls, path: str | Path) -> "QuestionBank":
        p = Path(path)
        try:
            with p.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError as exc:
            raise QuestionBankError(f"Question file not found: {p}") from exc
        except json.JSONDecodeError as exc:
            raise QuestionBankError(f"Question file is not valid JSON: {p}") from exc
        if not isinstance(raw, dict):
            raise QuestionBankError(f"Question file must hold a JSON object: {p}")
        try:
            questions = [Question.model_validate(q) for q in raw.values()]
        except ValidationError as exc:
            raise QuestionBankError(f"Malformed question in {p}: {exc}") from exc
        logger.info("Loaded %d questions from %s", len(questions), p)
        return cls(questions)

    def get_all(self) -> List[Question]:
        return list(self._questions)

    def __len__(self) -> int:
        return len(self._questions)

    def by_attribute(self, attribute: str, value: str) -> List[Question]:
        if attribute not in ATTRIBUTES:
            raise ValueError(f"Unknown question attribute: {attribute}")
        return [q for q in self._questions if getattr(q, attribute) == value]

    def by_program(self, program: str) -> List[Question]:
        return self.by_attribute("program", program)

    def by_module(self, module: str) -> List[Question]:
        return self.by_attribute("module", module)

    def by_primary_class(self, primary_class: str) -> List[Question]:
        return self.by_attribute("primary_class_desc", primary_class)

    def by_skill(self, skill_desc: str) -> List[Question]:
        return self.by_attribute("skill_desc", skill_desc)

    def by_difficulty(self, difficulty: str) -> List[Question]:
        return self.by_attribute("difficulty", difficulty)

    def filtered(self, filters: FilterOptions, progress: Optional[ProgressLookup] = None) -> List[Question]:
        return [q for q in self._questions if filters.matches(q, progress)]

    # Distinct values for filter pickers

    def available_programs(self) -> List[str]:
        return sorted({q.program for q in self._questions})

    def available_modules(self) -> List[str]:
        return sorted({q.module for q in self._questions})

    def available_primary_classes(self, module: Optional[str] = None) -> List[str]:
        qs = self._questions if module is None else [q for q in self._questions if q.module == module]
        return sorted({q.primary_class_desc for q in qs})

    def available_skill_descs(self, module: Optional[str] = None, primary_class: Optional[str] = None) -> List[str]:
        qs = self._questions
        if module is not None:
            qs = [q for q in qs if q.module == module]
        if primary_class is not None:
            qs = [q for q in qs if q.primary_class_desc == primary_class]
        return sorted({q.skill_desc for q in qs})

    def available_difficulties(self) -> List[str]:
        return sorted({q.difficulty for q in self._questions})

