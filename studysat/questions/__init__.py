from .model import AnswerOption, Question, QuestionContent
from .filters import AnswerStatus, BluebookFilter, FilterOptions, ProgressLookup, SeenStatus
from .bank import ATTRIBUTES, QuestionBank, QuestionBankError

__all__ = [
    "AnswerOption",
    "Question",
    "QuestionContent",
    "AnswerStatus",
    "BluebookFilter",
    "FilterOptions",
    "ProgressLookup",
    "SeenStatus",
    "ATTRIBUTES",
    "QuestionBank",
    "QuestionBankError",
]
