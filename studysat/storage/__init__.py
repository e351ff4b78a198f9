from .schema import (
    PROGRESS_KEY,
    PROGRESS_DELETED_KEY,
    QUIZ_KEY,
    QUIZ_DELETED_KEY,
    DecodeError,
    QuestionAnswerState,
    QuestionProgress,
    QuizState,
)
from .store import (
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    ReplicaStore,
    get_flag,
    has_flag,
    set_flag,
)
from .remote import DirectoryRemoteStore, MemoryCloud, MemoryRemoteStore, RemoteStore

__all__ = [
    "PROGRESS_KEY",
    "PROGRESS_DELETED_KEY",
    "QUIZ_KEY",
    "QUIZ_DELETED_KEY",
    "DecodeError",
    "QuestionAnswerState",
    "QuestionProgress",
    "QuizState",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "ReplicaStore",
    "get_flag",
    "has_flag",
    "set_flag",
    "DirectoryRemoteStore",
    "MemoryCloud",
    "MemoryRemoteStore",
    "RemoteStore",
]
