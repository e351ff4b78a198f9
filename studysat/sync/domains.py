from __future__ import annotations

"""Domain adapters: how one payload type plugs into the generic reconciler.

Each domain names its two blob keys, the Pydantic model of its payload,
which timestamp orders writes, and which payloads are valid at all.

Wire format of the two blobs:
- records:    {"<key>": {payload...}, ...}
- tombstones: {"<key>": "<ISO-8601 UTC>", ...}
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Generic, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter

from ..storage.schema import (
    PROGRESS_DELETED_KEY,
    PROGRESS_KEY,
    QUIZ_DELETED_KEY,
    QUIZ_KEY,
    DecodeError,
    QuestionProgress,
    QuizState,
    as_utc,
)
from .reconciler import EPOCH, Record, ReplicaState

P = TypeVar("P", bound=BaseModel)

_TOMBSTONES = TypeAdapter(Dict[str, datetime])


def _always_valid(_payload: Any) -> bool:
    return True


@dataclass(frozen=True)
class Domain(Generic[P]):
    name: str
    records_key: str
    tombstones_key: str
    model: Type[P]
    timestamp_of: Callable[[P], datetime]
    key_of: Optional[Callable[[P], str]] = None
    is_valid: Callable[[P], bool] = _always_valid

    @property
    def keys(self) -> tuple[str, str]:
        return (self.records_key, self.tombstones_key)

    def record(self, key: str, payload: P) -> Record[P]:
        return Record(key=key, payload=payload, timestamp=self.timestamp_of(payload))

    # --- encoding ---

    def encode_records(self, records: Mapping[str, Record[P]]) -> bytes:
        data = {k: r.payload.model_dump(mode="json", by_alias=True) for k, r in sorted(records.items())}
        return json.dumps(data, separators=(",", ":")).encode("utf-8")

    def encode_tombstones(self, tombstones: Mapping[str, datetime]) -> bytes:
        data = {k: as_utc(t).isoformat() for k, t in sorted(tombstones.items())}
        return json.dumps(data, separators=(",", ":")).encode("utf-8")

    # --- decoding ---

    def decode_records(self, blob: Optional[bytes]) -> Dict[str, Record[P]]:
        """Decode a records blob; invalid payloads are dropped as if absent.

        Raises DecodeError when the blob as a whole is unreadable.
        """
        if not blob:
            return {}
        try:
            raw = json.loads(blob)
        except ValueError as exc:
            raise DecodeError(f"{self.name}: records blob is not JSON") from exc
        if isinstance(raw, list) and self.key_of is not None:
            # Older clients stored the quiz list as a JSON array.
            items = [(None, item) for item in raw]
        elif isinstance(raw, dict):
            items = list(raw.items())
        else:
            raise DecodeError(f"{self.name}: unexpected records blob type {type(raw).__name__}")
        out: Dict[str, Record[P]] = {}
        for key, item in items:
            try:
                payload = self.model.model_validate(item)
            except ValueError as exc:
                raise DecodeError(f"{self.name}: malformed record {key!r}") from exc
            if not self.is_valid(payload):
                continue
            k = self.key_of(payload) if self.key_of is not None else key
            out[str(k)] = self.record(str(k), payload)
        return out

    def decode_tombstones(self, blob: Optional[bytes]) -> Dict[str, datetime]:
        if not blob:
            return {}
        try:
            raw = _TOMBSTONES.validate_json(blob)
        except ValueError as exc:
            raise DecodeError(f"{self.name}: tombstones blob is malformed") from exc
        return {k: as_utc(t) for k, t in raw.items()}

    def decode_state(self, records_blob: Optional[bytes], tombstones_blob: Optional[bytes]) -> ReplicaState[P]:
        return ReplicaState(self.decode_records(records_blob), self.decode_tombstones(tombstones_blob))


def _progress_timestamp(p: QuestionProgress) -> datetime:
    return p.last_attempted if p.last_attempted is not None else EPOCH


def _quiz_has_questions(q: QuizState) -> bool:
    return bool(q.question_ids)


PROGRESS: Domain[QuestionProgress] = Domain(
    name="progress",
    records_key=PROGRESS_KEY,
    tombstones_key=PROGRESS_DELETED_KEY,
    model=QuestionProgress,
    timestamp_of=_progress_timestamp,
)

QUIZ: Domain[QuizState] = Domain(
    name="quiz",
    records_key=QUIZ_KEY,
    tombstones_key=QUIZ_DELETED_KEY,
    model=QuizState,
    timestamp_of=lambda q: q.last_saved,
    key_of=lambda q: q.id,
    is_valid=_quiz_has_questions,
)
