from __future__ import annotations

"""Tiny pub/sub event bus used to tell front ends that state moved."""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

STATE_CHANGED = "state_changed"
STATUS_CHANGED = "status_changed"


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception:
                # A broken subscriber must not stop the others
                logger.exception("Handler for %s failed", event)
