from __future__ import annotations

"""Where fire-and-forget sync work runs.

Both dispatchers run submitted work one item at a time, in order.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Dispatcher(Protocol):
    def submit(self, fn: Callable[[], None]) -> None: ...

    def close(self) -> None: ...


class InlineDispatcher:
    """Run work immediately on the caller's thread (CLI, tests)."""

    def submit(self, fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception:
            logger.exception("Sync task failed")

    def close(self) -> None:
        return


class SerialDispatcher:
    """Run work on a single background worker so callers never block."""

    def __init__(self, name: str = "studysat-sync") -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)

    def submit(self, fn: Callable[[], None]) -> None:
        future = self._executor.submit(fn)
        future.add_done_callback(_log_failure)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


def _log_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("Sync task failed", exc_info=exc)


def make_dispatcher(kind: str) -> Dispatcher:
    if kind == "inline":
        return InlineDispatcher()
    if kind == "thread":
        return SerialDispatcher()
    raise ValueError(f"Unknown dispatcher: {kind}")
