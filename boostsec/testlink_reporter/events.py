"""Lifecycle notifications emitted by a test run."""

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[..., None]


class RunnerEvent(str, Enum):
    """Notifications a test runner emits while executing."""

    RUN_BEGIN = "start"
    SUITE_END = "suite end"
    TEST_PASS = "pass"
    TEST_FAIL = "fail"


class EventEmitter:
    """Minimal synchronous notification source.

    Handlers run in registration order on the emitting thread. Handlers
    registered with `once` are removed before their first invocation.
    """

    def __init__(self) -> None:
        self._handlers: dict[RunnerEvent, list[tuple[Handler, bool]]] = {}

    def on(self, event: RunnerEvent, handler: Handler) -> "EventEmitter":
        self._handlers.setdefault(event, []).append((handler, False))
        return self

    def once(self, event: RunnerEvent, handler: Handler) -> "EventEmitter":
        self._handlers.setdefault(event, []).append((handler, True))
        return self

    def emit(self, event: RunnerEvent, *args: Any) -> bool:
        """Invoke the handlers of an event.

        Returns:
            True if at least one handler was registered for the event

        """
        handlers = self._handlers.get(event, [])
        if not handlers:
            return False
        self._handlers[event] = [entry for entry in handlers if not entry[1]]
        logger.debug(f"Emitting {event.value!r} to {len(handlers)} handlers")
        for handler, _ in handlers:
            handler(*args)
        return True
