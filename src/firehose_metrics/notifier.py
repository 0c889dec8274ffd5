"""Process-wide failure notification channel."""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

CREATE_ERROR = 'create-error'

EVENTS = (CREATE_ERROR,)


class FailureNotifier:
    """
    Publish/subscribe channel for metrics that could not be delivered.

    Handlers are called synchronously, in subscription order, with
    ``(failed_batches, error)``. A handler that raises is logged and skipped;
    the remaining handlers still receive the event and the publisher never
    sees the exception.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable[..., Any]]] = {event: [] for event in EVENTS}

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        if event not in self._handlers:
            raise ValueError(f"Unknown event '{event}', expected one of {list(EVENTS)}")

        self._handlers[event].append(handler)

    def emit(self, event: str, *args) -> bool:
        """Notify every handler of ``event``. Returns True if anyone was listening."""
        handlers = list(self._handlers.get(event, ()))

        for handler in handlers:
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Handler {getattr(handler, '__name__', handler)!r} failed for '{event}': {e}",
                             exc_info=True)

        return bool(handlers)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))


# Shared by every Metric that is not given its own notifier
default_notifier = FailureNotifier()
