"""In-process event bus for cross-cutting auth signals."""
from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any, Callable

from jobboard.log import get_logger

log = get_logger(__name__)

UNAUTHENTICATED = "auth:unauthorized"
LOGGED_OUT = "auth:logout"

Handler = Callable[..., None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler``; the returned callable unsubscribes it."""
        with self._lock:
            self._handlers[event].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers[event]:
                    self._handlers[event].remove(handler)

        return unsubscribe

    def emit(self, event: str, **payload: Any) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event, ()))
        log.debug("emit %s -> %d handler(s)", event, len(handlers))
        for handler in handlers:
            try:
                handler(**payload)
            except Exception as exc:
                log.error("Handler for %s failed: %s", event, exc)
