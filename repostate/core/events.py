"""Lightweight event bus for progress and log callbacks."""

import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

logger = structlog.get_logger()

# Event name constants
OPERATION_PROGRESS = "operation.progress"
OPERATION_LOG = "operation.log"


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


EventHandler = Callable[[Event], None]


class EventBus:
    """Synchronous fan-out of events to subscribed handlers.

    Handlers run on whichever thread emits the event, which for git
    operations is usually a worker thread. A failing handler is logged
    and skipped so it cannot abort the operation that emitted the event.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        with self._lock:
            self._handlers.setdefault(event_name, []).append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(event_name, [])
            if handler in handlers:
                handlers.remove(handler)

    def clear(self, event_name: str) -> None:
        with self._lock:
            self._handlers.pop(event_name, None)

    def emit(self, event: Event) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event.name, []))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "event_handler_error",
                    event_name=event.name,
                    handler_name=getattr(handler, "__name__", repr(handler)),
                )
