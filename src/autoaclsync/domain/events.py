"""
Structured observability events.

The engine emits SyncEvents to an injected EventSink instead of calling a
global logger from business logic. The default sink forwards every event to
the standard logging module, so the CLI output is unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol


@dataclass(frozen=True)
class SyncEvent:
    """A named event with key/value context, e.g. ``rows-pruned count=3``."""

    name: str
    fields: Dict[str, Any] = field(default_factory=dict)
    level: int = logging.INFO
    message: str = ""

    def __str__(self) -> str:
        context = "  ".join(f"{k}={v}" for k, v in self.fields.items())
        text = f"{self.name:<20} {context}".rstrip()
        if self.message:
            text = f"{text}  {self.message}"
        return text


class EventSink(Protocol):
    """Protocol for receiving engine events."""

    def emit(self, event: SyncEvent) -> None:
        ...


class LoggingEventSink:
    """Default sink - forwards events to a logger at the event's level."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("autoaclsync.events")

    def emit(self, event: SyncEvent) -> None:
        self.logger.log(event.level, "%s", event)


def emit(sink: EventSink, name: str, message: str = "", level: int = logging.INFO, **fields: Any) -> None:
    """Shorthand used throughout the engine."""
    sink.emit(SyncEvent(name=name, fields=fields, level=level, message=message))
