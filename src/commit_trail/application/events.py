from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from commit_trail.domain.models import utc_now
from commit_trail.logging_config import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    """A state change a presentation layer may want to re-read after.

    kind is one of "history", "progress", "checkout".
    """

    kind: str
    repository: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)


Listener = Callable[[EngineEvent], None]


class EventChannel:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: EngineEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("event listener failed", kind=event.kind, repository=event.repository)
