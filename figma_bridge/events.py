"""
Fire-and-forget notifications to observers.

Events: components-received, transformation-complete, session-deleted.
An observer that subscribes after an event was published never sees it;
a failing observer is logged and skipped, never retried.
"""

import logging
import threading
from concurrent.futures import Executor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

COMPONENTS_RECEIVED = "components-received"
TRANSFORMATION_COMPLETE = "transformation-complete"
SESSION_DELETED = "session-deleted"

WILDCARD = "*"


@dataclass
class Event:
    name: str
    session_id: str
    payload: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "type": self.name,
            "sessionId": self.session_id,
            "data": dict(self.payload),
            "timestamp": self.timestamp.isoformat(),
        }


Observer = Callable[[Event], None]


class EventBus:
    """Publishes inline by default; pass an executor to dispatch off the caller's thread."""

    def __init__(self, executor: Optional[Executor] = None):
        self.executor = executor
        self._lock = threading.Lock()
        self._observers: Dict[str, List[Observer]] = {}

    def subscribe(self, observer: Observer, event: str = WILDCARD) -> Callable[[], None]:
        with self._lock:
            self._observers.setdefault(event, []).append(observer)

        def unsubscribe() -> None:
            with self._lock:
                observers = self._observers.get(event, [])
                if observer in observers:
                    observers.remove(observer)

        return unsubscribe

    def publish(self, name: str, session_id: str, **payload) -> Event:
        event = Event(name=name, session_id=session_id, payload=payload)
        with self._lock:
            targets = list(self._observers.get(name, [])) + list(self._observers.get(WILDCARD, []))
        for observer in targets:
            if self.executor is not None:
                try:
                    self.executor.submit(self._deliver, observer, event)
                except RuntimeError as exc:
                    # executor shut down
                    logger.warning("[events] %s dropped for %r: %s", name, observer, exc)
            else:
                self._deliver(observer, event)
        return event

    @staticmethod
    def _deliver(observer: Observer, event: Event) -> None:
        try:
            observer(event)
        except Exception:
            logger.warning("[events] observer %r failed on %s", observer, event.name, exc_info=True)
