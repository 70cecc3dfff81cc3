"""
Base class for program event listeners.
"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from itertools import count
from typing import Any

from pumpfun_sdk.platforms.pumpfun.event_parser import EVENT_TYPES, EventEnvelope
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)

# callback(event, slot, signature), sync or async
EventCallback = Callable[[Any, int, str], Awaitable[None] | None]


class BaseEventListener(ABC):
    """Keeps per-event-type callbacks and dispatches decoded events to them."""

    def __init__(self):
        self._listeners: dict[int, tuple[str, EventCallback]] = {}
        self._ids = count(1)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_event_listener(self, event_type: str, callback: EventCallback) -> int:
        """Register a callback for one event type.

        Args:
            event_type: One of createEvent, tradeEvent, completeEvent, setParamsEvent
            callback: Called with (event, slot, signature)

        Returns:
            Listener id for remove_event_listener

        Raises:
            ValueError: If the event type is unknown
        """
        if event_type not in EVENT_TYPES:
            raise ValueError(
                f"Unknown event type '{event_type}', expected one of {sorted(EVENT_TYPES)}"
            )
        listener_id = next(self._ids)
        self._listeners[listener_id] = (event_type, callback)
        logger.debug(f"Added {event_type} listener {listener_id}")
        return listener_id

    def remove_event_listener(self, listener_id: int) -> None:
        """Remove a previously registered callback. Unknown ids are ignored."""
        if self._listeners.pop(listener_id, None) is not None:
            logger.debug(f"Removed listener {listener_id}")

    async def dispatch(self, envelope: EventEnvelope) -> int:
        """Invoke every callback registered for the envelope's event type.

        Returns:
            Number of callbacks invoked
        """
        invoked = 0
        for listener_id, (event_type, callback) in list(self._listeners.items()):
            if event_type != envelope.event_type:
                continue
            invoked += 1
            try:
                result = callback(envelope.event, envelope.slot, envelope.signature)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Event listener {listener_id} failed on {event_type}")
        return invoked

    @abstractmethod
    async def listen(self) -> None:
        """Receive events until cancelled, dispatching them to callbacks."""
        pass
