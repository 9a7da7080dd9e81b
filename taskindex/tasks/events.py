"""Publish/subscribe notifications from the task store to the UI layer.

Handlers may be plain callables or coroutine functions. They run in
priority order (higher first); a failing handler is logged and the
remaining handlers still run.
"""

import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from itertools import count
from typing import Any

from taskindex.observability.logging import get_logger
from taskindex.tasks.models import TaskEvent, TaskEventType

logger = get_logger(__name__)

EventHandler = Callable[[TaskEvent], Awaitable[Any] | Any]

_subscription_ids = count(1)


@dataclass
class _Subscription:
    handler: EventHandler
    once: bool = False
    priority: int = 0
    id: int = field(default_factory=lambda: next(_subscription_ids))


class EventBus:
    """In-process event bus with a bounded emission history.

    Instantiated explicitly and handed to the store; there is no
    process-wide instance.
    """

    def __init__(self, history_size: int = 100) -> None:
        self._subscribers: dict[TaskEventType, list[_Subscription]] = {}
        self._history: deque[TaskEvent] = deque(maxlen=history_size)

    def subscribe(
        self,
        event_type: TaskEventType,
        handler: EventHandler,
        *,
        once: bool = False,
        priority: int = 0,
    ) -> Callable[[], None]:
        """Register a handler.

        Returns:
            A function that removes the subscription
        """
        subscription = _Subscription(handler=handler, once=once, priority=priority)
        subscribers = self._subscribers.setdefault(event_type, [])
        subscribers.append(subscription)
        # Stable sort keeps registration order within a priority
        subscribers.sort(key=lambda s: s.priority, reverse=True)
        return lambda: self._unsubscribe(event_type, subscription.id)

    def _unsubscribe(self, event_type: TaskEventType, subscription_id: int) -> None:
        subscribers = self._subscribers.get(event_type)
        if not subscribers:
            return
        self._subscribers[event_type] = [s for s in subscribers if s.id != subscription_id]
        if not self._subscribers[event_type]:
            del self._subscribers[event_type]

    def has_subscribers(self, event_type: TaskEventType) -> bool:
        return bool(self._subscribers.get(event_type))

    async def emit(self, event: TaskEvent) -> list[Any]:
        """Deliver an event to every subscriber of its type.

        Returns:
            Handler return values, in delivery order, for handlers that succeeded
        """
        self._history.append(event)

        results: list[Any] = []
        for subscription in list(self._subscribers.get(event.type, ())):
            if subscription.once:
                self._unsubscribe(event.type, subscription.id)
            try:
                result = subscription.handler(event)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    event_type=event.type.value,
                    handler=getattr(subscription.handler, "__qualname__", repr(subscription.handler)),
                    error=str(e),
                )
        return results

    def history(self, event_type: TaskEventType | None = None) -> list[TaskEvent]:
        """Recently emitted events, oldest first."""
        if event_type is None:
            return list(self._history)
        return [event for event in self._history if event.type == event_type]

    def clear(self, event_type: TaskEventType | None = None) -> None:
        """Drop subscribers of one event type, or of all types."""
        if event_type is None:
            self._subscribers.clear()
        else:
            self._subscribers.pop(event_type, None)

    def clear_history(self) -> None:
        self._history.clear()
