"""
In-process notification channel for live ``bookAdded`` updates.

The channel is an explicitly owned object: the server creates one and hands
it to the resolution engine, and every test builds its own.

Delivery model:
- ``publish`` is synchronous. It enqueues the event for every subscriber
  registered at that moment and returns; it never waits for consumers.
- Each subscriber drains its own unbounded queue, so a slow or stalled
  subscriber cannot hold up publication or the other subscribers.
- There is no backlog. A subscriber sees only events published after it
  registered.

Subscription lifecycle::

    CONNECTING -> ACTIVE -> COMPLETED | ERRORED | DISCONNECTED

Every terminal state removes the registration from the channel.
"""

import asyncio
import enum
import logging
from collections import defaultdict
from typing import Any

from pydantic import BaseModel

from .models.book import Book

logger = logging.getLogger(__name__)


class Topic(str, enum.Enum):
    """Notification topics. The catalog publishes a single one."""

    BOOK_ADDED = "BOOK_ADDED"


class SubscriptionState(str, enum.Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    COMPLETED = "completed"
    ERRORED = "errored"
    DISCONNECTED = "disconnected"


TERMINAL_STATES = frozenset(
    {SubscriptionState.COMPLETED, SubscriptionState.ERRORED, SubscriptionState.DISCONNECTED}
)


class BookAdded(BaseModel):
    """Event published after a book is persisted; ``book`` matches addBook's result."""

    book: Book


_END_OF_STREAM = object()


class Subscription:
    """
    One subscriber's live, order-preserving event stream.

    Use it as an async context manager so the registration is always
    released, and iterate it for events:

    ```python
    async with channel.subscribe() as subscription:
        async for event in subscription:
            ...
    ```
    """

    def __init__(self, channel: "NotificationChannel", topic: Topic):
        self.channel = channel
        self.topic = topic
        self.state = SubscriptionState.CONNECTING
        self._queue: asyncio.Queue[Any] = asyncio.Queue()

    @property
    def is_closed(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def pending(self) -> int:
        """Events delivered but not yet consumed."""
        return self._queue.qsize()

    def _deliver(self, event: Any) -> None:
        if self.state is not SubscriptionState.ACTIVE:
            raise RuntimeError(f"Cannot deliver to a {self.state.value} subscription")
        self._queue.put_nowait(event)

    def close(self, state: SubscriptionState = SubscriptionState.DISCONNECTED) -> None:
        """Move to a terminal state and release the channel registration."""
        if state not in TERMINAL_STATES:
            raise ValueError(f"{state.value} is not a terminal subscription state")
        if self.is_closed:
            return
        self.state = state
        self.channel._unregister(self)
        self._queue.put_nowait(_END_OF_STREAM)

    async def next_event(self, timeout: float | None = None) -> Any | None:
        """Wait for the next event; None once the stream ends or ``timeout`` passes."""
        try:
            async with asyncio.timeout(timeout):
                return await anext(self)
        except (TimeoutError, StopAsyncIteration):
            return None

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Any:
        if self.is_closed and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _END_OF_STREAM:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None or issubclass(exc_type, asyncio.CancelledError | GeneratorExit):
            self.close(SubscriptionState.DISCONNECTED)
        else:
            self.close(SubscriptionState.ERRORED)
        return False


class NotificationChannel:
    """Process-wide publish/subscribe bus keyed by topic."""

    def __init__(self) -> None:
        self._subscribers: dict[Topic, list[Subscription]] = defaultdict(list)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, topic: Topic = Topic.BOOK_ADDED) -> Subscription:
        """Register a new subscriber. It receives events published from now on."""
        if self._closed:
            raise RuntimeError("Notification channel is closed")

        subscription = Subscription(self, topic)
        self._subscribers[topic].append(subscription)
        subscription.state = SubscriptionState.ACTIVE
        logger.info(
            "Subscriber registered on %s (%d active)", topic.value, len(self._subscribers[topic])
        )
        return subscription

    def publish(self, event: Any, topic: Topic = Topic.BOOK_ADDED) -> int:
        """
        Enqueue ``event`` for every current subscriber of ``topic``.

        A subscriber whose delivery fails is moved to ERRORED and dropped;
        the others still receive the event.

        Returns:
            Number of subscribers the event was enqueued for
        """
        delivered = 0
        for subscription in list(self._subscribers.get(topic, ())):
            try:
                subscription._deliver(event)
            except Exception:
                logger.exception("Delivery to a %s subscriber failed", topic.value)
                subscription.close(SubscriptionState.ERRORED)
                continue
            delivered += 1

        logger.debug("Published %s to %d subscriber(s)", topic.value, delivered)
        return delivered

    def subscriber_count(self, topic: Topic = Topic.BOOK_ADDED) -> int:
        return len(self._subscribers.get(topic, ()))

    def close(self) -> None:
        """Complete every live subscription and refuse new ones."""
        for subscriptions in list(self._subscribers.values()):
            for subscription in list(subscriptions):
                subscription.close(SubscriptionState.COMPLETED)
        self._closed = True

    def _unregister(self, subscription: Subscription) -> None:
        subscriptions = self._subscribers.get(subscription.topic)
        if subscriptions and subscription in subscriptions:
            subscriptions.remove(subscription)
            logger.info(
                "Subscriber left %s as %s (%d active)",
                subscription.topic.value,
                subscription.state.value,
                len(subscriptions),
            )
