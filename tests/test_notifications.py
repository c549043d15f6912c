"""
Tests for the notification channel.

Covers delivery (no backlog, ordering, subscriber independence) and the
subscription lifecycle (every terminal state releases the registration).
"""

import asyncio

import pytest

from book_catalog_mcp.notifications import NotificationChannel, SubscriptionState, Topic


async def drain(subscription, count: int) -> list:
    return [await subscription.next_event(timeout=1.0) for _ in range(count)]


class TestDelivery:
    async def test_subscribe_is_active(self, channel):
        subscription = channel.subscribe()

        assert subscription.state is SubscriptionState.ACTIVE
        assert subscription.topic is Topic.BOOK_ADDED
        assert channel.subscriber_count() == 1

    async def test_no_backlog(self, channel):
        assert channel.publish("before") == 0

        subscription = channel.subscribe()
        channel.publish("after")

        assert await subscription.next_event(timeout=1.0) == "after"
        assert subscription.pending == 0

    async def test_events_arrive_in_publication_order(self, channel):
        subscription = channel.subscribe()

        for event in ["one", "two", "three"]:
            channel.publish(event)

        assert await drain(subscription, 3) == ["one", "two", "three"]

    async def test_slow_subscriber_does_not_block_others(self, channel):
        stalled = channel.subscribe()
        active = channel.subscribe()

        delivered = [channel.publish(n) for n in range(5)]

        assert delivered == [2] * 5
        assert await drain(active, 5) == [0, 1, 2, 3, 4]
        assert stalled.pending == 5

    async def test_failing_subscriber_is_dropped(self, channel, monkeypatch):
        broken = channel.subscribe()
        healthy = channel.subscribe()

        def explode(event):
            raise RuntimeError("consumer gone")

        monkeypatch.setattr(broken, "_deliver", explode)

        assert channel.publish("event") == 1
        assert broken.state is SubscriptionState.ERRORED
        assert channel.subscriber_count() == 1
        assert await healthy.next_event(timeout=1.0) == "event"

    async def test_next_event_times_out(self, channel):
        subscription = channel.subscribe()

        assert await subscription.next_event(timeout=0.01) is None
        assert subscription.state is SubscriptionState.ACTIVE


class TestLifecycle:
    async def test_normal_exit_disconnects(self, channel):
        async with channel.subscribe() as subscription:
            assert channel.subscriber_count() == 1

        assert subscription.state is SubscriptionState.DISCONNECTED
        assert channel.subscriber_count() == 0

    async def test_error_marks_errored(self, channel):
        with pytest.raises(ValueError):
            async with channel.subscribe() as subscription:
                raise ValueError("boom")

        assert subscription.state is SubscriptionState.ERRORED
        assert channel.subscriber_count() == 0

    async def test_cancelled_consumer_disconnects(self, channel):
        subscription = channel.subscribe()
        consuming = asyncio.Event()

        async def consume():
            async with subscription:
                consuming.set()
                async for _ in subscription:
                    pass

        task = asyncio.create_task(consume())
        await consuming.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert subscription.state is SubscriptionState.DISCONNECTED
        assert channel.subscriber_count() == 0

    async def test_departed_subscriber_gets_nothing(self, channel):
        async with channel.subscribe() as subscription:
            pass

        assert channel.publish("late") == 0
        assert await subscription.next_event(timeout=0.01) is None

    async def test_close_completes_streams(self, channel):
        subscription = channel.subscribe()
        channel.publish("last")

        channel.close()

        assert subscription.state is SubscriptionState.COMPLETED
        assert channel.subscriber_count() == 0
        assert [event async for event in subscription] == ["last"]

    async def test_closed_channel_refuses_subscribers(self, channel):
        channel.close()

        assert channel.closed
        with pytest.raises(RuntimeError):
            channel.subscribe()

    async def test_close_requires_terminal_state(self, channel):
        subscription = channel.subscribe()

        with pytest.raises(ValueError):
            subscription.close(SubscriptionState.ACTIVE)

    async def test_close_is_idempotent(self, channel):
        subscription = channel.subscribe()

        subscription.close(SubscriptionState.COMPLETED)
        subscription.close(SubscriptionState.ERRORED)

        assert subscription.state is SubscriptionState.COMPLETED


def test_channels_are_independent():
    first, second = NotificationChannel(), NotificationChannel()
    first.subscribe()

    assert second.subscriber_count() == 0
    assert second.publish("event") == 0
