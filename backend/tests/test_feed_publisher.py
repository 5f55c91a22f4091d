"""
Tests for order feed publishing: retries, pausing while Redis fails, and
fan-out to the branch channel.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from shared.infrastructure.events import (
    ORDER_UPDATED,
    Event,
    FeedPublisher,
    channel_branch_orders,
    channel_orders,
    publish_order_event,
)
from shared.infrastructure.events import publisher as publisher_module


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def event(order_id="ord-a"):
    return Event(type=ORDER_UPDATED, order_id=order_id)


class TestFeedPublisher:
    @pytest.mark.asyncio
    async def test_publish_returns_receiver_count(self):
        client = AsyncMock()
        client.publish.return_value = 2
        publisher = FeedPublisher(max_retries=1)

        assert await publisher.publish(client, "venue:orders", event()) == 2
        channel, payload = client.publish.await_args.args
        assert channel == "venue:orders"
        assert json.loads(payload)["order_id"] == "ord-a"
        assert publisher.stats()["published"] == 1

    @pytest.mark.asyncio
    async def test_retries_before_giving_up(self):
        client = AsyncMock()
        client.publish.side_effect = [ConnectionError("down"), 1]
        publisher = FeedPublisher(max_retries=3)

        with patch.object(publisher_module.asyncio, "sleep", new=AsyncMock()) as sleep:
            assert await publisher.publish(client, "venue:orders", event()) == 1

        assert client.publish.await_count == 2
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_pauses_after_repeated_failures_then_probes(self):
        clock = FakeClock()
        client = AsyncMock()
        client.publish.side_effect = ConnectionError("down")
        publisher = FeedPublisher(max_retries=1, failure_threshold=2, cooldown_seconds=30, clock=clock)

        for _ in range(2):
            with pytest.raises(ConnectionError):
                await publisher.publish(client, "venue:orders", event())
        assert publisher.paused

        assert await publisher.publish(client, "venue:orders", event()) == 0
        assert client.publish.await_count == 2
        assert publisher.stats()["skipped"] == 1

        clock.now += 31
        client.publish.side_effect = None
        client.publish.return_value = 1
        assert await publisher.publish(client, "venue:orders", event()) == 1
        assert not publisher.paused
        assert publisher.stats()["consecutive_failures"] == 0

    @pytest.mark.asyncio
    async def test_oversized_event_rejected(self, monkeypatch):
        from shared.config.settings import settings

        monkeypatch.setattr(settings, "max_event_size", 10)
        client = AsyncMock()

        with pytest.raises(ValueError):
            await FeedPublisher(max_retries=1).publish(client, "venue:orders", event())
        client.publish.assert_not_awaited()


class TestPublishOrderEvent:
    @pytest.mark.asyncio
    async def test_branch_orders_also_go_to_branch_channel(self, monkeypatch):
        monkeypatch.setattr(publisher_module, "_publisher", FeedPublisher(max_retries=1))
        client = AsyncMock()
        client.publish.return_value = 1

        await publish_order_event(
            client,
            event_type=ORDER_UPDATED,
            order_id="ord-a",
            order_number=4,
            branch_id="b1",
            appended_id="w1",
            actor_name="Mia",
        )

        channels = [call.args[0] for call in client.publish.await_args_list]
        assert channels == [channel_orders(), channel_branch_orders("b1")]
        message = json.loads(client.publish.await_args_list[0].args[1])
        assert message["entity"] == {"order_number": 4, "source": None, "appended_id": "w1"}
        assert message["actor"]["name"] == "Mia"
