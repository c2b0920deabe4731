"""
Tests for event fan-out to live subscribers.
"""

import asyncio

import pytest

from sheet_sync.processor import Broadcaster, SyncCompleteEvent
from tests.conftest import EventCollector


class StalledSink:
    async def deliver(self, event: dict) -> None:
        await asyncio.Event().wait()


class FailingSink:
    def __init__(self):
        self.attempts = 0

    async def deliver(self, event: dict) -> None:
        self.attempts += 1
        raise ConnectionError("socket closed")


def complete(store_id: str) -> SyncCompleteEvent:
    return SyncCompleteEvent(store_id=store_id)


class TestBroadcaster:

    @pytest.mark.asyncio
    async def test_events_arrive_in_publish_order(self):
        broadcaster = Broadcaster()
        collector = EventCollector()
        broadcaster.subscribe(collector)

        for store_id in ("s1", "s2", "s3"):
            await broadcaster.publish(complete(store_id))
        await broadcaster.flush()

        assert [e["store_id"] for e in collector.events] == ["s1", "s2", "s3"]
        broadcaster.close()

    @pytest.mark.asyncio
    async def test_publish_does_not_wait_for_stalled_sink(self):
        broadcaster = Broadcaster()
        collector = EventCollector()
        broadcaster.subscribe(StalledSink())
        broadcaster.subscribe(collector)

        await asyncio.wait_for(broadcaster.publish(complete("s1")), timeout=0.5)
        await asyncio.wait_for(collector.done.wait(), timeout=0.5)

        assert collector.events[0]["store_id"] == "s1"
        broadcaster.close()

    @pytest.mark.asyncio
    async def test_full_buffer_drops_for_that_sink_only(self):
        broadcaster = Broadcaster(max_pending=2)
        stalled = StalledSink()
        collector = EventCollector()
        broadcaster.subscribe(stalled)
        broadcaster.subscribe(collector)

        for i in range(5):
            await broadcaster.publish(complete(f"s{i}"))
            # Let the delivery tasks pick up what they can
            await asyncio.sleep(0)

        assert broadcaster.dropped_events(stalled) > 0
        assert broadcaster.dropped_events(collector) == 0
        for _ in range(50):
            if len(collector.events) == 5:
                break
            await asyncio.sleep(0.01)
        assert [e["store_id"] for e in collector.events] == ["s0", "s1", "s2", "s3", "s4"]
        broadcaster.close()

    @pytest.mark.asyncio
    async def test_failing_sink_is_skipped(self):
        broadcaster = Broadcaster()
        failing = FailingSink()
        collector = EventCollector()
        broadcaster.subscribe(failing)
        broadcaster.subscribe(collector)

        await broadcaster.publish(complete("s1"))
        await broadcaster.publish(complete("s2"))
        await broadcaster.flush()

        assert failing.attempts == 2
        assert [e["store_id"] for e in collector.events] == ["s1", "s2"]
        broadcaster.close()

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self):
        broadcaster = Broadcaster()
        collector = EventCollector()
        broadcaster.subscribe(collector)
        broadcaster.subscribe(collector)
        assert broadcaster.subscriber_count == 1

        broadcaster.unsubscribe(collector)
        await broadcaster.publish(complete("s1"))
        await broadcaster.flush()

        assert collector.events == []
        assert broadcaster.subscriber_count == 0
