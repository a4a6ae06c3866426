"""Tests for Tracker."""

from datetime import datetime, timedelta, timezone

import pytest

from gateway.models import BusMessage, Topic
from gateway.tracker import Tracker


class TestTrackerTrack:
    """Tests for Tracker.track() method."""

    @pytest.mark.asyncio
    async def test_track_creates_event(self, tracker):
        """Test that track() creates a TraceEvent."""
        await tracker.track(event_type="test_event", actor="test_actor", data={"key": "value"})

        events = await tracker.get_trace_events()
        assert len(events) == 1
        assert events[0].event_type == "test_event"
        assert events[0].actor == "test_actor"
        assert events[0].data == {"key": "value"}
        assert events[0].id

    @pytest.mark.asyncio
    async def test_capacity_drops_oldest(self, event_bus):
        """Test that the log keeps only the newest events."""
        tracker = Tracker(event_bus, capacity=2)
        for i in range(3):
            await tracker.track(event_type=f"e{i}", actor="a", data={})

        events = await tracker.get_trace_events()
        assert [e.event_type for e in events] == ["e2", "e1"]


class TestTrackerQuery:
    """Tests for Tracker.get_trace_events() filters."""

    @pytest.mark.asyncio
    async def test_filters(self, tracker):
        """Test filtering by event type, actor and limit."""
        await tracker.track("message_buffered", "webhook", {})
        await tracker.track("turn_flushed", "debouncer", {})
        await tracker.track("message_buffered", "webhook", {})

        assert len(await tracker.get_trace_events(event_types=["message_buffered"])) == 2
        assert len(await tracker.get_trace_events(actor="debouncer")) == 1
        assert len(await tracker.get_trace_events(limit=1)) == 1

    @pytest.mark.asyncio
    async def test_after_accepts_naive_timestamp(self, tracker):
        """Test that a naive `after` is read as UTC."""
        await tracker.track("old", "a", {})
        after = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(seconds=1)

        assert await tracker.get_trace_events(after=after) == []

    @pytest.mark.asyncio
    async def test_clear(self, tracker):
        """Test that clear() empties the log."""
        await tracker.track("e", "a", {})
        tracker.clear()

        assert len(tracker) == 0


class TestTrackerBusSubscription:
    """Tests for Tracker's EventBus subscription."""

    @pytest.mark.asyncio
    async def test_bus_messages_are_traced(self, tracker, event_bus):
        """Test that published messages produce a trace event."""
        await event_bus.publish(
            BusMessage(
                id="bus1",
                topic=Topic.REPLY,
                payload={"user_id": "U1", "content": "สวัสดีค่ะ"},
                source="turn_worker",
                timestamp=datetime.now(timezone.utc),
            )
        )

        events = await tracker.get_trace_events(event_types=["bus_message_published"])
        assert len(events) == 1
        assert events[0].data["topic"] == "reply"
        assert events[0].data["source"] == "turn_worker"
