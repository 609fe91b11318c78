"""Tests for event fan-out."""

import asyncio

import pytest

from relay.event_broadcaster import CompletionEvent, ErrorEvent, ProgressEvent


class TestEventMessages:
    """Test the wire form of events."""

    def test_error_message(self):
        assert ErrorEvent("boom", path="/d/a").to_message() == {"error": "boom"}

    def test_progress_message(self):
        event = ProgressEvent(path="/d/a", name="a", size=10, progress=40.0)

        assert event.to_message() == {
            "path": "/d/a",
            "name": "a",
            "size": 10,
            "upload_id": "",
            "upload_progress": 40.0,
        }

    def test_completion_message(self):
        event = CompletionEvent(path="/d/a", name="a", size=10, upload_id="R1", link="https://x/R1")

        message = event.to_message()

        assert message["upload_id"] == "R1"
        assert message["upload_progress"] == 100
        assert message["link"] == "https://x/R1"

    def test_session_id_stays_off_the_wire(self):
        tagged = ErrorEvent("boom", path="/d/a", session_id="s1")

        assert "session_id" not in tagged.to_message()
        assert tagged == ErrorEvent("boom", path="/d/a")


class TestEventBroadcaster:
    """Test EventBroadcaster."""

    @pytest.mark.asyncio
    async def test_every_subscriber_gets_every_event(self, broadcaster):
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()
        events = [ProgressEvent("/d/a", "a", 10, p) for p in (10.0, 50.0)] + [ErrorEvent("x")]

        for event in events:
            broadcaster.publish(event)

        assert [first.get_nowait() for _ in events] == events
        assert [await second.get() for _ in events] == events

    @pytest.mark.asyncio
    async def test_no_replay_for_late_subscribers(self, broadcaster):
        broadcaster.publish(ErrorEvent("early"))
        late = broadcaster.subscribe()

        with pytest.raises(asyncio.QueueEmpty):
            late.get_nowait()

    @pytest.mark.asyncio
    async def test_publish_without_listeners_is_dropped(self, broadcaster):
        broadcaster.publish(ErrorEvent("nobody"))

        assert broadcaster.listener_count == 0

    @pytest.mark.asyncio
    async def test_listen_unsubscribes_on_exit(self, broadcaster):
        with broadcaster.listen() as subscription:
            assert broadcaster.listener_count == 1
            broadcaster.publish(ErrorEvent("inside"))

        broadcaster.publish(ErrorEvent("outside"))

        assert broadcaster.listener_count == 0
        assert subscription.get_nowait() == ErrorEvent("inside")
        with pytest.raises(asyncio.QueueEmpty):
            subscription.get_nowait()

    @pytest.mark.asyncio
    async def test_unsubscribe_twice_is_harmless(self, broadcaster):
        subscription = broadcaster.subscribe()

        broadcaster.unsubscribe(subscription)
        broadcaster.unsubscribe(subscription)

        assert broadcaster.listener_count == 0

    @pytest.mark.asyncio
    async def test_slow_listener_does_not_block_publisher(self, broadcaster):
        slow = broadcaster.subscribe()

        for i in range(1000):
            broadcaster.publish(ProgressEvent("/d/a", "a", 1000, i / 10))

        assert slow.queue.qsize() == 1000
