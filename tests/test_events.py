"""
Tests for the in-process EventBus.
"""

from datetime import date

from focus_os.events import EventBus


class TestPublish:
    def test_delivers_to_subscribers_in_order(self, bus):
        received = []
        bus.subscribe("a", lambda e: received.append(("first", e.data)))
        bus.subscribe("a", lambda e: received.append(("second", e.data)))
        bus.publish("a", 1)
        assert received == [("first", 1), ("second", 1)]

    def test_wildcard_receives_everything(self, bus):
        received = []
        bus.subscribe("*", lambda e: received.append(e.event_type))
        bus.publish("a")
        bus.publish("b")
        assert received == ["a", "b"]

    def test_unsubscribe(self, bus):
        received = []
        unsubscribe = bus.subscribe("a", received.append)
        unsubscribe()
        unsubscribe()
        bus.publish("a")
        assert received == []

    def test_failing_handler_does_not_stop_delivery(self, bus, caplog):
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe("a", broken)
        bus.subscribe("a", received.append)
        bus.publish("a")
        assert len(received) == 1
        assert "Handler for a failed" in caplog.text

    def test_sequence_numbers_increase(self, bus):
        first = bus.publish("a")
        second = bus.publish("b")
        assert second.seq == first.seq + 1
        assert bus.last_seq == second.seq

    def test_timestamp_from_clock(self, bus):
        assert bus.publish("a").timestamp == "2026-10-19T09:00:00+04:00"


class TestHistory:
    def test_since_and_type_filters(self, bus):
        first = bus.publish("a")
        bus.publish("b")
        bus.publish("a")
        assert [e.event_type for e in bus.history(since=first.seq)] == ["b", "a"]
        assert len(bus.history(event_type="a")) == 2

    def test_bounded(self):
        small = EventBus(max_history=2)
        for n in range(5):
            small.publish("n", n)
        assert [e.data for e in small.history()] == [3, 4]
        assert small.last_seq == 5


class TestSerialisation:
    def test_to_dict_converts_values(self, bus):
        event = bus.publish("a", {"day": date(2026, 10, 19), "items": (1, 2)})
        assert event.to_dict()["data"] == {"day": "2026-10-19", "items": [1, 2]}
