"""Tests for recipient classification."""

import pytest

from ses_mock.patterns import (
    DEFAULT_EVENTS,
    EVENT_PATTERNS,
    EventKind,
    events_for,
    is_soft_bounce,
    match_pattern,
)


class TestEventsFor:
    """Tests for events_for()."""

    @pytest.mark.parametrize(
        "recipient, expected",
        [
            ("delivered@test.com", ["Send", "Delivery"]),
            ("bounced@test.com", ["Send", "Bounce"]),
            ("softbounced@test.com", ["Send", "Delivery", "Bounce"]),
            ("complained@test.com", ["Send", "Delivery", "Complaint"]),
            ("rejected@test.com", ["Send", "Reject"]),
            ("opened@test.com", ["Send", "Delivery", "Open"]),
            ("clicked@test.com", ["Send", "Delivery", "Click"]),
            ("delayed@test.com", ["Send", "DeliveryDelay"]),
            ("failed@test.com", ["Send", "Rendering Failure"]),
        ],
    )
    def test_registered_recipients(self, recipient, expected):
        assert [e.value for e in events_for(recipient)] == expected

    def test_matching_ignores_case(self):
        assert events_for("Clicked@Test.COM") == EVENT_PATTERNS["clicked@test.com"]

    def test_unregistered_recipient_gets_default(self):
        assert events_for("someone@example.com") == DEFAULT_EVENTS
        assert DEFAULT_EVENTS == (EventKind.SEND, EventKind.DELIVERY)

    def test_no_domain_or_partial_matching(self):
        assert match_pattern("clicked@test.com.evil") is None
        assert match_pattern("xclicked@test.com") is None
        assert match_pattern("bounced@other.com") is None

    def test_every_sequence_starts_with_send(self):
        for events in EVENT_PATTERNS.values():
            assert events[0] is EventKind.SEND


def test_pattern_table_is_read_only():
    with pytest.raises(TypeError):
        EVENT_PATTERNS["new@test.com"] = DEFAULT_EVENTS


def test_is_soft_bounce():
    assert is_soft_bounce("softbounced@test.com")
    assert is_soft_bounce("SoftBounced@Test.com")
    assert not is_soft_bounce("bounced@test.com")


def test_event_kind_values_are_wire_literals():
    assert EventKind("Rendering Failure") is EventKind.RENDERING_FAILURE
    assert EventKind.DELIVERY_DELAY == "DeliveryDelay"
