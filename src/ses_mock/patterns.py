# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Recipient classification into simulated lifecycle events.

Each well-known test recipient maps to the ordered list of SES events the
mock replays for it. Any other recipient gets the default ``Send`` then
``Delivery`` sequence.

Example:
    >>> events_for("Clicked@Test.com")
    (<EventKind.SEND: 'Send'>, <EventKind.DELIVERY: 'Delivery'>, <EventKind.CLICK: 'Click'>)
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType


class EventKind(str, Enum):
    """SES event types, valued with the literal ``eventType`` SES emits."""

    SEND = "Send"
    DELIVERY = "Delivery"
    BOUNCE = "Bounce"
    COMPLAINT = "Complaint"
    REJECT = "Reject"
    OPEN = "Open"
    CLICK = "Click"
    DELIVERY_DELAY = "DeliveryDelay"
    RENDERING_FAILURE = "Rendering Failure"


SOFT_BOUNCE_ADDRESS = "softbounced@test.com"

DEFAULT_EVENTS: tuple[EventKind, ...] = (EventKind.SEND, EventKind.DELIVERY)

# Keys are stored lower-cased; lookups lower-case the recipient.
EVENT_PATTERNS: MappingProxyType[str, tuple[EventKind, ...]] = MappingProxyType({
    "delivered@test.com": (EventKind.SEND, EventKind.DELIVERY),
    "bounced@test.com": (EventKind.SEND, EventKind.BOUNCE),
    SOFT_BOUNCE_ADDRESS: (EventKind.SEND, EventKind.DELIVERY, EventKind.BOUNCE),
    "complained@test.com": (EventKind.SEND, EventKind.DELIVERY, EventKind.COMPLAINT),
    "rejected@test.com": (EventKind.SEND, EventKind.REJECT),
    "opened@test.com": (EventKind.SEND, EventKind.DELIVERY, EventKind.OPEN),
    "clicked@test.com": (EventKind.SEND, EventKind.DELIVERY, EventKind.CLICK),
    "delayed@test.com": (EventKind.SEND, EventKind.DELIVERY_DELAY),
    "failed@test.com": (EventKind.SEND, EventKind.RENDERING_FAILURE),
})


def normalise_address(address: str) -> str:
    """Lower-case an address for pattern matching."""
    return address.lower()


def match_pattern(recipient: str) -> tuple[EventKind, ...] | None:
    """Return the registered events for ``recipient`` or None when unregistered."""
    return EVENT_PATTERNS.get(normalise_address(recipient))


def events_for(recipient: str) -> tuple[EventKind, ...]:
    """Return the ordered events to simulate for ``recipient``.

    Matching is exact on the whole address, case-insensitive. There is no
    domain or wildcard matching.
    """
    return match_pattern(recipient) or DEFAULT_EVENTS


def is_soft_bounce(recipient: str) -> bool:
    return normalise_address(recipient) == SOFT_BOUNCE_ADDRESS
