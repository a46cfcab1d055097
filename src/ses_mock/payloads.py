# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Construction of SES event bodies and SNS notification envelopes.

The shapes mirror what SES publishes to an SNS topic through a configuration
set event destination: a common ``mail`` object plus one event-specific
object keyed by the camel-cased event type (``delivery``, ``bounce`` ...).

Nothing here performs I/O. Apart from generated ids and timestamps the
output only depends on the arguments.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from .models import DEFAULT_TOPIC_ARN, NotificationEnvelope
from .patterns import EventKind, is_soft_bounce

SOURCE_ADDRESS = "sender@test.com"
PROCESSING_TIME_MILLIS = 100
SMTP_RESPONSE = "250 OK"
PLACEHOLDER_IP = "127.0.0.1"
PLACEHOLDER_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)"
CLICK_LINK = "https://unsend.dev"
CLICK_LINK_TAGS = {"campaign": "welcome", "type": "cta"}
DELAY_TYPE = "MailboxFull"
DELAY_EXPIRATION = timedelta(hours=24)


def utc_now_iso(now: datetime | None = None) -> str:
    """Return a UTC timestamp formatted like ``2024-01-31T12:00:00.000Z``."""
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_id() -> str:
    return str(uuid.uuid4())


def _send(recipient: str, timestamp: str, now: datetime) -> dict[str, Any]:
    return {}


def _delivery(recipient: str, timestamp: str, now: datetime) -> dict[str, Any]:
    return {
        "timestamp": timestamp,
        "processingTimeMillis": PROCESSING_TIME_MILLIS,
        "recipients": [recipient],
        "smtpResponse": SMTP_RESPONSE,
    }


def _bounce(recipient: str, timestamp: str, now: datetime) -> dict[str, Any]:
    return {
        "bounceType": "Transient" if is_soft_bounce(recipient) else "Permanent",
        "bounceSubType": "General",
        "timestamp": timestamp,
        "feedbackId": _new_id(),
        "bouncedRecipients": [{"emailAddress": recipient}],
    }


def _complaint(recipient: str, timestamp: str, now: datetime) -> dict[str, Any]:
    return {
        "complainedRecipients": [{"emailAddress": recipient}],
        "timestamp": timestamp,
        "feedbackId": _new_id(),
    }


def _open(recipient: str, timestamp: str, now: datetime) -> dict[str, Any]:
    return {
        "ipAddress": PLACEHOLDER_IP,
        "timestamp": timestamp,
        "userAgent": PLACEHOLDER_USER_AGENT,
    }


def _click(recipient: str, timestamp: str, now: datetime) -> dict[str, Any]:
    return {
        "ipAddress": PLACEHOLDER_IP,
        "timestamp": timestamp,
        "userAgent": PLACEHOLDER_USER_AGENT,
        "link": CLICK_LINK,
        "linkTags": dict(CLICK_LINK_TAGS),
    }


def _delivery_delay(recipient: str, timestamp: str, now: datetime) -> dict[str, Any]:
    return {
        "delayType": DELAY_TYPE,
        "expirationTime": utc_now_iso(now + DELAY_EXPIRATION),
        "delayedRecipients": [recipient],
        "timestamp": timestamp,
    }


# Reject and Rendering Failure carry the common ``mail`` object only.
_DETAIL_BUILDERS = {
    EventKind.SEND: ("send", _send),
    EventKind.DELIVERY: ("delivery", _delivery),
    EventKind.BOUNCE: ("bounce", _bounce),
    EventKind.COMPLAINT: ("complaint", _complaint),
    EventKind.OPEN: ("open", _open),
    EventKind.CLICK: ("click", _click),
    EventKind.DELIVERY_DELAY: ("deliveryDelay", _delivery_delay),
}


def build_event_body(
    kind: EventKind | str,
    message_id: str,
    recipient: str,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the SES event body for one simulated lifecycle event.

    Args:
        kind: Event to simulate. Plain strings are coerced to :class:`EventKind`.
        message_id: The id returned to the caller of SendEmail.
        recipient: The single recipient this event refers to.
        now: Clock override, mainly for tests.

    Returns:
        A JSON-serialisable dict with ``eventType``, ``mail`` and, for most
        kinds, an event-specific object.

    Raises:
        ValueError: If ``kind`` is not a known event type.
    """
    kind = EventKind(kind)
    now = now or datetime.now(timezone.utc)
    timestamp = utc_now_iso(now)
    body: dict[str, Any] = {
        "eventType": kind.value,
        "mail": {
            "timestamp": timestamp,
            "messageId": message_id,
            "source": SOURCE_ADDRESS,
            "destination": [recipient],
        },
    }
    detail = _DETAIL_BUILDERS.get(kind)
    if detail is not None:
        key, builder = detail
        body[key] = builder(recipient, timestamp, now)
    return body


def build_envelope(
    body: dict[str, Any],
    *,
    topic_arn: str = DEFAULT_TOPIC_ARN,
    timestamp: str | None = None,
) -> NotificationEnvelope:
    """Wrap an event body into an SNS notification with a fresh id."""
    return NotificationEnvelope(
        message_id=_new_id(),
        topic_arn=topic_arn,
        message=json.dumps(body),
        timestamp=timestamp or body.get("mail", {}).get("timestamp") or utc_now_iso(),
    )


def build_notification(
    kind: EventKind | str,
    message_id: str,
    recipient: str,
    *,
    topic_arn: str = DEFAULT_TOPIC_ARN,
) -> NotificationEnvelope:
    """Shortcut for :func:`build_event_body` followed by :func:`build_envelope`."""
    body = build_event_body(kind, message_id, recipient)
    return build_envelope(body, topic_arn=topic_arn)
