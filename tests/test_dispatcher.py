"""Tests for notification scheduling and webhook delivery."""

import asyncio
import json

import aiohttp
import pytest
from aioresponses import aioresponses
from yarl import URL

from ses_mock.dispatcher import (
    OUTCOME_DELIVERED,
    OUTCOME_FAILED,
    OUTCOME_SKIPPED,
    NotificationDispatcher,
    ScheduledNotification,
)
from ses_mock.patterns import EventKind, events_for
from ses_mock.prometheus import MockMetrics

WEBHOOK = "http://hooks.test/ses-events"


def _posted(m, url=WEBHOOK):
    return [call.kwargs["json"] for call in m.requests.get(("POST", URL(url)), [])]


@pytest.mark.asyncio
async def test_schedule_plans_offsets_per_step():
    dispatcher = NotificationDispatcher(None, step_seconds=1.0)
    planned = dispatcher.schedule("msg-1", "clicked@test.com", events_for("clicked@test.com"))
    try:
        assert [p.event_type for p in planned] == [EventKind.SEND, EventKind.DELIVERY, EventKind.CLICK]
        assert [p.delay for p in planned] == [0.0, 1.0, 2.0]
        assert dispatcher.pending == 3
    finally:
        await dispatcher.stop()
    assert dispatcher.in_flight == 0


@pytest.mark.asyncio
async def test_events_posted_in_order_as_sns_notifications():
    dispatcher = NotificationDispatcher(WEBHOOK, step_seconds=0.05, topic_arn="arn:test")
    with aioresponses() as m:
        m.post(WEBHOOK, status=200, repeat=True)
        dispatcher.schedule("msg-1", "clicked@test.com", events_for("clicked@test.com"))
        await dispatcher.wait_idle()

        posted = _posted(m)

    assert len(posted) == 3
    messages = [json.loads(envelope["Message"]) for envelope in posted]
    assert [msg["eventType"] for msg in messages] == ["Send", "Delivery", "Click"]
    assert all(msg["mail"]["messageId"] == "msg-1" for msg in messages)
    assert all(envelope["Type"] == "Notification" for envelope in posted)
    assert all(envelope["TopicArn"] == "arn:test" for envelope in posted)
    assert len({envelope["MessageId"] for envelope in posted}) == 3

    log = dispatcher.delivery_log("msg-1")
    assert [r.outcome for r in log] == [OUTCOME_DELIVERED] * 3
    assert [r.delay for r in log] == [0.0, 0.05, 0.1]
    assert dispatcher.pending == 0


@pytest.mark.asyncio
async def test_no_webhook_records_skipped():
    metrics = MockMetrics()
    dispatcher = NotificationDispatcher(None, step_seconds=0, metrics=metrics)
    dispatcher.schedule("msg-1", "someone@example.com", events_for("someone@example.com"))
    await dispatcher.wait_idle()

    log = dispatcher.delivery_log()
    assert [(r.event_type, r.outcome) for r in log] == [
        ("Send", OUTCOME_SKIPPED),
        ("Delivery", OUTCOME_SKIPPED),
    ]
    assert log[0].notification_id is None
    assert b'outcome="skipped"' in metrics.generate_latest()


@pytest.mark.asyncio
async def test_http_error_does_not_stop_remaining_events():
    dispatcher = NotificationDispatcher(WEBHOOK, step_seconds=0)
    with aioresponses() as m:
        m.post(WEBHOOK, status=500)
        m.post(WEBHOOK, status=200)
        dispatcher.schedule("msg-1", "bounced@test.com", events_for("bounced@test.com"))
        await dispatcher.wait_idle()

    outcomes = sorted((r.outcome, r.status) for r in dispatcher.delivery_log())
    assert outcomes == [(OUTCOME_DELIVERED, 200), (OUTCOME_FAILED, 500)]


@pytest.mark.asyncio
async def test_connection_error_is_recorded():
    dispatcher = NotificationDispatcher(WEBHOOK, step_seconds=0)
    item = ScheduledNotification("msg-1", "a@b.com", EventKind.SEND, 0.0)
    with aioresponses() as m:
        m.post(WEBHOOK, exception=aiohttp.ClientConnectionError("refused"))
        record = await dispatcher.deliver(item)

    assert record.outcome == OUTCOME_FAILED
    assert record.status is None
    assert "refused" in record.error
    assert record.url == WEBHOOK


@pytest.mark.asyncio
async def test_delivery_log_is_bounded():
    dispatcher = NotificationDispatcher(None, delivery_log_size=2)
    for index in range(3):
        await dispatcher.deliver(ScheduledNotification(f"msg-{index}", "a@b.com", EventKind.SEND, 0.0))
    assert [r.message_id for r in dispatcher.delivery_log()] == ["msg-1", "msg-2"]


@pytest.mark.asyncio
async def test_stop_abandons_scheduled_events():
    dispatcher = NotificationDispatcher(WEBHOOK, step_seconds=60)
    with aioresponses() as m:
        m.post(WEBHOOK, status=200, repeat=True)
        dispatcher.schedule("msg-1", "delayed@test.com", events_for("delayed@test.com"))
        await dispatcher.stop()
        assert len(_posted(m)) <= 1

    assert dispatcher.pending == 0
    assert dispatcher.in_flight == 0


class TimedDispatcher(NotificationDispatcher):
    """Records the loop time at which each delivery starts."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fired = []

    async def deliver(self, item):
        self.fired.append((item.event_type.value, asyncio.get_running_loop().time()))
        return await super().deliver(item)


@pytest.mark.asyncio
async def test_events_fire_one_step_apart():
    step = 0.2
    dispatcher = TimedDispatcher(None, step_seconds=step)
    start = asyncio.get_running_loop().time()
    dispatcher.schedule("msg-1", "clicked@test.com", events_for("clicked@test.com"))
    await dispatcher.wait_idle()

    assert [kind for kind, _ in dispatcher.fired] == ["Send", "Delivery", "Click"]
    offsets = [when - start for _, when in dispatcher.fired]
    assert offsets[0] < step
    for index, offset in enumerate(offsets):
        # The loop clock may round a timer slightly early.
        assert offset >= index * step - 0.01
    for earlier, later in zip(offsets, offsets[1:]):
        assert later - earlier >= step - 0.01


@pytest.mark.asyncio
async def test_recipients_are_scheduled_independently():
    step = 0.2
    dispatcher = TimedDispatcher(None, step_seconds=step)
    start = asyncio.get_running_loop().time()
    dispatcher.schedule("msg-1", "bounced@test.com", events_for("bounced@test.com"))
    dispatcher.schedule("msg-1", "other@test.com", events_for("other@test.com"))
    await dispatcher.wait_idle()

    offsets = {}
    for kind, when in dispatcher.fired:
        offsets.setdefault(kind, []).append(when - start)
    assert all(offset < step for offset in offsets["Send"])
    assert all(offset >= step - 0.01 for offset in offsets["Bounce"] + offsets["Delivery"])
    assert all(offset < 2 * step for offset in offsets["Bounce"] + offsets["Delivery"])
