# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Deferred delivery of simulated SES notifications to the webhook.

For every recipient of a send, the dispatcher schedules one asyncio task per
lifecycle event. Event ``i`` of a sequence starts ``i * step_seconds`` after
scheduling; each event runs in its own task so a slow webhook never delays
the start of the next event. Nothing is awaited by the caller.

Delivery is best effort:

- no webhook URL configured: the task still runs but stops before any I/O,
- connection errors, timeouts and non-2xx answers are logged and recorded,
- there are no retries and no failure cancels the remaining schedule.

Every attempt lands in a bounded in-memory delivery log that tests and the
``/api/notifications`` endpoint can inspect.

Example:
    Scheduling the events of one recipient::

        dispatcher = NotificationDispatcher("http://localhost:4000/hook")
        dispatcher.schedule(message_id, "clicked@test.com", events_for("clicked@test.com"))
        await dispatcher.wait_idle()  # tests only
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Coroutine, Iterable
from dataclasses import asdict, dataclass, field
from typing import Any

import aiohttp

from .logger import get_logger
from .models import DEFAULT_TOPIC_ARN
from .patterns import EventKind
from .payloads import build_notification, utc_now_iso
from .prometheus import MockMetrics

DEFAULT_STEP_SECONDS = 1.0
DEFAULT_DELIVERY_LOG_SIZE = 1000

OUTCOME_DELIVERED = "delivered"
OUTCOME_FAILED = "failed"
OUTCOME_SKIPPED = "skipped"


@dataclass
class ScheduledNotification:
    """One queued lifecycle event: what to send and when to start sending it.

    Attributes:
        message_id: SES message id the event belongs to.
        recipient: Recipient the event refers to.
        event_type: Lifecycle event to simulate.
        delay: Seconds between scheduling and dispatch start.
        scheduled_at: ISO timestamp of scheduling.
    """

    message_id: str
    recipient: str
    event_type: EventKind
    delay: float
    scheduled_at: str = field(default_factory=utc_now_iso)


@dataclass
class DeliveryRecord:
    """Outcome of one notification attempt, as kept in the delivery log."""

    notification_id: str | None
    message_id: str
    recipient: str
    event_type: str
    delay: float
    scheduled_at: str
    attempted_at: str
    outcome: str
    url: str | None = None
    status: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class NotificationDispatcher:
    """Schedules and posts SNS-wrapped SES events to a single webhook URL.

    Attributes:
        webhook_url: Callback URL, or None to disable outbound calls.
        topic_arn: TopicArn stamped on every envelope.
        step_seconds: Gap between consecutive events of one recipient.
        metrics: Prometheus collector updated on every attempt.
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        *,
        topic_arn: str = DEFAULT_TOPIC_ARN,
        step_seconds: float = DEFAULT_STEP_SECONDS,
        metrics: MockMetrics | None = None,
        logger=None,
        delivery_log_size: int = DEFAULT_DELIVERY_LOG_SIZE,
    ):
        self.webhook_url = webhook_url or None
        self.topic_arn = topic_arn
        self.step_seconds = max(0.0, float(step_seconds))
        self.metrics = metrics or MockMetrics()
        self.logger = logger or get_logger("Dispatcher")
        self._log: deque[DeliveryRecord] = deque(maxlen=max(1, int(delivery_log_size)))
        self._tasks: set[asyncio.Task[Any]] = set()
        self._pending = 0

    # ------------------------------------------------------------ scheduling
    def schedule(
        self,
        message_id: str,
        recipient: str,
        events: Iterable[EventKind | str],
    ) -> list[ScheduledNotification]:
        """Schedule every event of ``events`` for one recipient.

        Must be called from a running event loop. Returns immediately with the
        planned items; delivery happens in background tasks.
        """
        planned = [
            ScheduledNotification(
                message_id=message_id,
                recipient=recipient,
                event_type=EventKind(kind),
                delay=index * self.step_seconds,
            )
            for index, kind in enumerate(events)
        ]
        for item in planned:
            self._pending += 1
            self.spawn(self._fire(item))
        self.metrics.set_pending(self._pending)
        return planned

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run ``coro`` in a tracked background task that nobody awaits."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _fire(self, item: ScheduledNotification) -> None:
        try:
            await asyncio.sleep(item.delay)
        finally:
            self._pending -= 1
            self.metrics.set_pending(self._pending)
        await self.deliver(item)

    # -------------------------------------------------------------- delivery
    async def deliver(self, item: ScheduledNotification) -> DeliveryRecord:
        """Post one notification now and record the outcome.

        Never raises for network or HTTP failures.
        """
        event_type = item.event_type.value
        if not self.webhook_url:
            self.logger.debug("No webhook URL configured, skipping %s notification", event_type)
            return self._record(item, None, OUTCOME_SKIPPED)

        envelope = build_notification(
            item.event_type, item.message_id, item.recipient, topic_arn=self.topic_arn
        )
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.webhook_url, json=envelope.to_wire()) as resp:
                    status = resp.status
                    reason = resp.reason
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            self.logger.error("Error sending webhook notification: %s", exc)
            return self._record(
                item, envelope.message_id, OUTCOME_FAILED, error=str(exc) or type(exc).__name__
            )

        if status >= 400:
            self.logger.error("Failed to send webhook notification: %s %s", status, reason)
            return self._record(
                item, envelope.message_id, OUTCOME_FAILED, status=status, error=reason
            )
        self.logger.info("Sent %s notification for %s", event_type, item.recipient)
        return self._record(item, envelope.message_id, OUTCOME_DELIVERED, status=status)

    def _record(
        self,
        item: ScheduledNotification,
        notification_id: str | None,
        outcome: str,
        *,
        status: int | None = None,
        error: str | None = None,
    ) -> DeliveryRecord:
        record = DeliveryRecord(
            notification_id=notification_id,
            message_id=item.message_id,
            recipient=item.recipient,
            event_type=item.event_type.value,
            delay=item.delay,
            scheduled_at=item.scheduled_at,
            attempted_at=utc_now_iso(),
            outcome=outcome,
            url=self.webhook_url,
            status=status,
            error=error,
        )
        self._log.append(record)
        self.metrics.inc_notification(record.event_type, outcome)
        return record

    # ------------------------------------------------------------ inspection
    def delivery_log(self, message_id: str | None = None) -> list[DeliveryRecord]:
        """Return recorded attempts, oldest first, optionally for one message."""
        records = list(self._log)
        if message_id is not None:
            records = [r for r in records if r.message_id == message_id]
        return records

    @property
    def pending(self) -> int:
        """Number of scheduled notifications whose delay has not elapsed."""
        return self._pending

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every background task has finished, including new ones."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel outstanding tasks. Scheduled notifications are abandoned."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        # Tasks cancelled before their first step never reach _fire's finally.
        self._pending = 0
        self.metrics.set_pending(0)
