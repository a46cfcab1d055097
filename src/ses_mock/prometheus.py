# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for the SES/SNS mock.

All metrics use the ``sesmock_`` prefix.

Metrics exposed:
    - ``sesmock_emails_sent_total``: Counter of accepted SendEmail calls.
    - ``sesmock_notifications_total``: Counter of simulated notifications per
      event type and outcome (delivered, failed, skipped).
    - ``sesmock_subscription_confirmations_total``: Counter of SNS
      subscription confirmation callbacks per outcome.
    - ``sesmock_pending_notifications``: Gauge of scheduled notifications not
      yet attempted.

Example:
    Accessing metrics via the REST API::

        GET /metrics
"""

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class MockMetrics:
    """Prometheus metrics collector for the mock.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
        emails_sent: Counter of accepted sends.
        notifications: Counter of notification outcomes.
        confirmations: Counter of subscription confirmation outcomes.
        pending: Gauge of scheduled but not yet attempted notifications.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. If not provided,
                a new registry is created so several cores can coexist in one
                process (tests).
        """
        self.registry = registry or CollectorRegistry()
        self.emails_sent = Counter(
            "sesmock_emails_sent_total",
            "Total accepted SendEmail requests",
            registry=self.registry,
        )
        self.notifications = Counter(
            "sesmock_notifications_total",
            "Total simulated notifications",
            ["event_type", "outcome"],
            registry=self.registry,
        )
        self.confirmations = Counter(
            "sesmock_subscription_confirmations_total",
            "Total SNS subscription confirmations",
            ["outcome"],
            registry=self.registry,
        )
        self.pending = Gauge(
            "sesmock_pending_notifications",
            "Scheduled notifications not yet attempted",
            registry=self.registry,
        )

    def inc_sent(self) -> None:
        self.emails_sent.inc()

    def inc_notification(self, event_type: str, outcome: str) -> None:
        """Count one notification attempt.

        Args:
            event_type: SES event type (``Send``, ``Delivery`` ...).
            outcome: ``delivered``, ``failed`` or ``skipped``.
        """
        self.notifications.labels(event_type=event_type, outcome=outcome).inc()

    def inc_confirmation(self, outcome: str) -> None:
        self.confirmations.labels(outcome=outcome).inc()

    def set_pending(self, value: int) -> None:
        self.pending.set(value)

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
