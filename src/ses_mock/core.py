# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Core orchestration logic for the SES/SNS mock.

This module provides the MockCore class, the single owner of the mock's
in-memory state and the coordinator of its subsystems:

- Identity, DKIM and configuration-set stores
- The append-only log of sent messages
- Recipient classification and notification scheduling
- SNS Query API emulation

It exposes a command-based API, used by the HTTP layer, in the same way for
every SES operation.

Example:
    Running the mock without HTTP::

        from ses_mock.core import MockCore

        core = MockCore(webhook_url="http://localhost:4000/ses-events")
        result = await core.handle_command(
            "sendEmail", {"Destination": {"ToAddresses": ["clicked@test.com"]}}
        )
        # result == {"ok": True, "MessageId": "..."}
        await core.stop()
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import ValidationError

from .dispatcher import DEFAULT_DELIVERY_LOG_SIZE, DEFAULT_STEP_SECONDS, NotificationDispatcher
from .extractor import extract_recipients
from .logger import get_logger
from .models import (
    DEFAULT_TOPIC_ARN,
    CreateEmailIdentityRequest,
    MailFromRequest,
    SendEmailRequest,
)
from .patterns import events_for, match_pattern
from .prometheus import MockMetrics
from .sns import SnsEmulator, SnsResponse
from .store import ConfigurationSetStore, IdentityStore, SentMessageLog, default_identity

MAX_24_HOUR_SEND = 50000
MAX_SEND_RATE = 10


class MockCore:
    """Central orchestrator for the SES/SNS mock.

    Attributes:
        identities: Email identity and DKIM key store.
        configuration_sets: Event destinations per configuration set.
        sent: Append-only log of accepted sends.
        metrics: Prometheus metrics collector.
        dispatcher: Notification scheduler and webhook poster.
        sns: SNS Query API emulator.
        logger: Logger instance for diagnostic output.
    """

    def __init__(
        self,
        *,
        webhook_url: str | None = None,
        topic_arn: str = DEFAULT_TOPIC_ARN,
        step_seconds: float = DEFAULT_STEP_SECONDS,
        subscribe_url: str = "http://localhost:3000",
        delivery_log_size: int = DEFAULT_DELIVERY_LOG_SIZE,
        metrics: MockMetrics | None = None,
        logger=None,
    ):
        """Initialize the mock with empty stores.

        Args:
            webhook_url: Callback URL for simulated SES events. None disables
                every outbound notification.
            topic_arn: TopicArn stamped on notification envelopes.
            step_seconds: Delay between consecutive events of one recipient.
            subscribe_url: ``SubscribeURL`` sent in SNS subscription
                confirmations.
            delivery_log_size: Number of delivery attempts kept for inspection.
            metrics: Prometheus metrics collector. If None, creates a new one.
            logger: Custom logger instance. If None, uses default logger.
        """
        self.logger = logger or get_logger()
        self.metrics = metrics or MockMetrics()
        self.identities = IdentityStore()
        self.configuration_sets = ConfigurationSetStore()
        self.sent = SentMessageLog()
        self.dispatcher = NotificationDispatcher(
            webhook_url,
            topic_arn=topic_arn,
            step_seconds=step_seconds,
            metrics=self.metrics,
            delivery_log_size=delivery_log_size,
        )
        self.sns = SnsEmulator(self.dispatcher, subscribe_url=subscribe_url, metrics=self.metrics)

    @property
    def webhook_url(self) -> str | None:
        return self.dispatcher.webhook_url

    async def stop(self) -> None:
        """Abandon scheduled notifications and pending confirmations."""
        await self.dispatcher.stop()

    async def handle_command(self, cmd: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute one SES operation.

        Supported commands:
        - ``getIdentity``, ``createIdentity``, ``deleteIdentity``,
          ``putMailFrom``: identity management
        - ``sendEmail``: accept a send and schedule its notifications
        - ``listEmails``: sent-message log
        - ``getAccount``: quota snapshot
        - ``createConfigurationSet``, ``addEventDestination``: configuration sets
        - ``listNotifications``: delivery log of the dispatcher

        Args:
            cmd: Command name to execute.
            payload: Command-specific parameters.

        Returns:
            dict: Result with an ``ok`` flag plus command-specific data. On
            failure ``error`` describes the problem and ``status`` suggests
            an HTTP code.
        """
        payload = payload or {}
        match cmd:
            case "getIdentity":
                identity = payload.get("identity", "")
                record = self.identities.get(identity) or default_identity(identity)
                return {"ok": True, "identity": record}
            case "createIdentity":
                return self._create_identity(payload)
            case "deleteIdentity":
                self.identities.delete(payload.get("identity", ""))
                return {"ok": True}
            case "putMailFrom":
                return self._put_mail_from(payload)
            case "sendEmail":
                return self._send_email(payload)
            case "listEmails":
                return {"ok": True, "emails": self.sent.list()}
            case "getAccount":
                return {"ok": True, "account": self.account_snapshot()}
            case "createConfigurationSet":
                self.logger.info("Configuration %s", payload)
                return {"ok": True}
            case "addEventDestination":
                name = payload.get("name", "")
                self.configuration_sets.add_event_destination(name, payload.get("destination") or {})
                return {"ok": True}
            case "listNotifications":
                records = self.dispatcher.delivery_log(payload.get("message_id"))
                return {"ok": True, "notifications": [r.to_dict() for r in records]}
            case _:
                return {"ok": False, "error": "unknown command", "status": 400}

    def handle_sns(self, body: str | bytes) -> SnsResponse:
        """Answer one SNS Query API request."""
        return self.sns.handle(body)

    def account_snapshot(self) -> dict[str, Any]:
        return {
            "ProductionAccessEnabled": True,
            "SendQuota": {
                "Max24HourSend": MAX_24_HOUR_SEND,
                "MaxSendRate": MAX_SEND_RATE,
                "SentLast24Hours": len(self.sent),
            },
            "SendingEnabled": True,
        }

    # ------------------------------------------------------------- commands
    def _create_identity(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            request = CreateEmailIdentityRequest.model_validate(payload)
        except ValidationError as exc:
            return {"ok": False, "error": str(exc), "status": 400}
        dkim = request.dkim_signing_attributes
        record = self.identities.create(
            request.email_identity,
            selector=dkim.domain_signing_selector if dkim else None,
            private_key=dkim.domain_signing_private_key if dkim else None,
        )
        self.logger.debug("Created identity %s", request.email_identity)
        return {
            "ok": True,
            "DkimAttributes": record["DkimAttributes"],
            "VerificationStatus": record["VerificationStatus"],
            "VerificationInfo": record["VerificationInfo"],
        }

    def _put_mail_from(self, payload: dict[str, Any]) -> dict[str, Any]:
        identity = payload.get("identity", "")
        try:
            request = MailFromRequest.model_validate(payload)
        except ValidationError as exc:
            return {"ok": False, "error": str(exc), "status": 400}
        if not self.identities.set_mail_from(identity, request.mail_from_domain):
            return {"ok": False, "error": "Identity not found", "status": 404}
        return {"ok": True}

    def _send_email(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Record a send and schedule the notifications of every recipient.

        Validation happens before an id is assigned. Everything after that
        (raw parsing, classification, delivery) is best effort and cannot
        turn the result into a failure.
        """
        try:
            request = SendEmailRequest.model_validate(payload)
        except ValidationError as exc:
            return {"ok": False, "error": str(exc), "status": 400}

        message_id = str(uuid.uuid4())
        self.sent.append(payload, message_id)
        self.metrics.inc_sent()

        recipients = extract_recipients(request)
        self.logger.info("Received email %s for %s", message_id, recipients)
        for recipient in recipients:
            matched = match_pattern(recipient) is not None
            self.logger.debug("Match found %s %s", matched, recipient)
            self.dispatcher.schedule(message_id, recipient, events_for(recipient))
        return {"ok": True, "MessageId": message_id}
