# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SNS control-plane emulation over the AWS Query protocol.

Requests arrive as ``application/x-www-form-urlencoded`` bodies carrying an
``Action`` field; responses are the XML documents the real service returns.
No topic or subscription registry exists: identifiers are synthesised from
the request and every document gets a fresh request id.

Supported actions: ``CreateTopic``, ``Subscribe``, ``Publish`` and
``DeleteTopic``. ``Subscribe`` also posts a ``SubscriptionConfirmation`` to
the subscriber endpoint in the background.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from urllib.parse import parse_qs
from xml.sax.saxutils import escape

import aiohttp

from .dispatcher import NotificationDispatcher
from .logger import get_logger
from .models import SubscriptionConfirmation
from .prometheus import MockMetrics

SNS_XMLNS = "https://sns.amazonaws.com/doc/2010-03-31/"
SNS_REGION = "us-east-1"
SNS_ACCOUNT_ID = "123456789012"
XML_CONTENT_TYPE = "application/xml"


@dataclass
class SnsResponse:
    status_code: int
    body: str
    media_type: str = XML_CONTENT_TYPE


def _request_id() -> str:
    return str(uuid.uuid4())


def topic_arn_for(name_or_arn: str) -> str:
    """Return a full topic ARN; values that already are ARNs pass through."""
    if name_or_arn.startswith("arn:"):
        return name_or_arn
    return f"arn:aws:sns:{SNS_REGION}:{SNS_ACCOUNT_ID}:{name_or_arn}"


def parse_form(body: str | bytes) -> dict[str, str]:
    """Decode a form-urlencoded body keeping the first value of each key."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return {key: values[0] for key, values in parse_qs(body, keep_blank_values=True).items()}


def _result_document(action: str, result: str) -> str:
    return (
        '<?xml version="1.0"?>\n'
        f'<{action}Response xmlns="{SNS_XMLNS}">\n'
        f"    <{action}Result>\n"
        f"        {result}\n"
        f"    </{action}Result>\n"
        "    <ResponseMetadata>\n"
        f"        <RequestId>{_request_id()}</RequestId>\n"
        "    </ResponseMetadata>\n"
        f"</{action}Response>"
    )


def error_document(code: str, message: str, error_type: str = "Sender") -> str:
    return (
        '<?xml version="1.0"?>\n'
        f'<ErrorResponse xmlns="{SNS_XMLNS}">\n'
        "    <Error>\n"
        f"        <Type>{escape(error_type)}</Type>\n"
        f"        <Code>{escape(code)}</Code>\n"
        f"        <Message>{escape(message)}</Message>\n"
        "    </Error>\n"
        f"    <RequestId>{_request_id()}</RequestId>\n"
        "</ErrorResponse>"
    )


class SnsEmulator:
    """Answers SNS Query API calls with protocol-shaped XML.

    Attributes:
        dispatcher: Used to run confirmation callbacks as tracked background
            tasks.
        subscribe_url: Value placed in ``SubscribeURL`` of confirmations.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        *,
        subscribe_url: str,
        metrics: MockMetrics | None = None,
        logger=None,
    ):
        self.dispatcher = dispatcher
        self.subscribe_url = subscribe_url
        self.metrics = metrics or dispatcher.metrics
        self.logger = logger or get_logger("SNS")

    def handle(self, body: str | bytes) -> SnsResponse:
        """Dispatch one Query API request on its ``Action`` field."""
        params = parse_form(body)
        action = params.get("Action", "")
        self.logger.debug("SNS action %s", action)
        match action:
            case "CreateTopic":
                return self._create_topic(params)
            case "Subscribe":
                return self._subscribe(params)
            case "Publish":
                return self._publish(params)
            case "DeleteTopic":
                return self._delete_topic(params)
            case _:
                self.logger.warning("Rejected unknown SNS action %s", action)
                return SnsResponse(400, error_document("InvalidAction", f"The action {action} is not valid"))

    def _missing(self, name: str) -> SnsResponse:
        return SnsResponse(400, error_document("InvalidParameter", f"Invalid parameter: {name} Reason: cannot be empty"))

    def _create_topic(self, params: dict[str, str]) -> SnsResponse:
        name = params.get("Name")
        if not name:
            return self._missing("Name")
        arn = topic_arn_for(name)
        return SnsResponse(200, _result_document("CreateTopic", f"<TopicArn>{escape(arn)}</TopicArn>"))

    def _subscribe(self, params: dict[str, str]) -> SnsResponse:
        topic = params.get("TopicArn")
        if not topic:
            return self._missing("TopicArn")
        arn = topic_arn_for(topic)
        endpoint = params.get("Endpoint")
        if endpoint:
            self.dispatcher.spawn(self.confirm_subscription(arn, endpoint))
        subscription_arn = f"{arn}:{uuid.uuid4()}"
        return SnsResponse(
            200,
            _result_document("Subscribe", f"<SubscriptionArn>{escape(subscription_arn)}</SubscriptionArn>"),
        )

    def _publish(self, params: dict[str, str]) -> SnsResponse:
        return SnsResponse(200, _result_document("Publish", f"<MessageId>{uuid.uuid4()}</MessageId>"))

    def _delete_topic(self, params: dict[str, str]) -> SnsResponse:
        topic = params.get("TopicArn")
        if not topic:
            return self._missing("TopicArn")
        arn = topic_arn_for(topic)
        return SnsResponse(200, _result_document("DeleteTopic", f"<TopicArn>{escape(arn)}</TopicArn>"))

    async def confirm_subscription(self, topic_arn: str, endpoint: str) -> bool:
        """Post a ``SubscriptionConfirmation`` to ``endpoint``.

        Runs unawaited from :meth:`handle`; failures are only logged.

        Returns:
            True when the endpoint answered with a non-error status.
        """
        payload = SubscriptionConfirmation(subscribe_url=self.subscribe_url, topic_arn=topic_arn)
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(endpoint, json=payload.to_wire()) as resp:
                    status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            self.logger.warning("Subscription confirmation to %s failed: %s", endpoint, exc)
            self.metrics.inc_confirmation("failed")
            return False
        if status >= 400:
            self.logger.warning("Subscription confirmation to %s answered %s", endpoint, status)
            self.metrics.inc_confirmation("failed")
            return False
        self.logger.info("Sent subscription confirmation for %s to %s", topic_arn, endpoint)
        self.metrics.inc_confirmation("delivered")
        return True
