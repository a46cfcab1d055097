# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for the SES/SNS mock.

This module defines the request payloads accepted by the HTTP API and the
notification envelope posted to the webhook. Field names follow the AWS
wire format (PascalCase) through aliases so Python code can use snake_case.

Models:
    - Destination, RawContent, EmailContent: pieces of a SendEmail request
    - SendEmailRequest: SES v2 SendEmail body (structured or raw)
    - DkimSigningAttributes, CreateEmailIdentityRequest: CreateEmailIdentity body
    - MailFromRequest: PutEmailIdentityMailFromAttributes body
    - NotificationEnvelope: SNS ``Notification`` message sent to the webhook
    - SubscriptionConfirmation: SNS confirmation sent to a subscriber
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_TOPIC_ARN = "arn:aws:sns:us-east-1:000000000000:ses-notifications"
SIGNING_CERT_URL = "https://sns.us-east-1.amazonaws.com/SimpleNotificationService.pem"


class AwsModel(BaseModel):
    """Base for AWS-shaped payloads: PascalCase aliases, unknown keys kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Destination(AwsModel):
    to_addresses: Annotated[
        list[str],
        Field(default_factory=list, alias="ToAddresses", description="Primary recipients")
    ]
    cc_addresses: Annotated[
        list[str] | None,
        Field(default=None, alias="CcAddresses")
    ]
    bcc_addresses: Annotated[
        list[str] | None,
        Field(default=None, alias="BccAddresses")
    ]


class RawContent(AwsModel):
    data: Annotated[
        str | None,
        Field(default=None, alias="Data", description="Base64 encoded RFC 822 message")
    ]


class EmailContent(AwsModel):
    raw: Annotated[RawContent | None, Field(default=None, alias="Raw")]
    simple: Annotated[dict[str, Any] | None, Field(default=None, alias="Simple")]


class SendEmailRequest(AwsModel):
    """SES v2 ``SendEmail`` request body.

    Two forms are recognised. The raw form carries ``Content.Raw.Data``
    and takes precedence; otherwise ``Destination`` must be present. Any other
    SES field (``FromEmailAddress``, ``ConfigurationSetName`` ...) is accepted
    and preserved untouched.
    """

    destination: Annotated[Destination | None, Field(default=None, alias="Destination")]
    content: Annotated[EmailContent | None, Field(default=None, alias="Content")]

    @model_validator(mode="after")
    def require_one_form(self) -> SendEmailRequest:
        """Reject requests carrying neither recipients nor raw content."""
        if not self.is_raw and self.destination is None:
            raise ValueError("either Destination or Content.Raw.Data is required")
        return self

    @property
    def is_raw(self) -> bool:
        return self.content is not None and self.content.raw is not None

    @property
    def raw_data(self) -> str:
        if not self.is_raw:
            return ""
        return self.content.raw.data or ""


class DkimSigningAttributes(AwsModel):
    domain_signing_selector: Annotated[
        str | None,
        Field(default=None, alias="DomainSigningSelector")
    ]
    domain_signing_private_key: Annotated[
        str | None,
        Field(default=None, alias="DomainSigningPrivateKey")
    ]


class CreateEmailIdentityRequest(AwsModel):
    email_identity: Annotated[str, Field(min_length=1, alias="EmailIdentity")]
    dkim_signing_attributes: Annotated[
        DkimSigningAttributes | None,
        Field(default=None, alias="DkimSigningAttributes")
    ]


class MailFromRequest(AwsModel):
    mail_from_domain: Annotated[str, Field(alias="MailFromDomain")]


class NotificationEnvelope(BaseModel):
    """SNS ``Notification`` wrapper posted to the webhook.

    ``Message`` holds the JSON-serialised SES event body, exactly as SNS
    delivers it. The signature fields are placeholders.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: Annotated[str, Field(default="Notification", alias="Type")]
    message_id: Annotated[str, Field(alias="MessageId")]
    topic_arn: Annotated[str, Field(default=DEFAULT_TOPIC_ARN, alias="TopicArn")]
    message: Annotated[str, Field(alias="Message")]
    timestamp: Annotated[str, Field(alias="Timestamp")]
    signature_version: Annotated[str, Field(default="1", alias="SignatureVersion")]
    signature: Annotated[str, Field(default="mock-signature", alias="Signature")]
    signing_cert_url: Annotated[str, Field(default=SIGNING_CERT_URL, alias="SigningCertURL")]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class SubscriptionConfirmation(BaseModel):
    """Body posted to a subscriber endpoint after ``Subscribe``."""

    model_config = ConfigDict(populate_by_name=True)

    subscribe_url: Annotated[str, Field(alias="SubscribeURL")]
    topic_arn: Annotated[str, Field(alias="TopicArn")]
    type: Annotated[str, Field(default="SubscriptionConfirmation", alias="Type")]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
