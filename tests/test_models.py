"""Tests for request and envelope models."""

import pytest
from pydantic import ValidationError

from ses_mock.models import (
    CreateEmailIdentityRequest,
    SendEmailRequest,
    SubscriptionConfirmation,
)


class TestSendEmailRequest:
    """Tests for SendEmailRequest validation."""

    def test_requires_destination_or_raw(self):
        with pytest.raises(ValidationError):
            SendEmailRequest.model_validate({"FromEmailAddress": "a@b.com"})

    def test_structured_form(self):
        request = SendEmailRequest.model_validate({"Destination": {"ToAddresses": ["a@b.com"]}})
        assert not request.is_raw
        assert request.destination.to_addresses == ["a@b.com"]

    def test_raw_form(self):
        request = SendEmailRequest.model_validate({"Content": {"Raw": {"Data": "abc="}}})
        assert request.is_raw
        assert request.raw_data == "abc="

    def test_unknown_fields_preserved(self):
        payload = {
            "FromEmailAddress": "sender@test.com",
            "ConfigurationSetName": "default",
            "Destination": {"ToAddresses": ["a@b.com"]},
        }
        request = SendEmailRequest.model_validate(payload)
        assert request.model_dump(by_alias=True, exclude_unset=True) == payload


def test_create_identity_requires_name():
    with pytest.raises(ValidationError):
        CreateEmailIdentityRequest.model_validate({"EmailIdentity": ""})
    request = CreateEmailIdentityRequest.model_validate({
        "EmailIdentity": "example.com",
        "DkimSigningAttributes": {"DomainSigningSelector": "s1"},
    })
    assert request.dkim_signing_attributes.domain_signing_selector == "s1"


def test_subscription_confirmation_wire_shape():
    wire = SubscriptionConfirmation(subscribe_url="http://localhost:3000", topic_arn="arn:t").to_wire()
    assert wire == {
        "SubscribeURL": "http://localhost:3000",
        "TopicArn": "arn:t",
        "Type": "SubscriptionConfirmation",
    }
