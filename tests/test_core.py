"""Tests for MockCore command handling."""

import base64
import json
from email.message import EmailMessage

import pytest
import pytest_asyncio
from aioresponses import aioresponses
from yarl import URL

from ses_mock.core import MAX_24_HOUR_SEND, MAX_SEND_RATE, MockCore

WEBHOOK = "http://hooks.test/ses-events"


def _raw_message(to: str) -> str:
    msg = EmailMessage()
    msg["From"] = "sender@test.com"
    msg["To"] = to
    msg["Subject"] = "Raw"
    msg.set_content("Body")
    return base64.b64encode(msg.as_bytes()).decode("ascii")


@pytest_asyncio.fixture
async def core():
    core = MockCore(step_seconds=0)
    yield core
    await core.stop()


@pytest.mark.asyncio
async def test_send_email_returns_id_and_records(core):
    payload = {"FromEmailAddress": "sender@test.com", "Destination": {"ToAddresses": ["a@b.com"]}}
    result = await core.handle_command("sendEmail", payload)

    assert result["ok"] is True
    emails = (await core.handle_command("listEmails"))["emails"]
    assert emails == [{**payload, "MessageId": result["MessageId"]}]


@pytest.mark.asyncio
async def test_sent_log_keeps_send_order(core):
    ids = []
    for index in range(3):
        result = await core.handle_command(
            "sendEmail", {"Destination": {"ToAddresses": [f"user{index}@test.com"]}}
        )
        ids.append(result["MessageId"])
    emails = (await core.handle_command("listEmails"))["emails"]
    assert [e["MessageId"] for e in emails] == ids
    assert len(set(ids)) == 3


@pytest.mark.asyncio
async def test_invalid_send_rejected_before_recording(core):
    result = await core.handle_command("sendEmail", {"FromEmailAddress": "x@y.com"})
    assert result["ok"] is False
    assert result["status"] == 400
    assert len(core.sent) == 0


@pytest.mark.asyncio
async def test_send_schedules_events_per_recipient(core):
    result = await core.handle_command(
        "sendEmail", {"Destination": {"ToAddresses": ["clicked@test.com", "other@test.com"]}}
    )
    await core.dispatcher.wait_idle()

    log = (await core.handle_command("listNotifications", {"message_id": result["MessageId"]}))["notifications"]
    by_recipient = {}
    for record in log:
        by_recipient.setdefault(record["recipient"], []).append(record["event_type"])
    assert by_recipient == {
        "clicked@test.com": ["Send", "Delivery", "Click"],
        "other@test.com": ["Send", "Delivery"],
    }
    assert {record["outcome"] for record in log} == {"skipped"}


@pytest.mark.asyncio
async def test_raw_send_uses_to_header(core):
    result = await core.handle_command(
        "sendEmail", {"Content": {"Raw": {"Data": _raw_message("Bounced <bounced@test.com>")}}}
    )
    await core.dispatcher.wait_idle()
    log = core.dispatcher.delivery_log(result["MessageId"])
    assert [(r.recipient, r.event_type) for r in log] == [
        ("bounced@test.com", "Send"),
        ("bounced@test.com", "Bounce"),
    ]


@pytest.mark.asyncio
async def test_unparseable_raw_still_succeeds(core):
    result = await core.handle_command("sendEmail", {"Content": {"Raw": {"Data": "a"}}})
    assert result["ok"] is True
    assert core.dispatcher.in_flight == 0
    assert len(core.sent) == 1


@pytest.mark.asyncio
async def test_clicked_scenario_reaches_webhook():
    core = MockCore(webhook_url=WEBHOOK, step_seconds=0.05)
    with aioresponses() as m:
        m.post(WEBHOOK, status=200, repeat=True)
        result = await core.handle_command("sendEmail", {"Destination": {"ToAddresses": ["clicked@test.com"]}})
        await core.dispatcher.wait_idle()
        posted = [call.kwargs["json"] for call in m.requests[("POST", URL(WEBHOOK))]]
    await core.stop()

    messages = [json.loads(envelope["Message"]) for envelope in posted]
    assert [msg["eventType"] for msg in messages] == ["Send", "Delivery", "Click"]
    assert {msg["mail"]["messageId"] for msg in messages} == {result["MessageId"]}


@pytest.mark.asyncio
async def test_unreachable_webhook_does_not_fail_send():
    core = MockCore(webhook_url=WEBHOOK, step_seconds=0)
    with aioresponses():
        result = await core.handle_command("sendEmail", {"Destination": {"ToAddresses": ["a@b.com"]}})
        await core.dispatcher.wait_idle()
    await core.stop()

    assert result["ok"] is True
    assert {r.outcome for r in core.dispatcher.delivery_log()} == {"failed"}


@pytest.mark.asyncio
async def test_identity_lifecycle(core):
    unknown = (await core.handle_command("getIdentity", {"identity": "example.com"}))["identity"]
    assert unknown["MailFromAttributes"]["MailFromDomain"] == "mail.example.com"

    created = await core.handle_command(
        "createIdentity",
        {"EmailIdentity": "example.com", "DkimSigningAttributes": {"DomainSigningSelector": "s1"}},
    )
    assert created["ok"] is True
    assert created["VerificationStatus"] == "SUCCESS"
    assert created["DkimAttributes"]["DomainSigningSelector"] == "s1"

    result = await core.handle_command(
        "putMailFrom", {"identity": "example.com", "MailFromDomain": "bounce.example.com"}
    )
    assert result == {"ok": True}
    stored = (await core.handle_command("getIdentity", {"identity": "example.com"}))["identity"]
    assert stored["MailFromAttributes"]["MailFromDomain"] == "bounce.example.com"

    await core.handle_command("deleteIdentity", {"identity": "example.com"})
    assert "example.com" not in core.identities


@pytest.mark.asyncio
async def test_put_mail_from_unknown_identity(core):
    result = await core.handle_command("putMailFrom", {"identity": "nope.com", "MailFromDomain": "x"})
    assert result == {"ok": False, "error": "Identity not found", "status": 404}


@pytest.mark.asyncio
async def test_account_counts_sends(core):
    await core.handle_command("sendEmail", {"Destination": {"ToAddresses": ["a@b.com"]}})
    account = (await core.handle_command("getAccount"))["account"]
    assert account["SendQuota"] == {
        "Max24HourSend": MAX_24_HOUR_SEND,
        "MaxSendRate": MAX_SEND_RATE,
        "SentLast24Hours": 1,
    }
    assert account["SendingEnabled"] is True


@pytest.mark.asyncio
async def test_configuration_sets(core):
    assert (await core.handle_command("createConfigurationSet", {"ConfigurationSetName": "cs"}))["ok"]
    await core.handle_command("addEventDestination", {"name": "cs", "destination": {"EventDestinationName": "d"}})
    assert core.configuration_sets.event_destinations("cs") == [{"EventDestinationName": "d"}]


@pytest.mark.asyncio
async def test_unknown_command(core):
    result = await core.handle_command("teleport", {})
    assert result["ok"] is False
    assert result["status"] == 400


def test_handle_sns_delegates():
    core = MockCore()
    reply = core.handle_sns("Action=CreateTopic&Name=foo")
    assert reply.status_code == 200
    assert "foo</TopicArn>" in reply.body
