# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Python client for a running SES mock.

Usage in REPL:
    >>> from ses_mock.client import MockClient
    >>> mock = MockClient("http://localhost:3000")
    >>> mock.send_email(["clicked@test.com"])
    '6f0c...'
    >>> mock.emails()
    [SentEmail(message_id='6f0c...', to=['clicked@test.com'])]
    >>> mock.notifications()
    [{'event_type': 'Send', 'outcome': 'delivered', ...}, ...]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

SES_PREFIX = "/api/ses/v2"


@dataclass
class SentEmail:
    """An accepted SendEmail request as recorded by the mock."""

    message_id: str
    to: List[str] = field(default_factory=list)
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    raw: bool = False
    request: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentEmail":
        """Create a SentEmail from one ``/api/emails`` record."""
        destination = data.get("Destination") or {}
        content = data.get("Content") or {}
        return cls(
            message_id=data["MessageId"],
            to=list(destination.get("ToAddresses") or []),
            cc=list(destination.get("CcAddresses") or []),
            bcc=list(destination.get("BccAddresses") or []),
            raw="Raw" in content,
            request=data,
        )


class MockClient:
    """Synchronous client for the SES mock HTTP API.

    Example:
        >>> mock = MockClient("http://localhost:3000")
        >>> mock.health()
        True
    """

    def __init__(self, url: str = "http://localhost:3000", timeout: float = 30):
        self.url = url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make a GET request."""
        resp = requests.get(f"{self.url}{path}", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Make a POST request."""
        resp = requests.post(f"{self.url}{path}", json=data or {}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def send_email(
        self,
        to: List[str],
        *,
        subject: str = "Test",
        body: str = "Test message",
        from_address: str = "sender@test.com",
    ) -> str:
        """Send a simple email and return the assigned MessageId."""
        payload = {
            "FromEmailAddress": from_address,
            "Destination": {"ToAddresses": list(to)},
            "Content": {
                "Simple": {
                    "Subject": {"Data": subject},
                    "Body": {"Text": {"Data": body}},
                }
            },
        }
        return self._post(f"{SES_PREFIX}/email/outbound-emails", payload)["MessageId"]

    def emails(self) -> List[SentEmail]:
        """List every email the mock accepted, in send order."""
        data = self._get("/api/emails")
        return [SentEmail.from_dict(e) for e in data.get("emails", [])]

    def notifications(self, message_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return the delivery log, optionally for one message."""
        params = {"message_id": message_id} if message_id else None
        return self._get("/api/notifications", params=params).get("notifications", [])

    def account(self) -> Dict[str, Any]:
        return self._get(f"{SES_PREFIX}/account")

    def health(self) -> bool:
        """Check if the mock is reachable and healthy."""
        try:
            return self._get("/health").get("status") == "ok"
        except requests.RequestException:
            return False

    def __repr__(self) -> str:
        return f"<MockClient '{self.url}'>"
