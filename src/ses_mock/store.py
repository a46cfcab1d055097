# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""In-memory state owned by the mock: identities, DKIM keys, configuration
sets and the sent-message log.

Nothing survives a restart. Keyed stores are last-write-wins; the sent log is
append-only.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any

DEFAULT_SIGNING_SELECTOR = "unsend"
MOCK_PRIVATE_KEY = "mock-private-key"
MOCK_PUBLIC_KEY = "mock-public-key"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def default_identity(identity: str) -> dict[str, Any]:
    """Synthesise the verified identity returned for unknown names."""
    now = _now()
    return {
        "IdentityType": "DOMAIN",
        "FeedbackForwardingStatus": True,
        "VerifiedForSendingStatus": True,
        "DkimAttributes": {
            "SigningEnabled": True,
            "Status": "SUCCESS",
            "SigningAttributesOrigin": "EXTERNAL",
            "DomainSigningSelector": DEFAULT_SIGNING_SELECTOR,
            "CurrentSigningKeyLength": "RSA_2048_BIT",
        },
        "MailFromAttributes": {
            "MailFromDomain": f"mail.{identity}",
            "MailFromDomainStatus": "SUCCESS",
            "BehaviorOnMxFailure": "USE_DEFAULT_VALUE",
        },
        "Policies": {},
        "Tags": [],
        "VerificationStatus": "SUCCESS",
        "VerificationInfo": {
            "LastCheckedTimestamp": now,
            "LastSuccessTimestamp": now,
        },
    }


class IdentityStore:
    """Email identities plus their placeholder DKIM key pairs."""

    def __init__(self) -> None:
        self._identities: dict[str, dict[str, Any]] = {}
        self._dkim_keys: dict[str, dict[str, str]] = {}

    def get(self, identity: str) -> dict[str, Any] | None:
        record = self._identities.get(identity)
        return copy.deepcopy(record) if record is not None else None

    def create(
        self,
        identity: str,
        selector: str | None = None,
        private_key: str | None = None,
    ) -> dict[str, Any]:
        """Register (or replace) a verified identity and return the stored record.

        A supplied private key is kept as is; otherwise a placeholder pair is
        recorded. No real key material is ever generated.
        """
        keys = {
            "privateKey": private_key or MOCK_PRIVATE_KEY,
            "publicKey": MOCK_PUBLIC_KEY,
        }
        record = default_identity(identity)
        record["DkimAttributes"]["DomainSigningSelector"] = selector or DEFAULT_SIGNING_SELECTOR
        record["DkimAttributes"]["DomainSigningPrivateKey"] = keys["privateKey"]
        record["MailFromAttributes"]["MailFromDomain"] = f"mail@{identity}"
        self._identities[identity] = record
        self._dkim_keys[identity] = keys
        return copy.deepcopy(record)

    def delete(self, identity: str) -> bool:
        self._dkim_keys.pop(identity, None)
        return self._identities.pop(identity, None) is not None

    def set_mail_from(self, identity: str, mail_from_domain: str) -> bool:
        """Update the MAIL FROM domain; False when the identity is unknown."""
        record = self._identities.get(identity)
        if record is None:
            return False
        record["MailFromAttributes"] = {
            "MailFromDomain": mail_from_domain,
            "MailFromDomainStatus": "SUCCESS",
            "BehaviorOnMxFailure": "USE_DEFAULT_VALUE",
        }
        return True

    def dkim_keys(self, identity: str) -> dict[str, str] | None:
        keys = self._dkim_keys.get(identity)
        return dict(keys) if keys is not None else None

    def __contains__(self, identity: object) -> bool:
        return identity in self._identities

    def __len__(self) -> int:
        return len(self._identities)


class ConfigurationSetStore:
    """Event destinations registered per configuration set."""

    def __init__(self) -> None:
        self._destinations: dict[str, list[dict[str, Any]]] = {}

    def add_event_destination(self, name: str, destination: dict[str, Any]) -> None:
        self._destinations.setdefault(name, []).append(destination)

    def event_destinations(self, name: str) -> list[dict[str, Any]]:
        return list(self._destinations.get(name, []))


class SentMessageLog:
    """Append-only log of accepted SendEmail requests, in send order."""

    def __init__(self) -> None:
        self._records: list[dict[str, Any]] = []

    def append(self, request: dict[str, Any], message_id: str) -> dict[str, Any]:
        record = {**request, "MessageId": message_id}
        self._records.append(record)
        return record

    def list(self) -> list[dict[str, Any]]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)
