# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Recipient extraction from SendEmail requests.

Structured requests list their recipients in ``Destination.ToAddresses``.
Raw requests carry a base64 encoded RFC 822 message. It is decoded as UTF-8
so internationalised addresses survive, then its ``To`` header is parsed with
the standard library ``email`` package.
"""

from __future__ import annotations

import base64
import binascii
from email import message_from_string
from email.utils import getaddresses

from .logger import get_logger
from .models import SendEmailRequest

logger = get_logger("Extractor")


class RawMessageError(ValueError):
    """Raised when raw message data cannot be decoded or parsed."""


def parse_raw_recipients(data: str | bytes) -> list[str]:
    """Return the ``To`` addresses of a base64 encoded raw message.

    Display names are dropped, only the address part is kept, in header
    order. Entries without an address are skipped.

    Raises:
        RawMessageError: If ``data`` is not valid base64 or the message
            cannot be parsed.
    """
    try:
        raw = base64.b64decode(data)
    except (binascii.Error, ValueError) as exc:
        raise RawMessageError(f"invalid base64 payload: {exc}") from exc
    try:
        msg = message_from_string(raw.decode("utf-8", errors="replace"))
        headers = [str(value) for value in msg.get_all("To", [])]
        return [addr for _name, addr in getaddresses(headers) if addr]
    except (TypeError, ValueError, IndexError) as exc:
        raise RawMessageError(f"unparseable message: {exc}") from exc


def extract_recipients(request: SendEmailRequest) -> list[str]:
    """Resolve the ordered recipient list of a send request.

    Raw parse failures are logged and degrade to an empty list; the send
    itself still succeeds.
    """
    if request.is_raw:
        try:
            recipients = parse_raw_recipients(request.raw_data)
        except RawMessageError as exc:
            logger.error("Error parsing raw email: %s", exc)
            return []
        logger.debug("Parsed raw email - To addresses: %s", recipients)
        return recipients
    if request.destination is None:
        return []
    return list(request.destination.to_addresses)
