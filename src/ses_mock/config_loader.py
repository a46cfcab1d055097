# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loading for the SES/SNS mock.

Settings come from an INI file with environment variables as fallbacks.
Command line flags (see :mod:`ses_mock.cli`) override both.

Example:
    Configuration file format (config.ini)::

        [server]
        host = 127.0.0.1
        port = 3000

        [webhook]
        url = http://localhost:4000/api/ses-events
        step_seconds = 1.0
        topic_arn = arn:aws:sns:us-east-1:000000000000:ses-notifications

        [sns]
        subscribe_url = http://localhost:3000

        [logging]
        level = INFO
        delivery_log_size = 1000

    Environment variables (all prefixed with SES_MOCK_):
        SES_MOCK_CONFIG - Path to config.ini file (default: config.ini)
        SES_MOCK_HOST, SES_MOCK_PORT - Listen address (default: 0.0.0.0:3000)
        SES_MOCK_WEBHOOK_URL - Callback URL (``WEBHOOK_URL`` is also honoured)
        SES_MOCK_STEP_SECONDS - Delay between events of one recipient
        SES_MOCK_TOPIC_ARN - TopicArn stamped on notifications
        SES_MOCK_SUBSCRIBE_URL - SubscribeURL sent in SNS confirmations
        SES_MOCK_LOG_LEVEL - Logging level (default: INFO)
        SES_MOCK_DELIVERY_LOG_SIZE - Delivery attempts kept for inspection
"""

from __future__ import annotations

import configparser
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from .dispatcher import DEFAULT_DELIVERY_LOG_SIZE, DEFAULT_STEP_SECONDS
from .logger import get_logger
from .models import DEFAULT_TOPIC_ARN

logger = get_logger("ConfigLoader")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_CONFIG_FILE = "config.ini"


@dataclass(frozen=True)
class MockSettings:
    """Runtime settings of the mock.

    Attributes:
        host: Interface uvicorn binds to.
        port: Listening port.
        webhook_url: Callback URL for SES notifications; None disables them.
        step_seconds: Delay between consecutive events of one recipient.
        topic_arn: TopicArn stamped on notification envelopes.
        subscribe_url: SubscribeURL sent with SNS subscription confirmations.
            Defaults to ``http://localhost:<port>``.
        log_level: Root logging level name.
        delivery_log_size: Delivery attempts kept in memory.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    webhook_url: str | None = None
    step_seconds: float = DEFAULT_STEP_SECONDS
    topic_arn: str = DEFAULT_TOPIC_ARN
    subscribe_url: str | None = None
    log_level: str = "INFO"
    delivery_log_size: int = DEFAULT_DELIVERY_LOG_SIZE

    @property
    def effective_subscribe_url(self) -> str:
        return self.subscribe_url or f"http://localhost:{self.port}"

    def with_overrides(self, **overrides: Any) -> MockSettings:
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    def to_env(self) -> dict[str, str]:
        """Environment variables reproducing these settings in a child process."""
        env = {}
        for key, value in asdict(self).items():
            if value is not None:
                env[f"SES_MOCK_{key.upper()}"] = str(value)
        return env


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings(
    config_path: str | os.PathLike | None = None,
    environ: Mapping[str, str] | None = None,
) -> MockSettings:
    """Load settings from an INI file with environment variables as fallbacks.

    A missing configuration file is not an error: environment variables and
    defaults apply.

    Args:
        config_path: INI file to read. Defaults to ``$SES_MOCK_CONFIG`` or
            ``config.ini`` in the working directory.
        environ: Environment mapping, ``os.environ`` when omitted.

    Raises:
        ValueError: If a numeric setting cannot be converted.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get("SES_MOCK_CONFIG", DEFAULT_CONFIG_FILE))
    parser = configparser.ConfigParser()
    read = parser.read(path)
    if read:
        logger.debug("Loaded configuration from %s", path)

    def get(section: str, option: str, *env_names: str) -> str | None:
        if parser.has_option(section, option):
            return _clean(parser.get(section, option))
        for name in env_names:
            value = _clean(env.get(name))
            if value is not None:
                return value
        return None

    def get_int(section: str, option: str, env_name: str, default: int) -> int:
        value = get(section, option, env_name)
        return default if value is None else int(value)

    def get_float(section: str, option: str, env_name: str, default: float) -> float:
        value = get(section, option, env_name)
        return default if value is None else float(value)

    return MockSettings(
        host=get("server", "host", "SES_MOCK_HOST") or DEFAULT_HOST,
        port=get_int("server", "port", "SES_MOCK_PORT", DEFAULT_PORT),
        webhook_url=get("webhook", "url", "SES_MOCK_WEBHOOK_URL", "WEBHOOK_URL"),
        step_seconds=get_float("webhook", "step_seconds", "SES_MOCK_STEP_SECONDS", DEFAULT_STEP_SECONDS),
        topic_arn=get("webhook", "topic_arn", "SES_MOCK_TOPIC_ARN") or DEFAULT_TOPIC_ARN,
        subscribe_url=get("sns", "subscribe_url", "SES_MOCK_SUBSCRIBE_URL"),
        log_level=(get("logging", "level", "SES_MOCK_LOG_LEVEL") or "INFO").upper(),
        delivery_log_size=get_int(
            "logging", "delivery_log_size", "SES_MOCK_DELIVERY_LOG_SIZE", DEFAULT_DELIVERY_LOG_SIZE
        ),
    )
