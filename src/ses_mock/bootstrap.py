# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Application assembly from resolved settings.

Importing this module has no side effects: nothing is read from disk or the
environment until :func:`build_app` is called.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import create_app
from .config_loader import MockSettings
from .core import MockCore
from .logger import configure_logging, get_logger


def build_app(settings: MockSettings) -> FastAPI:
    """Create the mock core and its application from resolved settings."""
    configure_logging(settings.log_level)
    logger = get_logger()
    core = MockCore(
        webhook_url=settings.webhook_url,
        topic_arn=settings.topic_arn,
        step_seconds=settings.step_seconds,
        subscribe_url=settings.effective_subscribe_url,
        delivery_log_size=settings.delivery_log_size,
        logger=logger,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler - announces endpoints, drops pending work."""
        logger.info("Starting AWS SES at http://localhost:%s/api/ses", settings.port)
        logger.info("Starting AWS SNS at http://localhost:%s/api/sns", settings.port)
        logger.info("WEBHOOK_URL: %s", settings.webhook_url)
        yield
        await app.state.service.stop()

    return create_app(core, lifespan=lifespan)
