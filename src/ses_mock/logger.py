# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Logging utilities for the SES/SNS mock.

Handlers, level and format are configured once in the entry point through
``logging.basicConfig()`` (see :func:`configure_logging`); modules only ask
for a named logger.

Example:
    Typical usage in a module::

        from ses_mock.logger import get_logger

        logger = get_logger("Dispatcher")
        logger.info("Notification delivered")
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "SesMock") -> logging.Logger:
    """Retrieve a logger instance.

    This function returns a standard library logger with the specified name.
    It does not configure handlers or formatters; that responsibility lies
    with the application entry point.

    Args:
        name: The logger name. Defaults to "SesMock".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for the process.

    Unknown level names fall back to INFO. ``force=True`` replaces handlers
    installed earlier so uvicorn reloads do not duplicate output.
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
