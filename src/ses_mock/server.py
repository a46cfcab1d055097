# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""ASGI application entry point for uvicorn.

This module provides a pre-configured FastAPI application built from
:func:`ses_mock.config_loader.load_settings` at import time.

Usage:
    uvicorn ses_mock.server:app --host 0.0.0.0 --port 3000

Environment variables:
    SES_MOCK_CONFIG: Path to an INI file (default: config.ini)
    SES_MOCK_WEBHOOK_URL / WEBHOOK_URL: Callback URL for SES notifications
    See :mod:`ses_mock.config_loader` for the complete list.
"""

from __future__ import annotations

from .bootstrap import build_app
from .config_loader import load_settings

app = build_app(load_settings())
