"""Local stand-in for Amazon SES v2 and the SNS control plane.

This package lets an application exercise its email integration without
AWS:

- SES v2 identity, SendEmail, account and configuration-set routes
- Lifecycle notifications (Send, Delivery, Bounce, Click, ...) chosen by
  recipient address and posted to a webhook as SNS envelopes
- SNS Query API stubs with subscription confirmation callbacks
- Prometheus metrics and an inspectable delivery log

Example:
    Basic usage with the FastAPI application::

        from ses_mock.core import MockCore
        from ses_mock.api import create_app

        core = MockCore(webhook_url="http://localhost:4000/api/ses-events")
        app = create_app(core)

Authors:
    Softwell S.r.l.
"""

__version__ = "0.1.0"
