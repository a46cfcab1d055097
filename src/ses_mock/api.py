# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""FastAPI application factory for the SES/SNS mock.

This module exposes the HTTP surface of the mock:

- SES v2 routes under ``/api/ses/v2`` (identities, SendEmail, account,
  configuration sets)
- the SNS Query API endpoint ``/api/sns/``
- inspection routes: ``/api/emails``, ``/api/notifications``, ``/metrics``
- ``/health`` for container monitoring

Every SES route forwards to :meth:`ses_mock.core.MockCore.handle_command`.

Example:
    Creating and running the API application::

        from ses_mock.core import MockCore
        from ses_mock.api import create_app

        core = MockCore(webhook_url="http://localhost:4000/ses-events")
        app = create_app(core)

        # Run with uvicorn
        uvicorn.run(app, host="0.0.0.0", port=3000)
"""

from typing import Any, AsyncContextManager, Callable, Dict, List, Optional
import logging

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from . import __version__
from .core import MockCore
from .models import CreateEmailIdentityRequest, MailFromRequest, SendEmailRequest

logger = logging.getLogger(__name__)

SES_PREFIX = "/api/ses/v2"
OK_METADATA = {"httpStatusCode": 200}


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_unset=True)


def _error_response(result: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=result.get("status", 400), content={"error": result.get("error")})


def create_app(
    svc: MockCore,
    lifespan: Callable[[FastAPI], AsyncContextManager] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    svc:
        Instance of :class:`ses_mock.core.MockCore` that implements every
        operation.
    lifespan:
        Optional lifespan context manager for startup/shutdown events.

    Returns
    -------
    FastAPI
        A configured application ready to be served by Uvicorn or any ASGI
        server.
    """
    api = FastAPI(title="SES Mock", version=__version__, lifespan=lifespan)
    api.state.service = svc

    @api.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("Received %s request for %s", request.method, request.url)
        return await call_next(request)

    @api.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Log validation errors with full details."""
        body = await request.body()
        logger.error(f"Validation error on {request.method} {request.url.path}")
        logger.error(f"Request body: {body.decode('utf-8', errors='replace')}")
        logger.error(f"Validation errors: {exc.errors()}")
        return JSONResponse(
            status_code=422,
            content={"detail": jsonable_errors(exc)}
        )

    @api.get("/")
    async def root():
        return {"message": "SES Mock", "version": __version__}

    @api.get("/health")
    async def health():
        """Health check endpoint for container monitoring."""
        return {"status": "ok"}

    # ------------------------------------------------------------------ SES
    @api.get(f"{SES_PREFIX}/email/identities/{{identity}}")
    async def get_email_identity(identity: str):
        """GetEmailIdentity: stored identity or a verified default."""
        result = await svc.handle_command("getIdentity", {"identity": identity})
        return result["identity"]

    @api.post(f"{SES_PREFIX}/email/identities")
    async def create_email_identity(payload: CreateEmailIdentityRequest):
        """CreateEmailIdentity with placeholder DKIM keys."""
        result = await svc.handle_command("createIdentity", _dump(payload))
        if not result.get("ok"):
            return _error_response(result)
        result.pop("ok", None)
        return result

    @api.delete(f"{SES_PREFIX}/email/identities/{{identity}}")
    async def delete_email_identity(identity: str):
        await svc.handle_command("deleteIdentity", {"identity": identity})
        return {}

    @api.put(f"{SES_PREFIX}/email/identities/{{identity}}/mail-from")
    async def put_mail_from_attributes(identity: str, payload: MailFromRequest):
        """PutEmailIdentityMailFromAttributes; 404 for unknown identities."""
        result = await svc.handle_command(
            "putMailFrom", {**_dump(payload), "identity": identity}
        )
        if not result.get("ok"):
            return _error_response(result)
        return {"$metadata": OK_METADATA}

    @api.post(f"{SES_PREFIX}/email/outbound-emails")
    async def send_email(payload: SendEmailRequest):
        """SendEmail: returns the message id before any notification fires."""
        result = await svc.handle_command("sendEmail", _dump(payload))
        if not result.get("ok"):
            return _error_response(result)
        return {"MessageId": result["MessageId"]}

    @api.get(f"{SES_PREFIX}/account")
    async def get_account():
        result = await svc.handle_command("getAccount", {})
        return result["account"]

    @api.post(f"{SES_PREFIX}/email/configuration-sets")
    async def create_configuration_set(payload: Dict[str, Any] = Body(...)):
        await svc.handle_command("createConfigurationSet", payload)
        return {}

    @api.post(f"{SES_PREFIX}/email/configuration-sets/{{name}}/event-destinations")
    async def create_event_destination(name: str, payload: Dict[str, Any] = Body(...)):
        await svc.handle_command(
            "addEventDestination", {"name": name, "destination": payload}
        )
        return {}

    # ------------------------------------------------------------------ SNS
    @api.post("/api/sns/")
    @api.post("/api/sns", include_in_schema=False)
    async def sns_action(request: Request):
        """SNS Query API: form-encoded ``Action`` in, XML document out."""
        body = await request.body()
        reply = svc.handle_sns(body)
        return Response(content=reply.body, status_code=reply.status_code, media_type=reply.media_type)

    # ----------------------------------------------------------- inspection
    @api.get("/api/emails")
    async def all_emails():
        """List every accepted SendEmail request, in send order."""
        result = await svc.handle_command("listEmails", {})
        return {"emails": result["emails"], "$metadata": OK_METADATA}

    @api.get("/api/notifications")
    async def all_notifications(message_id: Optional[str] = None):
        """Expose the dispatcher delivery log, optionally for one message."""
        result = await svc.handle_command(
            "listNotifications", {"message_id": message_id}
        )
        return {"notifications": result["notifications"], "$metadata": OK_METADATA}

    @api.get("/metrics")
    async def metrics():
        """Expose Prometheus metrics collected by the mock."""
        return Response(content=svc.metrics.generate_latest(), media_type="text/plain; version=0.0.4")

    return api


def jsonable_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """Validation errors stripped of values JSON cannot encode (exception ctx)."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors
