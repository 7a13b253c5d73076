"""Serverless function entry point.

Translates a hosting platform's request envelope
(``{"httpMethod", "body", "headers", "path", "isBase64Encoded"}``) into a
WebhookRequest and the HandlerResult back into
``{"statusCode", "headers", "body"}``. The platform owns concurrency and
the execution timeout.
"""

import base64
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from leadrelay.core.models import WebhookRequest
from leadrelay.core.ports import DiagnosticsPort, WebhookPort

logger = logging.getLogger(__name__)

FunctionHandler = Callable[[dict[str, Any], Any], Awaitable[dict[str, Any]]]


def request_from_event(event: dict[str, Any]) -> WebhookRequest:
    """Build a WebhookRequest from a platform event envelope."""
    body = event.get("body") or ""
    if event.get("isBase64Encoded") and body:
        body = base64.b64decode(body).decode("utf-8", errors="replace")

    headers = event.get("headers") or {}
    return WebhookRequest(
        method=str(event.get("httpMethod") or "GET"),
        body=body,
        headers={str(k): str(v) for k, v in headers.items()},
        path=str(event.get("path") or "/"),
    )


def make_function_handler(
    webhook: WebhookPort,
    diagnostics: DiagnosticsPort | None = None,
) -> FunctionHandler:
    """Create an async ``handler(event, context)`` for a function host.

    Requests whose path ends with ``/diagnostics`` go to the probe when
    one is provided; everything else goes to the webhook service.
    """

    async def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
        request = request_from_event(event)
        if diagnostics is not None and request.path.rstrip("/").endswith("/diagnostics"):
            result = await diagnostics.probe(request)
        else:
            result = await webhook.handle(request)

        logger.debug(
            f"Function invocation finished with {result.status_code}",
            extra={"path": request.path},
        )
        return {
            "statusCode": result.status_code,
            "headers": {"Content-Type": "application/json"},
            "body": result.to_json(),
        }

    return handler
