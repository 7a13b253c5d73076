"""HTTP server adapter for the webhook endpoint.

Provides a simple async HTTP server using Python's built-in http.server module
and asyncio for handling webhook requests.

Supports optional API key authentication for the webhook and diagnostics
endpoints via the Authorization header (Bearer token or X-API-Key).
"""

import asyncio
import hmac
import json
import logging
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any

from leadrelay.core.models import HandlerResult, WebhookRequest
from leadrelay.core.ports import DiagnosticsPort, WebhookPort

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 1024 * 1024
DIAGNOSTICS_PATH = "/api/diagnostics"
HEALTH_PATH = "/health"


def make_webhook_handler(
    webhook: WebhookPort,
    diagnostics: DiagnosticsPort | None,
    event_loop: asyncio.AbstractEventLoop,
    webhook_path: str,
    api_key: str | None,
    require_auth: bool,
    request_timeout: float,
) -> type[BaseHTTPRequestHandler]:
    """Factory to create a WebhookHTTPHandler class with instance-specific state.

    Creates a handler class with closure-captured dependencies instead of
    using class-level mutable state.

    Args:
        webhook: WebhookPort receiving form submissions.
        diagnostics: Optional DiagnosticsPort; the diagnostics path answers
            404 when None.
        event_loop: Event loop for async operations.
        webhook_path: Path the chat widget posts to.
        api_key: Optional API key for inbound authentication.
        require_auth: Whether authentication is required.
        request_timeout: Seconds to wait for the core before answering 500.

    Returns:
        A WebhookHTTPHandler class configured with the provided dependencies.
    """

    class WebhookHTTPHandler(BaseHTTPRequestHandler):
        """HTTP request handler for the webhook endpoints."""

        def _check_auth(self) -> bool:
            """Check if request is authenticated.

            Supports two authentication methods:
            1. Authorization: Bearer <api_key>
            2. X-API-Key: <api_key>

            Returns:
                True if authenticated or auth not required, False otherwise.
            """
            if not require_auth:
                return True

            if not api_key:
                return False

            auth_header = self.headers.get("Authorization", "")
            if auth_header.startswith("Bearer "):
                provided_key = auth_header[7:]
                return hmac.compare_digest(provided_key, api_key)

            api_key_header = self.headers.get("X-API-Key", "")
            if api_key_header:
                return hmac.compare_digest(api_key_header, api_key)

            return False

        def _route(self) -> None:
            """Dispatch a request of any method to the right port."""
            path = self.path.split("?", 1)[0]

            # Health check is always public
            if path == HEALTH_PATH and self.command in ("GET", "POST"):
                self._send_json(200, {"status": "healthy"})
                return

            if path not in (webhook_path, DIAGNOSTICS_PATH):
                self.send_error(404, "Not found")
                return
            if path == DIAGNOSTICS_PATH and diagnostics is None:
                self.send_error(404, "Not found")
                return

            if not self._check_auth():
                self.send_error(401, "Unauthorized: invalid or missing API key")
                return

            content_length = int(self.headers.get("Content-Length", 0) or 0)
            if content_length > MAX_BODY_SIZE:
                self.send_error(413, "Request body too large")
                return
            body = self.rfile.read(content_length) if content_length > 0 else b""

            request = WebhookRequest(
                method=self.command,
                body=body.decode("utf-8", errors="replace"),
                headers={k: v for k, v in self.headers.items()},
                path=path,
            )

            if path == DIAGNOSTICS_PATH and diagnostics is not None:
                self._run(diagnostics.probe(request))
            else:
                self._run(webhook.handle(request))

        def _run(self, coro: Any) -> None:
            """Run a port coroutine on the server's event loop and reply."""
            future = asyncio.run_coroutine_threadsafe(coro, event_loop)
            try:
                result: HandlerResult = future.result(timeout=request_timeout)
            except Exception as e:
                # Log full exception server-side for debugging
                logger.error(f"Error handling webhook request: {e}", exc_info=True)
                future.cancel()
                self._send_json(
                    500, {"success": False, "error": "Internal server error"}
                )
                return
            self._send_json(result.status_code, result.body)

        def do_POST(self) -> None:
            self._route()

        def do_GET(self) -> None:
            self._route()

        def do_PUT(self) -> None:
            self._route()

        def do_DELETE(self) -> None:
            self._route()

        def do_PATCH(self) -> None:
            self._route()

        def _send_json(self, status_code: int, data: dict[str, Any]) -> None:
            """Send JSON response."""
            payload = json.dumps(data, default=str).encode()
            self.send_response(status_code)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, format: str, *args: Any) -> None:
            """Log HTTP request."""
            logger.debug(f"HTTP {self.client_address[0]}: {format % args}")

    return WebhookHTTPHandler


class WebhookHTTPServer:
    """Webhook HTTP server adapter.

    Exposes the webhook, diagnostics and health endpoints.
    Optionally requires API key authentication for the first two.
    """

    def __init__(
        self,
        webhook: WebhookPort,
        diagnostics: DiagnosticsPort | None = None,
        host: str = "0.0.0.0",
        port: int = 8080,
        webhook_path: str = "/webhook",
        api_key: str | None = None,
        require_auth: bool = False,
        request_timeout: float = 120.0,
    ):
        """Initialize the HTTP server.

        Args:
            webhook: WebhookPort handling form submissions.
            diagnostics: Optional DiagnosticsPort for the probe endpoint.
            host: Host to listen on (default 0.0.0.0).
            port: Port to listen on (default 8080).
            webhook_path: Path for the webhook endpoint (default /webhook).
            api_key: Optional API key for inbound authentication.
            require_auth: Whether to require authentication (default False).
                         If True, api_key must be provided.
            request_timeout: Upper bound in seconds on one request's
                processing, covering every fallback attempt.

        Raises:
            ValueError: If require_auth is True but no api_key is provided.
        """
        if require_auth and not api_key:
            raise ValueError(
                "Webhook server configured with require_auth=True but no API key provided"
            )
        if not webhook_path.startswith("/"):
            raise ValueError(f"webhook_path must start with '/', got {webhook_path!r}")

        self.webhook = webhook
        self.diagnostics = diagnostics
        self.host = host
        self.port = port
        self.webhook_path = webhook_path
        self.api_key = api_key
        self.require_auth = require_auth
        self.request_timeout = request_timeout
        self.server: HTTPServer | None = None
        self._server_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the HTTP server."""
        if self.require_auth:
            logger.info(
                f"Starting webhook HTTP server on {self.host}:{self.port} "
                "(with API key authentication)"
            )
        else:
            logger.info(f"Starting webhook HTTP server on {self.host}:{self.port}")

        handler_class = make_webhook_handler(
            webhook=self.webhook,
            diagnostics=self.diagnostics,
            event_loop=asyncio.get_running_loop(),
            webhook_path=self.webhook_path,
            api_key=self.api_key,
            require_auth=self.require_auth,
            request_timeout=self.request_timeout,
        )

        self.server = HTTPServer((self.host, self.port), handler_class)

        # Run server in a separate thread to avoid blocking
        self._server_task = asyncio.create_task(self._run_server())
        logger.info(f"Webhook endpoint listening at {self.webhook_path}")

    async def _run_server(self) -> None:
        """Run the HTTP server loop in a thread pool."""
        if not self.server:
            return

        try:
            await asyncio.to_thread(self.server.serve_forever)
        except asyncio.CancelledError:
            # Normal shutdown
            pass
        except Exception as e:
            logger.error(f"Webhook HTTP server error: {e}", exc_info=True)

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self.server:
            await asyncio.to_thread(self.server.shutdown)
            self.server.server_close()
        if self._server_task:
            self._server_task.cancel()
            try:
                await self._server_task
            except asyncio.CancelledError:
                pass
        logger.info("Webhook HTTP server stopped")
