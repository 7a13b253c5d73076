"""Composition root for the leadrelay webhook adapter.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the application.

Module Structure:
- Configuration loading via config module
- Logging setup with secret redaction
- Adapter instantiation
- Core service initialization
- HTTP server startup
"""

import asyncio
import logging
import sys
from collections.abc import Iterable

from leadrelay.adapters.crm.http_transport import HttpCrmTransport
from leadrelay.adapters.webhook.function import FunctionHandler, make_function_handler
from leadrelay.adapters.webhook.http_server import WebhookHTTPServer
from leadrelay.config import Settings, load_settings
from leadrelay.core.diagnostics_service import DiagnosticsService
from leadrelay.core.redaction import RedactingFilter
from leadrelay.core.webhook_service import WebhookService


def configure_logging(
    log_level: str, log_format: str, secrets: Iterable[str] = ()
) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
        secrets: Values masked in every emitted record.
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RedactingFilter(secrets))

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[handler],
        force=True,
    )


def build_services(
    settings: Settings,
) -> tuple[HttpCrmTransport, WebhookService, DiagnosticsService | None]:
    """Instantiate the transport adapter and core services.

    Args:
        settings: Loaded application settings.

    Returns:
        Tuple of (transport, webhook service, diagnostics service or None).
    """
    config = settings.to_relay_config()
    transport = HttpCrmTransport(timeout_seconds=settings.crm_timeout_seconds)
    webhook = WebhookService(transport=transport, config=config)
    diagnostics = (
        DiagnosticsService(transport=transport, config=config)
        if settings.diagnostics_enabled
        else None
    )
    return transport, webhook, diagnostics


def create_function_handler(settings: Settings | None = None) -> FunctionHandler:
    """Build a serverless ``handler(event, context)`` from settings.

    The transport's HTTP client lives as long as the function instance.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level, settings.log_format, [settings.api_key])
    _, webhook, diagnostics = build_services(settings)
    return make_function_handler(webhook, diagnostics)


async def bootstrap() -> None:
    """Load configuration, wire adapters, and run the HTTP server.

    Steps:
    1. Load configuration from environment
    2. Configure logging
    3. Instantiate adapters and core services
    4. Start the webhook HTTP server and serve until cancelled

    Raises:
        SystemExit: On fatal errors (configuration, adapter initialization)
        asyncio.CancelledError: On graceful shutdown signal
    """
    # Step 1: Load configuration
    settings = load_settings()

    # Step 2: Configure logging
    configure_logging(
        "DEBUG" if settings.debug else settings.log_level,
        settings.log_format,
        [settings.api_key, settings.webhook_api_key],
    )
    logger = logging.getLogger(__name__)
    logger.info("Loading leadrelay webhook adapter...")

    if not settings.api_key:
        # Not fatal at startup: each invocation answers with a configuration error
        logger.warning("API_KEY is not set; every webhook call will fail with 500")

    # Step 3: Instantiate adapters and services
    transport, webhook, diagnostics = build_services(settings)
    logger.info(
        f"CRM transport: {settings.crm_transport_mode} mode, "
        f"strategies {settings.crm_strategies}"
    )
    if diagnostics is not None:
        logger.info("Diagnostics endpoint enabled")

    # Step 4: Start HTTP server
    http_server = WebhookHTTPServer(
        webhook=webhook,
        diagnostics=diagnostics,
        host=settings.webhook_host,
        port=settings.webhook_port,
        webhook_path=settings.webhook_path,
        api_key=settings.webhook_api_key or None,
        require_auth=settings.webhook_require_auth,
        request_timeout=settings.request_timeout,
    )

    try:
        await http_server.start()
        while True:
            await asyncio.sleep(1)
    finally:
        await http_server.stop()
        await transport.close()


def main() -> None:
    """Application entry point.

    Exit codes:
        0: Successful shutdown
        1: Fatal bootstrap or runtime error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        asyncio.run(bootstrap())
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except asyncio.CancelledError:
        logger.info("Graceful shutdown completed")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
