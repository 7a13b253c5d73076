"""Diagnostics service: implements DiagnosticsPort.

Finds out which authentication style the CRM accepts by calling its
account endpoint once per configured strategy. Optionally follows up
with a single add-contact call using the first strategy that worked.
"""

import logging
from typing import Any

from .errors import ConfigurationError
from .forwarder import ContactForwarder
from .models import HandlerResult, RelayConfig, WebhookRequest
from .ports import CrmTransportPort, DiagnosticsPort
from .redaction import redact
from .webhook_service import configuration_error_result, require_api_key

logger = logging.getLogger(__name__)


class DiagnosticsService(DiagnosticsPort):
    """Probes the CRM with each configured transport strategy."""

    def __init__(self, transport: CrmTransportPort, config: RelayConfig):
        self.config = config
        self.forwarder = ContactForwarder(transport, config)

    async def probe(self, request: WebhookRequest) -> HandlerResult:
        if request.method.upper() != "GET":
            return HandlerResult(
                status_code=405,
                body={"success": False, "error": "Method not allowed"},
            )

        try:
            require_api_key(self.config)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return configuration_error_result(e)

        results: list[dict[str, Any]] = []
        working: dict[str, Any] | None = None

        for strategy in self.config.strategies:
            outcome = await self.forwarder.run(
                self.config.account_url, {}, strategies=(strategy,)
            )
            attempt = outcome.attempts[-1]
            entry = {
                "method": strategy.name,
                "description": strategy.describe(),
                "status": attempt.status_code,
                "success": attempt.status_code == 200,
                "response": attempt.detail,
            }
            results.append(entry)
            if entry["success"]:
                working = entry
                logger.info(f"Authentication probe succeeded with {strategy.name}")
                break

        if working is not None and self.config.probe_contact_email:
            strategy = next(
                s for s in self.config.strategies if s.name == working["method"]
            )
            outcome = await self.forwarder.run(
                self.config.add_contact_url,
                {"email": self.config.probe_contact_email},
                strategies=(strategy,),
            )
            attempt = outcome.attempts[-1]
            results.append(
                {
                    "method": f"{strategy.name} - Contact Creation",
                    "description": strategy.describe(),
                    "status": attempt.status_code,
                    "success": outcome.success,
                    "response": attempt.detail,
                }
            )

        body = {
            "test_completed": True,
            "api_key_length": len(self.config.api_key),
            "results": results,
            "working_methods": [r for r in results if r["success"]],
        }
        return HandlerResult(status_code=200, body=redact(body, self.config.secrets))
