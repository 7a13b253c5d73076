"""Webhook service: implements WebhookPort.

Takes one inbound pre-chat form submission through
Received -> Validated -> ContactExtracted -> CallAttempted* ->
Succeeded | Failed and maps every terminal state onto an HTTP-shaped
result. Nothing escapes ``handle`` as an exception.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from .contact import extract_contact
from .errors import ConfigurationError, RejectedInputError
from .forwarder import ContactForwarder
from .models import (
    PRECHAT_FORM_SUBMISSION,
    ContactRecord,
    FailureKind,
    ForwardOutcome,
    HandlerResult,
    InboundEvent,
    RelayConfig,
    WebhookRequest,
)
from .ports import CrmTransportPort, WebhookPort
from .redaction import redact

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def require_api_key(config: RelayConfig) -> None:
    """Raise ConfigurationError if no CRM API key is configured."""
    if not config.api_key:
        raise ConfigurationError("CRM API key is not configured (set API_KEY)")


def configuration_error_result(error: ConfigurationError) -> HandlerResult:
    """Map a configuration error onto a 500 result."""
    return HandlerResult(
        status_code=500,
        body={
            "success": False,
            "error": "Configuration error",
            "details": str(error),
            "timestamp": _timestamp(),
        },
    )


class WebhookService(WebhookPort):
    """Forwards pre-chat form submissions to the CRM.

    The configuration is fixed at construction; nothing is read from the
    process environment here.
    """

    def __init__(self, transport: CrmTransportPort, config: RelayConfig):
        """Initialize the webhook service.

        Args:
            transport: CrmTransportPort implementation for outbound calls.
            config: Relay configuration (API key, strategies, policies).
        """
        self.config = config
        self.forwarder = ContactForwarder(transport, config)

    async def handle(self, request: WebhookRequest) -> HandlerResult:
        """Process one webhook invocation. Never raises."""
        try:
            contact = self._validate(request)
            outcome = await self.forwarder.forward(contact)
            result = self._outcome_result(contact, outcome)
        except RejectedInputError as e:
            logger.info(
                f"Rejected webhook: {e.reason}",
                extra={"status_code": e.status_code},
            )
            result = HandlerResult(
                status_code=e.status_code,
                body={"success": False, "error": e.reason},
            )
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            result = configuration_error_result(e)
        except Exception as e:
            logger.error(
                f"Unexpected error handling webhook: {redact(str(e), self.config.secrets)}",
                exc_info=True,
            )
            result = HandlerResult(
                status_code=500,
                body={
                    "success": False,
                    "error": "Internal error while forwarding contact",
                    "details": str(e),
                    "timestamp": _timestamp(),
                },
            )

        body = redact(result.body, self.config.secrets)
        if result.success:
            # The submitted email is returned as received
            body["email"] = result.body["email"]
        return HandlerResult(status_code=result.status_code, body=body)

    def _validate(self, request: WebhookRequest) -> ContactRecord:
        """Run every local check and extract the contact.

        Raises:
            RejectedInputError: Wrong method, bad JSON, wrong event, no email.
            ConfigurationError: No API key configured.
        """
        if request.method.upper() != "POST":
            raise RejectedInputError(405, "Method not allowed")

        require_api_key(self.config)

        try:
            payload = json.loads(request.body) if request.body else None
        except json.JSONDecodeError:
            raise RejectedInputError(400, "Invalid JSON body") from None
        if not isinstance(payload, dict):
            raise RejectedInputError(400, "Invalid JSON body")

        event = InboundEvent.from_payload(payload)
        logger.info(
            "Received webhook event",
            extra={
                "event": event.event,
                "visitor_id": event.visitor_id,
                "field_count": len(event.fields),
            },
        )

        if event.event != PRECHAT_FORM_SUBMISSION:
            raise RejectedInputError(400, "Invalid event type")

        contact = extract_contact(event)
        if contact is None:
            raise RejectedInputError(400, "Email is required")
        return contact

    def _outcome_result(
        self, contact: ContactRecord, outcome: ForwardOutcome
    ) -> HandlerResult:
        """Map a forward outcome onto the result envelope."""
        if outcome.success:
            body: dict[str, Any] = {
                "success": True,
                "contact_id": outcome.contact_id,
                "email": contact.email,
            }
            if self.config.include_crm_response:
                body["crm_response"] = outcome.payload
                body["strategy"] = outcome.strategy
                body["attempts"] = [a.to_dict() for a in outcome.attempts]
            logger.info(
                "Contact forwarded to CRM",
                extra={"contact_id": outcome.contact_id, "strategy": outcome.strategy},
            )
            return HandlerResult(status_code=200, body=body)

        body = {
            "success": False,
            "error": outcome.error,
            "details": outcome.payload,
            "timestamp": _timestamp(),
        }
        if self.config.include_crm_response:
            body["attempts"] = [a.to_dict() for a in outcome.attempts]

        if outcome.failure_kind == FailureKind.UPSTREAM_REJECTION:
            status_code = self.config.upstream_failure_status
        else:
            status_code = 500
        return HandlerResult(status_code=status_code, body=body)
