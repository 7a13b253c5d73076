"""Generic invoker for the CRM add-contact call.

Runs the configured transport strategies strictly in sequence against
a single CrmTransportPort and stops at the first accepted response.
"""

import logging
from collections.abc import Mapping
from typing import Any

from .contact import to_crm_params
from .errors import RelayError, TransportFailureError, UpstreamRejectionError
from .models import (
    Attempt,
    ContactRecord,
    CrmResponse,
    FailureKind,
    ForwardOutcome,
    RelayConfig,
    TransportMode,
    TransportStrategy,
)
from .ports import CrmTransportPort
from .redaction import redact
from .strategies import build_request

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "success"


def is_accepted(response: CrmResponse, strict: bool) -> bool:
    """Decide whether a CRM response means the contact was accepted.

    Strict: HTTP 200 and a nested ``success`` status.
    Lenient: HTTP 200 or a nested ``success`` status.
    """
    nested = response.nested_status
    if strict:
        return response.status_code == 200 and nested == SUCCESS_STATUS
    return response.status_code == 200 or nested == SUCCESS_STATUS


class ContactForwarder:
    """Forwards a contact to the CRM using the configured strategies."""

    def __init__(self, transport: CrmTransportPort, config: RelayConfig):
        self.transport = transport
        self.config = config

    @property
    def strategies(self) -> tuple[TransportStrategy, ...]:
        if self.config.mode == TransportMode.SIMPLE:
            return self.config.strategies[:1]
        return self.config.strategies

    async def forward(self, contact: ContactRecord) -> ForwardOutcome:
        """Send the contact, trying strategies until one is accepted.

        Args:
            contact: Contact to create in the CRM.

        Returns:
            ForwardOutcome. On failure it carries the last attempt's error.
        """
        params = to_crm_params(
            contact,
            list_id=self.config.list_id,
            custom_field_prefix=self.config.custom_field_prefix,
        )
        return await self.run(self.config.add_contact_url, params)

    async def run(
        self,
        url: str,
        params: Mapping[str, str],
        strategies: tuple[TransportStrategy, ...] | None = None,
    ) -> ForwardOutcome:
        """Evaluate strategies in order against one endpoint.

        Args:
            url: Target endpoint.
            params: Parameters to send (without the API key).
            strategies: Override the configured strategy list.

        Returns:
            ForwardOutcome for the first accepted attempt, or a failure
            carrying the last error.
        """
        strategies = self.strategies if strategies is None else strategies
        strict = self.config.mode == TransportMode.SIMPLE
        attempts: list[Attempt] = []
        last_error: RelayError | None = None
        accepted: tuple[TransportStrategy, CrmResponse] | None = None

        for strategy in strategies:
            request = build_request(strategy, url, params, self.config.api_key)
            logger.info(
                f"Calling CRM with strategy {strategy.name}: {strategy.describe()}",
                extra={"strategy": strategy.name, "url": url},
            )

            try:
                response = await self.transport.send(request)
            except TransportFailureError as e:
                detail = self._redact(e.detail if e.detail is not None else str(e))
                attempts.append(Attempt(strategy.name, e.status_code, False, detail))
                last_error = e
                logger.warning(
                    f"Strategy {strategy.name} failed in transport: {self._redact(str(e))}",
                    extra={"strategy": strategy.name},
                )
                continue

            if response.payload is None:
                last_error = TransportFailureError(
                    "CRM returned a non-JSON response",
                    status_code=response.status_code,
                    detail=response.text[:500],
                )
                attempts.append(
                    Attempt(
                        strategy.name,
                        response.status_code,
                        False,
                        self._redact(response.text[:500]),
                    )
                )
                logger.warning(
                    f"Strategy {strategy.name} returned non-JSON body "
                    f"(status {response.status_code})",
                    extra={"strategy": strategy.name},
                )
                continue

            ok = is_accepted(response, strict)
            attempts.append(
                Attempt(
                    strategy.name,
                    response.status_code,
                    ok,
                    self._redact(response.payload),
                )
            )

            if ok:
                logger.info(
                    f"Strategy {strategy.name} accepted by CRM",
                    extra={
                        "strategy": strategy.name,
                        "status_code": response.status_code,
                    },
                )
                accepted = (strategy, response)
                break

            last_error = UpstreamRejectionError(
                f"CRM rejected request (status {response.status_code})",
                status_code=response.status_code,
                detail=response.payload,
            )
            logger.warning(
                f"Strategy {strategy.name} rejected by CRM "
                f"(status {response.status_code})",
                extra={
                    "strategy": strategy.name,
                    "status_code": response.status_code,
                    "response": self._redact(response.payload),
                },
            )

        if accepted is not None:
            strategy, response = accepted
            return ForwardOutcome(
                success=True,
                attempts=tuple(attempts),
                status_code=response.status_code,
                contact_id=response.contact_id,
                payload=self._redact(response.payload),
                strategy=strategy.name,
            )

        return self._failed(attempts, last_error)

    def _failed(
        self, attempts: list[Attempt], error: RelayError | None
    ) -> ForwardOutcome:
        if isinstance(error, UpstreamRejectionError):
            kind = FailureKind.UPSTREAM_REJECTION
            status_code = error.status_code
            detail = error.detail
        elif isinstance(error, TransportFailureError):
            kind = FailureKind.TRANSPORT_FAILURE
            status_code = error.status_code
            detail = error.detail
        else:
            kind = FailureKind.TRANSPORT_FAILURE
            status_code = 0
            detail = None

        message = self._redact(
            str(error) if error is not None else "No transport strategy attempted"
        )
        logger.error(
            f"All {len(attempts)} CRM attempt(s) failed: {message}",
            extra={"failure_kind": kind.value},
        )
        return ForwardOutcome(
            success=False,
            attempts=tuple(attempts),
            status_code=status_code,
            payload=self._redact(detail),
            error=message,
            failure_kind=kind,
        )

    def _redact(self, value: Any) -> Any:
        return redact(value, self.config.secrets)
