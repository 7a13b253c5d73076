"""Port interfaces for the leadrelay webhook adapter.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - CrmTransportPort: Send one built request to the CRM

2. **Driving Ports** (adapters/external systems call into core)
   - WebhookPort: Handle a form-submission webhook
   - DiagnosticsPort: Probe which transport strategies the CRM accepts
"""

from abc import ABC, abstractmethod

from .models import CrmResponse, HandlerResult, OutboundRequest, WebhookRequest


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class CrmTransportPort(ABC):
    """Port for issuing a single outbound call to the CRM.

    Adapters implementing this port perform exactly one HTTP exchange per
    call with no retries of their own; retrying across strategies is the
    forwarder's job.

    Implementations must handle:
    - Encoding params as query string, form body or JSON body
    - A fixed per-call timeout
    - Wrapping network errors and timeouts in TransportFailureError
    """

    @abstractmethod
    async def send(self, request: OutboundRequest) -> CrmResponse:
        """Send one request and return the raw response.

        Any HTTP status is a response, including 4xx and 5xx; it is up to
        the caller to decide what counts as success.

        Args:
            request: Fully built outbound request.

        Returns:
            CrmResponse with status, decoded JSON object (or None) and text.

        Raises:
            TransportFailureError: On timeout or network error.
        """

    async def close(self) -> None:
        """Release any held connections. Default is a no-op."""


# ============================================================================
# DRIVING PORTS (External systems call into core)
# ============================================================================


class WebhookPort(ABC):
    """Port for handling an inbound form-submission webhook.

    Driving port: the HTTP server or serverless entry point hands each
    request here and writes back the result verbatim.
    """

    @abstractmethod
    async def handle(self, request: WebhookRequest) -> HandlerResult:
        """Process one webhook invocation.

        Args:
            request: The inbound request.

        Returns:
            HTTP-shaped result. Never raises; every failure is mapped
            to a result.
        """


class DiagnosticsPort(ABC):
    """Port for probing the CRM's accepted authentication styles."""

    @abstractmethod
    async def probe(self, request: WebhookRequest) -> HandlerResult:
        """Try each configured strategy against the CRM account endpoint.

        Args:
            request: The inbound request (GET only).

        Returns:
            HTTP-shaped result describing every attempt.
        """
