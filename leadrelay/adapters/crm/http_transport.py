"""httpx-backed CRM transport adapter.

Implements CrmTransportPort: performs exactly one HTTP exchange per
call, encoding parameters as a query string, form body or JSON body
depending on the request.
"""

import logging
from typing import Any

import httpx

from leadrelay.core.errors import TransportFailureError
from leadrelay.core.models import BodyEncoding, CrmResponse, OutboundRequest
from leadrelay.core.ports import CrmTransportPort

logger = logging.getLogger(__name__)


class HttpCrmTransport(CrmTransportPort):
    """Sends outbound CRM requests through an httpx.AsyncClient."""

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the transport.

        Args:
            timeout_seconds: Fixed per-call timeout.
            client: Optional pre-built client (tests inject one with a
                MockTransport). Created lazily otherwise.
        """
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpCrmTransport":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def send(self, request: OutboundRequest) -> CrmResponse:
        """Send one request to the CRM.

        Raises:
            TransportFailureError: On timeout or any other httpx error.
        """
        client = await self._get_client()
        params = dict(request.params)
        kwargs: dict[str, Any] = {
            "headers": dict(request.headers),
            "timeout": self.timeout_seconds,
        }

        if request.encoding == BodyEncoding.QUERY:
            kwargs["params"] = params
        elif request.encoding == BodyEncoding.FORM:
            kwargs["data"] = params
        else:
            kwargs["json"] = params

        try:
            response = await client.request(request.method.value, request.url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportFailureError(
                f"CRM request timed out after {self.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise TransportFailureError(
                f"CRM request failed: {type(e).__name__}: {e}"
            ) from e

        logger.debug(
            f"CRM responded {response.status_code}",
            extra={"status_code": response.status_code},
        )
        return CrmResponse(
            status_code=response.status_code,
            payload=_json_object(response),
            text=response.text,
        )


def _json_object(response: httpx.Response) -> dict[str, Any] | None:
    """Decode the body as a JSON object, or return None."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
