"""Tests for HttpCrmTransport against httpx.MockTransport."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from leadrelay.adapters.crm.http_transport import HttpCrmTransport
from leadrelay.core.errors import TransportFailureError
from leadrelay.core.strategies import STRATEGY_REGISTRY, build_request

URL = "https://crm.test/1/emailmarketing/addcontact"
PARAMS = {"email": "a@b.com", "phone": "555"}


def make_transport(handler) -> tuple[HttpCrmTransport, list[httpx.Request]]:
    """Build a transport whose client records requests and calls handler."""
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return HttpCrmTransport(timeout_seconds=5.0, client=client), seen


def ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200, json={"response": {"status": "success", "data": {"id": "c-1"}}}
    )


@pytest.mark.asyncio
class TestEncodings:
    """Each encoding puts parameters where the CRM expects them."""

    async def test_form_body(self) -> None:
        transport, seen = make_transport(ok)
        request = build_request(STRATEGY_REGISTRY["form_apikey"], URL, PARAMS, "sk")

        response = await transport.send(request)

        sent = seen[0]
        assert sent.method == "POST"
        assert sent.headers["content-type"] == "application/x-www-form-urlencoded"
        assert parse_qs(sent.content.decode()) == {
            "apikey": ["sk"],
            "email": ["a@b.com"],
            "phone": ["555"],
        }
        assert response.status_code == 200
        assert response.contact_id == "c-1"
        await transport.close()

    async def test_json_body_with_bearer(self) -> None:
        transport, seen = make_transport(ok)
        request = build_request(STRATEGY_REGISTRY["json_bearer"], URL, PARAMS, "sk")

        await transport.send(request)

        sent = seen[0]
        assert sent.headers["authorization"] == "Bearer sk"
        assert json.loads(sent.content) == PARAMS
        await transport.close()

    async def test_get_query_string(self) -> None:
        transport, seen = make_transport(ok)
        request = build_request(STRATEGY_REGISTRY["query_api_key"], URL, PARAMS, "sk")

        await transport.send(request)

        sent = seen[0]
        assert sent.method == "GET"
        assert sent.url.params["api_key"] == "sk"
        assert sent.url.params["email"] == "a@b.com"
        assert sent.content == b""
        await transport.close()


@pytest.mark.asyncio
class TestResponses:
    """Responses of any status come back; only transport errors raise."""

    async def test_error_status_is_a_response(self) -> None:
        transport, _ = make_transport(
            lambda r: httpx.Response(401, json={"response": {"status": "error"}})
        )
        request = build_request(STRATEGY_REGISTRY["form_apikey"], URL, PARAMS, "sk")

        response = await transport.send(request)

        assert response.status_code == 401
        assert response.nested_status == "error"

    async def test_non_json_body(self) -> None:
        transport, _ = make_transport(lambda r: httpx.Response(502, text="Bad Gateway"))
        request = build_request(STRATEGY_REGISTRY["form_apikey"], URL, PARAMS, "sk")

        response = await transport.send(request)

        assert response.payload is None
        assert response.text == "Bad Gateway"

    async def test_json_array_is_not_a_payload(self) -> None:
        transport, _ = make_transport(lambda r: httpx.Response(200, json=[1, 2]))
        request = build_request(STRATEGY_REGISTRY["form_apikey"], URL, PARAMS, "sk")

        response = await transport.send(request)

        assert response.payload is None

    async def test_timeout_raises_transport_failure(self) -> None:
        def timeout(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport, _ = make_transport(timeout)
        request = build_request(STRATEGY_REGISTRY["form_apikey"], URL, PARAMS, "sk")

        with pytest.raises(TransportFailureError, match="timed out after 5.0s"):
            await transport.send(request)

    async def test_connect_error_raises_transport_failure(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        transport, _ = make_transport(refuse)
        request = build_request(STRATEGY_REGISTRY["json_bearer"], URL, PARAMS, "sk")

        with pytest.raises(TransportFailureError, match="ConnectError"):
            await transport.send(request)


@pytest.mark.asyncio
class TestLifecycle:
    """Client creation and cleanup."""

    async def test_client_created_lazily_and_closed(self) -> None:
        transport = HttpCrmTransport(timeout_seconds=3.0)
        assert transport._client is None

        client = await transport._get_client()
        assert client is await transport._get_client()

        await transport.close()
        assert transport._client is None

    async def test_context_manager_closes(self) -> None:
        async with HttpCrmTransport() as transport:
            await transport._get_client()
        assert transport._client is None
