"""Tests for DiagnosticsService (GET-only authentication probe)."""

from typing import Any

import pytest

from leadrelay.core.diagnostics_service import DiagnosticsService
from leadrelay.core.models import CrmResponse, RelayConfig, WebhookRequest
from leadrelay.core.strategies import resolve_strategies
from leadrelay.tests.fakes.crm import FakeCrmTransport, crm_error

API_KEY = "sk-live-abc123"


def make_config(**overrides: Any) -> RelayConfig:
    values: dict[str, Any] = {
        "api_key": API_KEY,
        "strategies": resolve_strategies(
            ["query_apikey", "query_key", "get_bearer", "get_x_api_key", "form_apikey"]
        ),
        "base_url": "https://crm.test/1",
    }
    values.update(overrides)
    return RelayConfig(**values)


@pytest.fixture
def transport() -> FakeCrmTransport:
    return FakeCrmTransport()


@pytest.mark.asyncio
class TestDiagnosticsProbe:
    """Tests for the probe endpoint."""

    async def test_post_is_405(self, transport: FakeCrmTransport) -> None:
        service = DiagnosticsService(transport, make_config())

        result = await service.probe(WebhookRequest(method="POST"))

        assert result.status_code == 405
        assert transport.call_count == 0

    async def test_missing_key_is_500(self, transport: FakeCrmTransport) -> None:
        service = DiagnosticsService(transport, make_config(api_key=""))

        result = await service.probe(WebhookRequest(method="GET"))

        assert result.status_code == 500
        assert result.body["error"] == "Configuration error"
        assert transport.call_count == 0

    async def test_stops_at_first_working_method(self, transport: FakeCrmTransport) -> None:
        transport.add_response(crm_error(status_code=401))
        transport.add_failure("Connection reset")
        transport.add_response(CrmResponse(200, {"response": {"data": {"user": "me"}}}))
        service = DiagnosticsService(transport, make_config())

        result = await service.probe(WebhookRequest(method="GET"))

        assert result.status_code == 200
        assert result.body["test_completed"] is True
        assert result.body["api_key_length"] == len(API_KEY)
        assert [r["method"] for r in result.body["results"]] == [
            "query_apikey",
            "query_key",
            "get_bearer",
        ]
        assert [r["method"] for r in result.body["working_methods"]] == ["get_bearer"]
        assert transport.call_count == 3
        assert all(
            r.url == "https://crm.test/1/user/me" for r in transport.sent_requests
        )

    async def test_auth_only_parameters(self, transport: FakeCrmTransport) -> None:
        service = DiagnosticsService(transport, make_config())

        await service.probe(WebhookRequest(method="GET"))

        assert transport.sent_params() == [{"apikey": API_KEY}]

    async def test_optional_contact_creation(self, transport: FakeCrmTransport) -> None:
        service = DiagnosticsService(
            transport, make_config(probe_contact_email="probe@example.com")
        )

        result = await service.probe(WebhookRequest(method="GET"))

        assert transport.call_count == 2
        contact_request = transport.last_request()
        assert contact_request is not None
        assert contact_request.url == "https://crm.test/1/emailmarketing/addcontact"
        assert contact_request.params["email"] == "probe@example.com"
        assert result.body["results"][-1]["method"] == "query_apikey - Contact Creation"

    async def test_nothing_works(self, transport: FakeCrmTransport) -> None:
        transport.default_response = crm_error(status_code=401)
        service = DiagnosticsService(
            transport, make_config(probe_contact_email="probe@example.com")
        )

        result = await service.probe(WebhookRequest(method="GET"))

        assert len(result.body["results"]) == 5
        assert result.body["working_methods"] == []
        assert transport.call_count == 5

    async def test_key_redacted(self, transport: FakeCrmTransport) -> None:
        transport.default_response = CrmResponse(
            401, {"response": {"status": "error", "echo": API_KEY}}
        )
        service = DiagnosticsService(transport, make_config())

        result = await service.probe(WebhookRequest(method="GET"))

        assert API_KEY not in result.to_json()
