"""Domain models for the leadrelay webhook adapter.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

PRECHAT_FORM_SUBMISSION = "prechat:formsubmission"


@dataclass(frozen=True)
class FormField:
    """A single name/value pair submitted through the pre-chat form."""

    name: str
    value: str


@dataclass(frozen=True)
class InboundEvent:
    """A webhook event as delivered by the chat widget."""

    event: str
    visitor_id: str
    property_url: str
    fields: tuple[FormField, ...]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InboundEvent":
        """Build an event from a decoded JSON body.

        Malformed field entries (non-mappings, missing names) are skipped
        rather than rejected; the widget occasionally sends partial forms.
        """
        raw_fields = payload.get("fields") or []
        fields: list[FormField] = []
        if isinstance(raw_fields, list):
            for raw in raw_fields:
                if not isinstance(raw, Mapping) or not raw.get("name"):
                    continue
                value = raw.get("value")
                fields.append(
                    FormField(
                        name=str(raw["name"]),
                        value="" if value is None else str(value),
                    )
                )

        return cls(
            event=str(payload.get("event") or ""),
            visitor_id=str(payload.get("visitor_id") or ""),
            property_url=str(payload.get("property_url") or ""),
            fields=tuple(fields),
        )


@dataclass(frozen=True)
class ContactRecord:
    """Contact fields extracted from a form submission."""

    email: str
    phone: str = ""
    country: str = ""
    visitor_id: str = ""
    property_url: str = ""

    def __post_init__(self) -> None:
        """Validate contact invariants on creation."""
        if not self.email or not self.email.strip():
            raise ValueError("email must be a non-empty string")


class HttpVerb(Enum):
    """HTTP verbs a transport strategy may use."""

    GET = "GET"
    POST = "POST"


class BodyEncoding(Enum):
    """Where and how the contact parameters travel."""

    QUERY = "query"
    FORM = "form"
    JSON = "json"


class AuthPlacement(Enum):
    """How the API key is attached to an outbound call.

    - PARAM: alongside the contact parameters, under ``auth_param``
    - BEARER: ``Authorization: Bearer <key>`` header
    - API_KEY_HEADER: ``X-API-Key: <key>`` header
    """

    PARAM = "param"
    BEARER = "bearer"
    API_KEY_HEADER = "x-api-key"


@dataclass(frozen=True)
class TransportStrategy:
    """One way of encoding and authenticating the outbound CRM call."""

    name: str
    verb: HttpVerb
    encoding: BodyEncoding
    auth: AuthPlacement
    auth_param: str = "apikey"

    def __post_init__(self) -> None:
        """Validate strategy invariants on creation."""
        if not self.name or not self.name.strip():
            raise ValueError("name must be a non-empty string")
        if self.verb == HttpVerb.GET and self.encoding != BodyEncoding.QUERY:
            raise ValueError(
                f"GET strategies must use query encoding, got {self.encoding.value}"
            )
        if self.verb == HttpVerb.POST and self.encoding == BodyEncoding.QUERY:
            raise ValueError("POST strategies must use a form or json body")
        if self.auth == AuthPlacement.PARAM and not self.auth_param:
            raise ValueError("auth_param is required for parameter authentication")

    def describe(self) -> str:
        """Human readable summary, e.g. ``POST form (apikey)``."""
        if self.auth == AuthPlacement.PARAM:
            auth = self.auth_param
        elif self.auth == AuthPlacement.BEARER:
            auth = "Authorization: Bearer"
        else:
            auth = "X-API-Key"
        return f"{self.verb.value} {self.encoding.value} ({auth})"


@dataclass(frozen=True)
class OutboundRequest:
    """A fully built outbound call for one strategy attempt."""

    method: HttpVerb
    url: str
    encoding: BodyEncoding
    params: dict[str, str] | MappingProxyType[str, str]
    headers: dict[str, str] | MappingProxyType[str, str] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        """Convert params and headers to read-only proxies."""
        if isinstance(self.params, dict):
            object.__setattr__(self, "params", MappingProxyType(self.params))
        if isinstance(self.headers, dict):
            object.__setattr__(self, "headers", MappingProxyType(self.headers))


@dataclass(frozen=True)
class CrmResponse:
    """What came back from the CRM for a single call.

    ``payload`` is the decoded JSON object, or None if the body was not a
    JSON object.
    """

    status_code: int
    payload: dict[str, Any] | None
    text: str = ""

    @property
    def nested_status(self) -> str | None:
        """The CRM's own ``response.status`` field, if present."""
        if not self.payload:
            return None
        inner = self.payload.get("response")
        if isinstance(inner, Mapping):
            status = inner.get("status")
            return str(status) if status is not None else None
        return None

    @property
    def contact_id(self) -> str | None:
        """CRM-assigned contact identifier, if the payload carries one."""
        if not self.payload:
            return None
        inner = self.payload.get("response")
        candidates: list[Any] = []
        if isinstance(inner, Mapping):
            data = inner.get("data")
            if isinstance(data, Mapping):
                candidates.extend([data.get("id"), data.get("contact_id")])
            candidates.extend([inner.get("id"), inner.get("contact_id")])
        candidates.extend([self.payload.get("id"), self.payload.get("contact_id")])
        for candidate in candidates:
            if candidate not in (None, ""):
                return str(candidate)
        return None

    @property
    def detail(self) -> Any:
        """Best available description of the response body."""
        if self.payload is not None:
            return self.payload
        return self.text


class FailureKind(Enum):
    """Why a forward did not succeed."""

    UPSTREAM_REJECTION = "upstream_rejection"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(frozen=True)
class Attempt:
    """Record of a single outbound call."""

    strategy: str
    status_code: int  # 0 when no response was received
    success: bool
    detail: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for result bodies."""
        return {
            "strategy": self.strategy,
            "status": self.status_code,
            "success": self.success,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class ForwardOutcome:
    """Terminal state of a forward: succeeded or failed."""

    success: bool
    attempts: tuple[Attempt, ...]
    status_code: int = 0
    contact_id: str | None = None
    payload: Any = None
    strategy: str | None = None
    error: str | None = None
    failure_kind: FailureKind | None = None

    def __post_init__(self) -> None:
        """Validate outcome invariants on creation."""
        if self.success and self.failure_kind is not None:
            raise ValueError("successful outcome cannot carry a failure kind")
        if not self.success and self.failure_kind is None:
            raise ValueError("failed outcome requires a failure kind")


@dataclass(frozen=True)
class WebhookRequest:
    """Transport-neutral view of an inbound HTTP request."""

    method: str
    body: str = ""
    headers: dict[str, str] | MappingProxyType[str, str] = field(
        default_factory=dict
    )
    path: str = "/"

    def __post_init__(self) -> None:
        """Convert headers to read-only proxy."""
        if isinstance(self.headers, dict):
            object.__setattr__(self, "headers", MappingProxyType(self.headers))


@dataclass(frozen=True)
class HandlerResult:
    """HTTP-shaped result returned to the caller."""

    status_code: int
    body: dict[str, Any]

    @property
    def success(self) -> bool:
        """Value of the ``success`` flag in the body."""
        return bool(self.body.get("success"))

    def to_json(self) -> str:
        """Serialize the body."""
        return json.dumps(self.body, default=str)


class TransportMode(Enum):
    """How the forwarder uses the configured strategies.

    - SIMPLE: first strategy only; requires HTTP 200 and a ``success``
      payload status
    - FALLBACK: every strategy in order until one reports HTTP 200 or a
      ``success`` payload status
    """

    SIMPLE = "simple"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class RelayConfig:
    """Immutable configuration handed to the core services.

    Built once by the composition root; services never read the process
    environment themselves.
    """

    api_key: str
    strategies: tuple[TransportStrategy, ...]
    list_id: str = ""
    base_url: str = "https://api.vbout.com/1"
    add_contact_path: str = "/emailmarketing/addcontact"
    account_path: str = "/user/me"
    mode: TransportMode = TransportMode.FALLBACK
    custom_field_prefix: str = "custom"
    upstream_failure_status: int = 200
    include_crm_response: bool = False
    probe_contact_email: str = ""

    def __post_init__(self) -> None:
        """Validate configuration invariants on creation."""
        if not self.strategies:
            raise ValueError("at least one transport strategy is required")
        if self.upstream_failure_status not in (200, 500):
            raise ValueError(
                f"upstream_failure_status must be 200 or 500, got {self.upstream_failure_status}"
            )

    @property
    def add_contact_url(self) -> str:
        return self.base_url.rstrip("/") + self.add_contact_path

    @property
    def account_url(self) -> str:
        return self.base_url.rstrip("/") + self.account_path

    @property
    def secrets(self) -> tuple[str, ...]:
        """Values that must never be echoed back or logged."""
        return (self.api_key,) if self.api_key else ()
