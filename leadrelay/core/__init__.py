"""Core domain logic for the leadrelay webhook adapter.

This package contains zero external dependencies and represents
the pure business logic of the application. All adapters and
external integrations are handled by the adapters package.
"""

from .models import (
    Attempt,
    AuthPlacement,
    BodyEncoding,
    ContactRecord,
    CrmResponse,
    FailureKind,
    FormField,
    ForwardOutcome,
    HandlerResult,
    HttpVerb,
    InboundEvent,
    OutboundRequest,
    RelayConfig,
    TransportMode,
    TransportStrategy,
    WebhookRequest,
)

__all__ = [
    "Attempt",
    "AuthPlacement",
    "BodyEncoding",
    "ContactRecord",
    "CrmResponse",
    "FailureKind",
    "FormField",
    "ForwardOutcome",
    "HandlerResult",
    "HttpVerb",
    "InboundEvent",
    "OutboundRequest",
    "RelayConfig",
    "TransportMode",
    "TransportStrategy",
    "WebhookRequest",
]
