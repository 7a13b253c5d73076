"""Transport strategy registry and request building.

The CRM's accepted verb, encoding and auth parameter are not documented
reliably, so every combination we know of is registered here by name and
the configured list decides which ones are tried, in which order.
"""

from collections.abc import Mapping, Sequence

from .models import (
    AuthPlacement,
    BodyEncoding,
    HttpVerb,
    OutboundRequest,
    TransportStrategy,
)

STRATEGY_REGISTRY: dict[str, TransportStrategy] = {
    s.name: s
    for s in (
        TransportStrategy(
            "form_apikey", HttpVerb.POST, BodyEncoding.FORM, AuthPlacement.PARAM, "apikey"
        ),
        TransportStrategy(
            "json_bearer", HttpVerb.POST, BodyEncoding.JSON, AuthPlacement.BEARER
        ),
        TransportStrategy(
            "form_api_key", HttpVerb.POST, BodyEncoding.FORM, AuthPlacement.PARAM, "api_key"
        ),
        TransportStrategy(
            "query_apikey", HttpVerb.GET, BodyEncoding.QUERY, AuthPlacement.PARAM, "apikey"
        ),
        TransportStrategy(
            "form_key", HttpVerb.POST, BodyEncoding.FORM, AuthPlacement.PARAM, "key"
        ),
        TransportStrategy(
            "query_api_key", HttpVerb.GET, BodyEncoding.QUERY, AuthPlacement.PARAM, "api_key"
        ),
        TransportStrategy(
            "query_key", HttpVerb.GET, BodyEncoding.QUERY, AuthPlacement.PARAM, "key"
        ),
        TransportStrategy(
            "json_x_api_key", HttpVerb.POST, BodyEncoding.JSON, AuthPlacement.API_KEY_HEADER
        ),
        TransportStrategy(
            "get_bearer", HttpVerb.GET, BodyEncoding.QUERY, AuthPlacement.BEARER
        ),
        TransportStrategy(
            "get_x_api_key", HttpVerb.GET, BodyEncoding.QUERY, AuthPlacement.API_KEY_HEADER
        ),
    )
}

DEFAULT_STRATEGY_ORDER: tuple[str, ...] = (
    "form_apikey",
    "json_bearer",
    "form_api_key",
    "query_apikey",
)


def parse_strategy_names(value: str | Sequence[str]) -> tuple[str, ...]:
    """Split a comma-separated list of strategy names.

    Blank entries are dropped and duplicates keep their first position.
    """
    if isinstance(value, str):
        raw = value.split(",")
    else:
        raw = list(value)

    names: list[str] = []
    for item in raw:
        name = item.strip().lower()
        if name and name not in names:
            names.append(name)
    return tuple(names)


def resolve_strategies(
    names: Sequence[str],
    registry: Mapping[str, TransportStrategy] | None = None,
) -> tuple[TransportStrategy, ...]:
    """Look up strategies by name, preserving order.

    Raises:
        ValueError: If a name is unknown or the list is empty.
    """
    registry = STRATEGY_REGISTRY if registry is None else registry
    if not names:
        raise ValueError("at least one transport strategy must be configured")

    unknown = [n for n in names if n not in registry]
    if unknown:
        raise ValueError(
            f"Unknown transport strategies: {', '.join(unknown)}. "
            f"Available: {', '.join(sorted(registry))}"
        )
    return tuple(registry[n] for n in names)


def build_request(
    strategy: TransportStrategy,
    url: str,
    params: Mapping[str, str],
    api_key: str,
) -> OutboundRequest:
    """Build the outbound call for one strategy.

    Parameter authentication adds the key under ``strategy.auth_param``
    ahead of the other parameters; header authentication leaves the
    parameters untouched.
    """
    headers: dict[str, str] = {}
    outbound: dict[str, str] = {}

    if strategy.auth == AuthPlacement.PARAM:
        outbound[strategy.auth_param] = api_key
    elif strategy.auth == AuthPlacement.BEARER:
        headers["Authorization"] = f"Bearer {api_key}"
    else:
        headers["X-API-Key"] = api_key

    outbound.update(params)

    if strategy.encoding == BodyEncoding.FORM:
        headers["Content-Type"] = "application/x-www-form-urlencoded"
    elif strategy.encoding == BodyEncoding.JSON:
        headers["Content-Type"] = "application/json"

    return OutboundRequest(
        method=strategy.verb,
        url=url,
        encoding=strategy.encoding,
        params=outbound,
        headers=headers,
    )
