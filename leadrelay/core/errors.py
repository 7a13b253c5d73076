"""Error taxonomy for the webhook adapter.

Every failure path ends in one of these; the webhook service converts
them into HTTP-shaped results at its boundary.
"""

from typing import Any


class RelayError(Exception):
    """Base class for all leadrelay errors."""


class RejectedInputError(RelayError):
    """Inbound request cannot be processed (wrong method, event or fields)."""

    def __init__(self, status_code: int, reason: str):
        super().__init__(reason)
        self.status_code = status_code
        self.reason = reason


class ConfigurationError(RelayError):
    """Required configuration is missing. Retrying cannot help."""


class UpstreamRejectionError(RelayError):
    """The CRM answered, but did not accept the contact."""

    def __init__(self, message: str, status_code: int, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class TransportFailureError(RelayError):
    """The call did not produce a usable response.

    Covers timeouts, connection errors and malformed (non-JSON) bodies.
    """

    def __init__(self, message: str, status_code: int = 0, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
