"""Secret redaction for result bodies and log records."""

import logging
from collections.abc import Iterable
from typing import Any

REDACTED = "[REDACTED]"

MIN_SUBSTRING_SECRET_LENGTH = 6


def redact(value: Any, secrets: Iterable[str]) -> Any:
    """Return a copy of ``value`` with every secret replaced.

    Walks dicts, lists and tuples; strings are scanned for each secret.
    Secrets shorter than MIN_SUBSTRING_SECRET_LENGTH only mask strings
    equal to them.
    Dict keys are left alone. Other types are returned unchanged.

    Args:
        value: Arbitrary JSON-like value.
        secrets: Strings to mask. Empty strings are ignored.

    Returns:
        Redacted copy of value.
    """
    active = [s for s in secrets if s]
    if not active:
        return value
    return _redact(value, active)


def _redact(value: Any, secrets: list[str]) -> Any:
    if isinstance(value, str):
        for secret in secrets:
            if len(secret) >= MIN_SUBSTRING_SECRET_LENGTH:
                value = value.replace(secret, REDACTED)
            elif value == secret:
                return REDACTED
        return value
    if isinstance(value, dict):
        return {k: _redact(v, secrets) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact(v, secrets) for v in value]
    if isinstance(value, tuple):
        return tuple(_redact(v, secrets) for v in value)
    return value


class RedactingFilter(logging.Filter):
    """Logging filter that masks secrets in the rendered message.

    The message is rendered once with its args, redacted, and stored
    back without args so downstream formatters see the masked text.
    String values passed through ``extra`` are masked too.
    """

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True

        message = record.getMessage()
        record.msg = redact(message, self.secrets)
        record.args = None

        # Values supplied through ``extra``
        for key, val in list(record.__dict__.items()):
            if key in _RECORD_ATTRS:
                continue
            if isinstance(val, (str, dict, list, tuple)):
                setattr(record, key, redact(val, self.secrets))

        if record.exc_info and not record.exc_text:
            record.exc_text = _formatter.formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact(record.exc_text, self.secrets)
        return True


_formatter = logging.Formatter()
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}
