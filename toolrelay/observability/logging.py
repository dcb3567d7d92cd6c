"""Structured logging configuration using structlog.

JSON logging for production, console logging for development, with
contextvars binding and secret redaction.
"""

import re
import sys
from collections.abc import MutableMapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

SENSITIVE_KEYS: frozenset[str] = frozenset({
    "api_key",
    "apikey",
    "secret",
    "signing_secret",
    "webhook_secret",
    "password",
    "token",
    "access_token",
    "authorization",
    "x-toolrelay-signature",
    "private_key",
})

# Provider keys and bearer tokens that leak into free-form strings
API_KEY_PATTERN = re.compile(r"sk-[A-Za-z0-9_\-]{8,}")
BEARER_PATTERN = re.compile(r"(?i)bearer\s+[A-Za-z0-9._\-]+")

REDACTED = "[REDACTED]"

_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class SecretRedactor:
    """Processor that redacts secrets from log events.

    Values under sensitive key names are replaced outright; string values
    are scrubbed of API keys and bearer tokens.
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._redact(event_dict))

    def _redact(self, data: MutableMapping[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
                result[key] = REDACTED
            else:
                result[key] = self._redact_value(value)
        return result

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, MutableMapping):
            return self._redact(value)
        if isinstance(value, str):
            value = API_KEY_PATTERN.sub(REDACTED, value)
            return BEARER_PATTERN.sub(f"Bearer {REDACTED}", value)
        if isinstance(value, list | tuple):
            return [self._redact_value(item) for item in value]
        return value


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_secrets: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" for production, "console" for development
        redact_secrets: Whether to redact secrets from log events
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if redact_secrets:
        processors.append(SecretRedactor())

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS.get(level.upper(), 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to the given module name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
