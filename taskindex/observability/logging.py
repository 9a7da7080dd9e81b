"""Structured logging configuration using structlog.

Provides JSON logging for production and console logging for development,
per-mutation context binding, and redaction of user-entered task content.
"""

import re
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any, cast

import structlog
from structlog.contextvars import bound_contextvars
from structlog.types import EventDict, WrappedLogger

# Credentials a remote adapter might log; dropped outright
CREDENTIAL_KEYS: frozenset[str] = frozenset({
    "password",
    "secret",
    "api_key",
    "apikey",
    "auth",
    "authorization",
    "credential",
    "credentials",
    "access_token",
    "refresh_token",
    "bearer",
})

# Free-form user content: replaced by its size so logs still show shape
CONTENT_KEYS: frozenset[str] = frozenset({
    "text",
    "query",
    "sub_tasks",
    "email",
    "phone",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"\+?[\d\s\-\(\)]{10,}")

LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class ContentRedactor:
    """Processor that keeps user content and credentials out of log events.

    Three tiers:
    1. Credential keys are replaced by a fixed marker
    2. Task content keys are replaced by a marker carrying their size
    3. Regex patterns on other string values catch stray emails and phones
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        """Redact user content from the event dictionary."""
        return cast(EventDict, self._redact_dict(event_dict))

    def _redact_dict(self, data: MutableMapping[str, Any]) -> dict[str, Any]:
        """Recursively redact a dictionary.

        Args:
            data: Event dictionary or a nested mapping inside one

        Returns:
            New dictionary; the input is not modified
        """
        result: dict[str, Any] = {}
        for key, value in data.items():
            key_lower = key.lower()
            if key_lower in CREDENTIAL_KEYS:
                result[key] = "[REDACTED]"
            elif key_lower in CONTENT_KEYS:
                result[key] = self._size_marker(value)
            elif isinstance(value, dict):
                result[key] = self._redact_dict(value)
            elif isinstance(value, str):
                result[key] = self._redact_string(value)
            elif isinstance(value, list | tuple):
                result[key] = self._redact_sequence(value)
            else:
                result[key] = value
        return result

    def _size_marker(self, value: Any) -> str:
        """Describe a content value without revealing it.

        A string becomes ``[REDACTED len=N]``, a sequence of sub-task
        strings ``[REDACTED items=N]``. Empty and None values are not
        secrets, so they are reported as such.
        """
        if value is None:
            return "[NONE]"
        if isinstance(value, str):
            return f"[REDACTED len={len(value)}]"
        if isinstance(value, list | tuple):
            return f"[REDACTED items={len(value)}]"
        return "[REDACTED]"

    def _redact_string(self, value: str) -> str:
        value = EMAIL_PATTERN.sub("[EMAIL]", value)
        return PHONE_PATTERN.sub("[PHONE]", value)

    def _redact_sequence(self, items: list[Any] | tuple[Any, ...]) -> list[Any]:
        """Redact list or tuple items; tuples come back as lists."""
        result: list[Any] = []
        for item in items:
            if isinstance(item, dict):
                result.append(self._redact_dict(item))
            elif isinstance(item, str):
                result.append(self._redact_string(item))
            elif isinstance(item, list | tuple):
                result.append(self._redact_sequence(item))
            else:
                result.append(item)
        return result


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format - "json" for production, "console" for development
        redact_pii: Whether to redact user content from logs
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact_pii:
        processors.append(ContentRedactor())

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LEVELS.get(level.upper(), 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def setup_logging_from_settings() -> None:
    """Configure logging from the loaded settings."""
    from taskindex.config import get_settings

    cfg = get_settings().observability.logging
    setup_logging(level=cfg.level, format=cfg.format, redact_pii=cfg.redact_pii)


@contextmanager
def mutation_context(operation: str, task_id: str) -> Iterator[None]:
    """Bind a mutation's operation and task id to every log line inside.

    Remote adapters log without knowing which store mutation called them;
    the bound values are merged into their events. Bindings are per
    asyncio task, so concurrent mutations do not see each other's.

    Args:
        operation: Mutation name ("create", "update", "delete")
        task_id: Id the mutation targets
    """
    with bound_contextvars(mutation=operation, task_id=task_id):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Configured structlog logger
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
