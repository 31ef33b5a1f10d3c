"""
Structured logging for cachepact.

Every backend logs through structlog so cache traffic shows up next to the
host application's own events with the same shape.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="orders-api")
             ↓
        structlog processor chain:
          1. TimeStamper (iso)
          2. add_log_level / add_logger_name
          3. _add_service_metadata
          4. _elasticsearch_compatible   (JSON only)
          5. JSONRenderer or ConsoleRenderer

        logger = get_logger(__name__)
        logger.warning("cache_lock_forced_release", key="users/42", attempts=16)

Events emitted by the library:
    - ``cache_write`` / ``cache_read`` / ``cache_delete`` / ``cache_clear`` (debug)
    - ``cache_lock_forced_release`` (warning)
    - ``cache_entry_corrupt`` (warning)
    - ``cache_dir_create_failed`` (warning)

The library never calls ``configure_logging`` itself; applications and the
CLI do. Until then events go to stdlib ``logging`` loggers named after the
emitting module (``cachepact.base``, ``cachepact.locking``), so the host
application's logging levels and handlers decide what is shown.

The CLI binds ``command`` and ``backend`` with :func:`bind_context` so every
event of one invocation carries them.

Tags:
    logging, structlog, observability, ecs, json-logging, cachepact
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "cachepact"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names Elasticsearch/ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")

    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")

    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "cachepact",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # rendered events are emitted through stdlib loggers (see get_logger)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )
    logging.getLogger("cachepact").setLevel(getattr(logging, level.upper()))


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The logger always writes to the stdlib ``logging`` logger of the same
    name, so an application that never calls :func:`configure_logging`
    controls cachepact output with ordinary ``logging`` levels and handlers
    (debug events are dropped under the default WARNING root level).
    Processors and the level filter still come from the structlog
    configuration once one is installed.
    """
    return structlog.wrap_logger(logging.getLogger(name or "cachepact"))


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(request_id="abc123")
        cache.read("users/42")  # cache events carry request_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
]
