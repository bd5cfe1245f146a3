"""Structured logging setup for Crossfire.

``configure_logging`` is called once by each entry point: the FastAPI
lifespan logs to stdout, the CLI logs to stderr so the rendered debate on
stdout stays clean. Modules use ``get_logger``; a debate run logs through
``debate_logger`` so every line of the run shares one ``debate_id``.

Claims are user text and can be long, so any ``claim`` field is cut to
``CLAIM_LOG_CHARS`` before rendering.
"""

import logging
import sys
import uuid
from typing import Any, TextIO

import structlog

CLAIM_LOG_CHARS = 100


def _truncate_claim(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    claim = event_dict.get("claim")
    if isinstance(claim, str) and len(claim) > CLAIM_LOG_CHARS:
        event_dict["claim"] = claim[:CLAIM_LOG_CHARS] + "..."
    return event_dict


def configure_logging(
    *,
    json_logs: bool = False,
    log_level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        json_logs: Render JSON lines instead of the colored console format.
        log_level: Root log level name; unknown names fall back to INFO.
        stream: Where log lines go. Defaults to stdout.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _truncate_claim,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # filter_by_level consults the stdlib logger, so its level must match
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=level,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger named after the calling module."""
    return structlog.get_logger(name)


def debate_logger(name: str, mode: str) -> structlog.stdlib.BoundLogger:
    """Return a logger bound to a fresh ``debate_id`` and the run *mode*."""
    return get_logger(name).bind(debate_id=uuid.uuid4().hex[:12], mode=mode)
