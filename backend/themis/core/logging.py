"""
Structured logging configuration for the decision-support core.

Every log entry is a structlog event with:
- timestamp (ISO 8601 format)
- level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- service (service name identifier)
- request_id (correlation ID for one caller request, when set)
- workspace_id (tenant whose token budget is being spent, when set)

Context ids live in ContextVars so they follow asyncio tasks; use
log_context() to scope them to a block.
"""
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import structlog
from structlog.types import Processor

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
workspace_id_var: ContextVar[Optional[str]] = ContextVar("workspace_id", default=None)

_CONTEXT_FIELDS = (
    ("request_id", request_id_var),
    ("workspace_id", workspace_id_var),
)

# Overridden through configure_logging
SERVICE_NAME = "themis_core"


def add_request_context(
    logger: structlog.BoundLogger,
    method_name: str,
    event_dict: Dict[str, Any],
) -> Dict[str, Any]:
    """Copy the active request/workspace ids and the service name into the event."""
    for field, var in _CONTEXT_FIELDS:
        value = var.get()
        if value and field not in event_dict:
            event_dict[field] = value

    event_dict["service"] = SERVICE_NAME
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _processor_chain(json_output: bool) -> List[Processor]:
    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_request_context,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(
    log_level: str = "INFO",
    service_name: Optional[str] = None,
    json_output: bool = True,
) -> None:
    """
    Route structlog through the stdlib root logger on stdout.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        service_name: Value of the "service" field (keeps the current one if None)
        json_output: JSON lines when True, the structlog console renderer otherwise
    """
    global SERVICE_NAME
    if service_name:
        SERVICE_NAME = service_name

    structlog.configure(
        processors=_processor_chain(json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def set_request_id(request_id: Optional[str]) -> None:
    """Set request ID in context for the current task (None clears it)."""
    request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_workspace_id(workspace_id: Optional[str]) -> None:
    """Set workspace ID in context for the current task (None clears it)."""
    workspace_id_var.set(workspace_id)


def get_workspace_id() -> Optional[str]:
    return workspace_id_var.get()


@contextmanager
def log_context(
    request_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
) -> Iterator[None]:
    """
    Bind request/workspace ids for the duration of the block.

    None leaves the enclosing value in place. Previous values are restored on
    exit, including when the block raises.
    """
    tokens = []
    if request_id is not None:
        tokens.append((request_id_var, request_id_var.set(request_id)))
    if workspace_id is not None:
        tokens.append((workspace_id_var, workspace_id_var.set(workspace_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def generate_request_id() -> str:
    return str(uuid.uuid4())
