"""Logging setup for the ledger endpoint.

The ledger core logs through plain ``logging.getLogger(__name__)`` loggers,
while the endpoint code uses structlog with key-value events. Both end up on
one root handler whose formatter runs the structlog chain, so a request's
correlation id shows up on core messages too.

Output is JSON when stderr is not a terminal or ``LEDGER_LOG_JSON`` is truthy,
and coloured console lines otherwise; ``LEDGER_LOG_JSON=0`` forces console
output.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from ..config import _env_flag

# Libraries that log every request at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx")


def wants_json(json_output: bool | None = None) -> bool:
    """Resolve the output format; an explicit ``json_output`` wins."""
    if json_output is not None:
        return json_output
    return _env_flag("LEDGER_LOG_JSON", not sys.stderr.isatty())


def _pre_chain(service_name: str, json_output: bool) -> list[Any]:
    def tag_service(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service_name)
        return event_dict

    chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        tag_service,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        chain.append(structlog.processors.format_exc_info)
    return chain


def _renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "INFO",
    json_output: bool | None = None,
    service_name: str = "pocket-ledger",
) -> logging.Handler:
    """Install the ledger's log handler on the root logger.

    Args:
        level: Root log level name; unknown names fall back to INFO
        json_output: Force JSON (True) or console (False) output
        service_name: Value of the ``service`` key on every entry

    Returns:
        The installed handler
    """
    as_json = wants_json(json_output)
    pre_chain = _pre_chain(service_name, as_json)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(as_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["NOISY_LOGGERS", "configure_logging", "get_logger", "wants_json"]
