"""
execution.logging — structured logging for the settlement ledger.

This module configures **structlog** over the stdlib ``logging`` package so that:
- Ledger and contract events are emitted as structured JSON by default (or as a
  pretty console renderer in dev).
- Context variables (e.g., the current call's sender and method) are merged into
  each event.
- Exceptions include a structured stack trace.
- Log level & format come from `execution.config` (environment variables).

Quick start
-----------
    from execution.logging import setup_logging, get_logger

    setup_logging(service_name="quiz-ledger")  # call once on process start
    log = get_logger(__name__)
    log.info("quiz_deployed", escrow="0xAbC…", funding=10**17)

Until `setup_logging` runs, loggers print with structlog's plain console
defaults, filtered at the configured ``QUIZCHAIN_LOG_LEVEL``. That is what
library users and the test suite see.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer

from execution.version import version_metadata

# ------------------------------ Redaction ------------------------------------


REDACT_KEYS = {"private_key", "mnemonic", "secret", "api_key", "token", "password"}


def _redact_secrets(_: logging.Logger, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Processor that redacts sensitive values for well-known keys.
    """
    for k in list(event_dict.keys()):
        if k.lower() in REDACT_KEYS and event_dict[k] is not None:
            event_dict[k] = "***"
    return event_dict


# ------------------------------ Setup ----------------------------------------


def _base_processors(service_name: str, include_stacktrace: bool) -> Iterable:
    yield structlog.stdlib.add_log_level
    yield structlog.processors.TimeStamper(fmt="iso", utc=True)
    yield merge_contextvars
    yield structlog.processors.StackInfoRenderer()
    if include_stacktrace:
        yield structlog.processors.format_exc_info
    yield _redact_secrets
    yield structlog.processors.UnicodeDecoder()

    meta = version_metadata()

    def _ensure_service(_: logging.Logger, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        ev.setdefault("version", meta["version"])
        return ev

    yield _ensure_service


def setup_logging(
    *,
    service_name: str = "quiz-ledger",
    level: Optional[str | int] = None,
    log_format: Optional[str] = None,
    include_stacktrace: Optional[bool] = None,
) -> None:
    """
    Configure structlog + stdlib logging. Safe to call once at process start.

    Parameters
    ----------
    service_name: str
        Value injected as "service" into every event.
    level: str|int
        Log level (e.g., "INFO"). Defaults to the configured log level.
    log_format: str
        "json" or "console". Defaults to the configured format.
    include_stacktrace: bool
        Include stack traces for records with exc_info. Defaults to True for
        JSON and False for console.
    """
    from execution.config import get_config

    cfg = get_config()
    level = level or cfg.log_level
    log_format = (log_format or cfg.log_format).lower()
    if include_stacktrace is None:
        include_stacktrace = log_format == "json"

    processors = list(_base_processors(service_name, include_stacktrace))

    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)
    else:
        renderer = JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            *processors,
        ],
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)


def _apply_default_level() -> None:
    """Honour the configured level when nothing has configured structlog yet."""
    if structlog.is_configured():
        return
    from execution.config import get_config

    level = logging.getLevelName(get_config().log_level)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def get_logger(name: Optional[str] = None) -> Any:
    """
    Return a lazy structlog logger carrying the module name, so module-level
    loggers pick up whatever `setup_logging` configures later.
    """
    _apply_default_level()
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


# ------------------------------ Context helpers -------------------------------


def bind_call_context(**kv: Any) -> None:
    """
    Bind call-scoped key/value pairs (sender, contract, method) into the
    structlog contextvars store.
    """
    structlog.contextvars.bind_contextvars(**kv)


def clear_call_context(*keys: str) -> None:
    """
    Clear specific keys from contextvars, or clear all if no keys provided.
    """
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


__all__ = [
    "setup_logging",
    "get_logger",
    "bind_call_context",
    "clear_call_context",
]
