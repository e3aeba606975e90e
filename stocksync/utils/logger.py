"""Logging for stocksync: structlog on top of stdlib logging.

The console gets the structlog dev renderer, LOG_FILE gets one JSON object per
line and rotates at LOG_MAX_BYTES. Stock subjects and keys passed as log values
are written as "kind:id" and "kind:id@location" in both sinks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

import structlog

from stocksync.config import LOG_BACKUP_COUNT, LOG_FILE, LOG_LEVEL, LOG_MAX_BYTES, VERBOSE_LOGGING
from stocksync.models import StockKey, StockSubject

BoundLogger = structlog.stdlib.BoundLogger

# Client and engine loggers are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")

_configured = False


def resolve_level(value: Optional[str] = None, verbose: bool = VERBOSE_LOGGING) -> int:
    """LOG_LEVEL as a logging level: a name ("warning") or a number ("30"). VERBOSE_LOGGING forces DEBUG."""
    if verbose:
        return logging.DEBUG
    value = (value if value is not None else LOG_LEVEL).strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.INFO


def render_stock_values(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, StockKey):
            event_dict[key] = value.label()
        elif isinstance(value, StockSubject):
            event_dict[key] = f"{value.kind}:{value.id}"
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        render_stock_values,
    ]


def _formatted(handler: logging.Handler, renderer: Any, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def configure_logging(
    level: Optional[int] = None, log_file: Optional[Path] = LOG_FILE, force: bool = False
) -> None:
    """Install the console and JSONL handlers on the root logger. Runs once unless forced."""
    global _configured
    if _configured and not force:
        return
    level = resolve_level() if level is None else level

    handlers = [_formatted(logging.StreamHandler(), structlog.dev.ConsoleRenderer(colors=True), level)]
    if log_file is not None:
        rotating = RotatingFileHandler(
            log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
        handlers.append(_formatted(rotating, structlog.processors.JSONRenderer(), level))

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str = "stocksync", **bindings: Any) -> BoundLogger:
    configure_logging()
    logger = structlog.get_logger(name)
    return logger.bind(**bindings) if bindings else logger


@contextmanager
def log_context(**context: Any) -> Iterator[None]:
    """Bind context vars (None values skipped) for one block; earlier bindings are restored on exit."""
    with structlog.contextvars.bound_contextvars(**{k: v for k, v in context.items() if v is not None}):
        yield
