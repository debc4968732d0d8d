"""Structured logging with structlog."""

import logging
import sys
from functools import lru_cache

import structlog


LOG_FORMATS = {"json", "console"}


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Route structlog through the stdlib root logger.

    ``fmt`` selects the renderer: ``json`` for machine-readable lines,
    ``console`` for human-readable output.
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"log format must be one of {sorted(LOG_FORMATS)}; received {fmt!r}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    processors = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if fmt == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    formatter = structlog.stdlib.ProcessorFormatter(processors=processors)
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


@lru_cache(maxsize=100)
def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
