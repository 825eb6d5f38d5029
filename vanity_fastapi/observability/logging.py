from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog


LOGGER_NAME = "vanity"

_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.format_exc_info,
]


def get_logger() -> Any:
    """structlog logger bound to the stdlib ``vanity`` logger.

    Wrapped directly instead of going through ``structlog.configure`` so the
    host application's structlog setup is left alone.
    """

    return structlog.wrap_logger(
        logging.getLogger(LOGGER_NAME),
        processors=[*_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def _json_handler(stream: IO[str] | None) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_PROCESSORS,
        )
    )
    handler._vanity_json = True  # type: ignore[attr-defined]
    return handler


def configure_logging(level: int = logging.INFO, stream: IO[str] | None = None) -> bool:
    """Emit the ``vanity`` logger's records as JSON on its own handler.

    Root and server loggers belong to the host application and are not
    touched. Returns ``False`` when the handler is already installed.
    """

    logger = logging.getLogger(LOGGER_NAME)
    if any(getattr(h, "_vanity_json", False) for h in logger.handlers):
        return False

    logger.addHandler(_json_handler(stream))
    logger.setLevel(level)
    logger.propagate = False
    return True
