"""Structured logging singleton.

Reads os.environ directly so logging works before Settings is loaded and
while argument errors are still being reported.

Everything goes to stderr: stdout belongs to the relayed container output.
When systemd connects stderr to the journal (``JOURNAL_STREAM`` is set) the
journal already stamps every line, so timestamps and colours are left out.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from typing import Any, TextIO

import structlog


def under_journal(environ: Mapping[str, str]) -> bool:
    return bool(environ.get("JOURNAL_STREAM"))


def use_colors(stream: TextIO, environ: Mapping[str, str]) -> bool:
    if under_journal(environ):
        return False
    return stream.isatty()


def build_processors(*, journal: bool, colors: bool) -> list[Any]:
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.dev.set_exc_info,
    ]
    if not journal:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer(colors=colors),
    ]
    return processors


def _setup_logging() -> structlog.stdlib.BoundLogger:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)

    structlog.configure(
        processors=build_processors(
            journal=under_journal(os.environ),
            colors=use_colors(sys.stderr, os.environ),
        ),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("systemd_docker")


logger = _setup_logging()


def _uncaught_exception_handler(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_tb: object,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)  # type: ignore[arg-type]
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))
    sys.exit(1)


sys.excepthook = _uncaught_exception_handler
