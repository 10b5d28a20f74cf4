"""Logging utilities for repoviz commands and the proxy service.

Console lines carry the emitting component, e.g. ``[repoviz:selection]`` for
records from ``repoviz.selection``. The ``serve`` command also captures the
uvicorn loggers so server and application messages share one stream.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Iterable

_LOGGER_NAME = "repoviz"
CONSOLE_FORMAT = "[repoviz:%(component)s] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(component)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the repoviz hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class ComponentFilter(logging.Filter):
    """Attach a short ``component`` attribute derived from the logger name."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == _LOGGER_NAME:
            record.component = "main"
        elif name.startswith(_LOGGER_NAME + "."):
            record.component = name[len(_LOGGER_NAME) + 1 :]
        else:
            record.component = name
        return True


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: IO[str] | None = None,
    capture: Iterable[str] = (),
) -> logging.Logger:
    """Configure the repoviz logger with console output and optional file sink.

    ``capture`` names foreign loggers (``uvicorn`` for the service) that should
    write through the same handlers instead of their own.
    """
    level = logging.DEBUG if verbose else logging.INFO
    component_filter = ComponentFilter()

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setLevel(level)
    stream_handler.addFilter(component_filter)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers: list[logging.Handler] = [stream_handler]

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.addFilter(component_filter)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    logger = logging.getLogger(_LOGGER_NAME)
    for name in (_LOGGER_NAME, *capture):
        target = logging.getLogger(name)
        target.setLevel(level)
        target.propagate = False
        # Reset handlers so repeated CLI invocations do not duplicate output.
        for handler in list(target.handlers):
            target.removeHandler(handler)
        for handler in handlers:
            target.addHandler(handler)

    return logger


__all__ = ["CONSOLE_FORMAT", "ComponentFilter", "configure_logging", "get_logger"]
