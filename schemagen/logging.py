"""Logging for schemagen runs.

Console lines read ``[schemagen] LEVEL message``; with ``verbose`` the
pipeline component is named too (``[schemagen:typemodel] DEBUG ...``) so
per-class traces can be followed through discovery, extraction and writing.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "schemagen"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``schemagen`` or one of its component loggers (``schemagen.<name>``)."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class ComponentFormatter(logging.Formatter):
    """Prefixes each record with the package tag and, optionally, its component."""

    def __init__(self, show_component: bool = False) -> None:
        super().__init__("%(tag)s %(levelname)s %(message)s")
        self.show_component = show_component

    def format(self, record: logging.LogRecord) -> str:
        component = record.name[len(_LOGGER_NAME) + 1:] if record.name != _LOGGER_NAME else ""
        if self.show_component and component:
            record.tag = f"[{_LOGGER_NAME}:{component}]"
        else:
            record.tag = f"[{_LOGGER_NAME}]"
        return super().format(record)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install console (and optional file) handlers on the ``schemagen`` logger.

    Calling it again replaces the handlers installed by the previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(ComponentFormatter(show_component=verbose))
    logger.addHandler(console)

    if log_file is not None:
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(level)
        sink.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(sink)

    return logger


__all__ = ["ComponentFormatter", "configure_logging", "get_logger"]
