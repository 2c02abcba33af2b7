"""Logger wrapper that accepts a structured ``data`` payload on every call."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import Mapping

ROOT_LOGGER_NAME = "ananke"


class Logger:
    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(name)

    def debug(self, message: str, *, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, data, **kwargs)

    def info(self, message: str, *, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.INFO, message, data, **kwargs)

    def warning(
        self, message: str, *, data: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> None:
        self._log(logging.WARNING, message, data, **kwargs)

    def error(self, message: str, *, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, data, **kwargs)

    def _log(
        self,
        level: int,
        message: str,
        data: Mapping[str, Any] | None,
        **kwargs: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if data:
            message = f"{message} {_format_data(data)}"
        self._logger.log(level, message, **kwargs)


def get_logger(name: str) -> Logger:
    return Logger(name)


def configure_logging(level: int = logging.WARNING) -> None:
    """Route ananke log records to stderr through rich.

    Safe to call more than once; the handler is installed only the first time.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        root.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
        )
    root.propagate = False


def _format_data(data: Mapping[str, Any]) -> str:
    try:
        return json.dumps(dict(data), ensure_ascii=True, default=str, sort_keys=True)
    except TypeError:
        return str(dict(data))
