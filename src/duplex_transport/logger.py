"""Logging wrapper adding a TRACE level on top of the standard library."""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

LogLevel = Literal["trace", "debug", "info", "warn", "error"]

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

DEFAULT_LOGGER_NAME = "duplex_transport"

_LEVEL_NUMBERS: dict[LogLevel, int] = {
    "trace": TRACE_LEVEL,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LoggerProtocol(Protocol):
    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warn(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


class BoundLogger:
    """Filters records by the transport's own level before handing them to a logger.

    ``logger`` may be a ``logging.Logger`` or any object exposing
    ``trace``/``debug``/``info``/``warn``/``error`` methods.
    """

    def __init__(self, logger: Any | None = None, *, level: LogLevel = "info") -> None:
        self._logger = logger or _default_logger()
        self._level = level

    @property
    def level(self) -> LogLevel:
        return self._level

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("trace", msg, args, kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("debug", msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("info", msg, args, kwargs)

    def warn(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("warn", msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("error", msg, args, kwargs)

    def child(self, name: str) -> "BoundLogger":
        if isinstance(self._logger, logging.Logger):
            return BoundLogger(self._logger.getChild(name), level=self._level)
        return BoundLogger(self._logger, level=self._level)

    def _emit(self, level: LogLevel, msg: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        if _LEVEL_NUMBERS[level] < _LEVEL_NUMBERS[self._level]:
            return
        try:
            if isinstance(self._logger, logging.Logger) or hasattr(self._logger, "log"):
                self._logger.log(_LEVEL_NUMBERS[level], msg, *args, **kwargs)
                return
            method = getattr(self._logger, level, None)
            if method is not None:
                method(msg, *args, **kwargs)
        except Exception:
            # Logging must never break a poll loop or a send.
            pass


def _default_logger() -> logging.Logger:
    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(threadName)s] %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(TRACE_LEVEL)
    return logger


def create_logger(*, logger: Any | None = None, level: LogLevel = "info") -> BoundLogger:
    if isinstance(logger, BoundLogger):
        return logger
    return BoundLogger(logger, level=level)


__all__ = ["BoundLogger", "DEFAULT_LOGGER_NAME", "LogLevel", "LoggerProtocol", "TRACE_LEVEL", "create_logger"]
