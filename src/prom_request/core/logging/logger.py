"""
Logger for prom-request.

RequestLogger wraps the stdlib ``prom_request`` logger: keyword arguments
become extra fields, URLs are sanitized before they reach a handler.
"""

import logging
import sys
from typing import Any, Dict, Optional

from ..utils import sanitize_url
from .config import LoggingConfig, LogLevel
from .filters import CorrelationIdFilter, ExtraFieldsFilter
from .formatters import get_formatter

LOGGER_NAME = "prom_request"


class RequestLogger:
    """
    Logger proxy used by the request orchestrator.

    Without configure_logging() the package logger only carries the
    NullHandler added at import, so the application decides where
    records go.

    Example:
        >>> logger = RequestLogger()
        >>> logger.info("Request succeeded", url="http://foo.com/get?token=x", status_code=200)
    """

    def __init__(self, name: str = LOGGER_NAME):
        self.name = name
        self._logger = logging.getLogger(name)

    @staticmethod
    def _fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        url = fields.get("url")
        if isinstance(url, str):
            fields["url"] = sanitize_url(url)
        return fields

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def debug(self, message: str, **fields: Any) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(message, extra=self._fields(fields))

    def info(self, message: str, **fields: Any) -> None:
        self._logger.info(message, extra=self._fields(fields))

    def warning(self, message: str, **fields: Any) -> None:
        self._logger.warning(message, extra=self._fields(fields))

    def error(self, message: str, **fields: Any) -> None:
        self._logger.error(message, extra=self._fields(fields))


def _level(level: LogLevel) -> int:
    return getattr(logging, level.value)


def configure_logging(config: Optional[LoggingConfig] = None) -> RequestLogger:
    """
    Attach a console handler to the ``prom_request`` logger.

    Replaces handlers installed by a previous call.

    Example:
        >>> configure_logging(LoggingConfig.create(level="DEBUG", format="json"))
    """
    config = config or LoggingConfig()
    std_logger = logging.getLogger(LOGGER_NAME)
    std_logger.setLevel(_level(config.level))

    for handler in std_logger.handlers[:]:
        if getattr(handler, "_prom_request_handler", False):
            std_logger.removeHandler(handler)
            handler.close()

    if config.enable_console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(_level(config.level))
        handler.setFormatter(get_formatter(config.format.value))
        if config.enable_correlation_id:
            handler.addFilter(CorrelationIdFilter())
        if config.extra_fields:
            handler.addFilter(ExtraFieldsFilter(config.extra_fields))
        handler._prom_request_handler = True
        std_logger.addHandler(handler)

    return RequestLogger()


_default_logger: Optional[RequestLogger] = None


def get_logger() -> RequestLogger:
    """Get the shared RequestLogger instance."""
    global _default_logger

    if _default_logger is None:
        _default_logger = RequestLogger()

    return _default_logger
