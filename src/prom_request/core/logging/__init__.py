"""
Logging for prom-request.

Example:
    >>> from prom_request.core.logging import LoggingConfig, configure_logging
    >>> logger = configure_logging(LoggingConfig.create(level="DEBUG", format="json"))
    >>> logger.info("Request succeeded", method="GET", url="http://foo.com")
"""

from .config import LoggingConfig, LogLevel, LogFormat
from .logger import LOGGER_NAME, RequestLogger, get_logger, configure_logging
from .formatters import JSONFormatter, TextFormatter, get_formatter
from .filters import (
    CorrelationIdFilter,
    ExtraFieldsFilter,
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
)

__all__ = [
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    "LOGGER_NAME",
    "RequestLogger",
    "get_logger",
    "configure_logging",
    "JSONFormatter",
    "TextFormatter",
    "get_formatter",
    "CorrelationIdFilter",
    "ExtraFieldsFilter",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
]
