"""
Process-wide defaults from environment.

Reads from:
1. Environment variables (PROM_REQUEST_*)
2. .env file
3. Defaults

Example .env file:
    PROM_REQUEST_DEFAULT_TIMEOUT_MS=5000
    PROM_REQUEST_DEFAULT_HEADERS={"User-Agent": "prom-request"}
    PROM_REQUEST_LOG_LEVEL=DEBUG
    PROM_REQUEST_LOG_FORMAT=json
"""

from dataclasses import replace
from typing import Dict, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import RequestConfig
from .logging.config import LoggingConfig


class PromRequestSettings(BaseSettings):
    """
    Defaults applied to every request of a RequestClient.

    log_* fields take effect only through configure_logging():
    RequestClient(setup_logging=True) or
    configure_logging(settings.to_logging_config()).

    Usage:
        >>> settings = PromRequestSettings()
        >>> settings.default_timeout_ms is None
        True
    """

    model_config = SettingsConfigDict(
        env_prefix='PROM_REQUEST_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # Applied only when a request configures none of timeout/connect/socket
    default_timeout_ms: Optional[float] = Field(default=None, gt=0)
    default_headers: Dict[str, str] = Field(default_factory=dict)
    verify_ssl: bool = Field(default=True)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="text")
    log_enable_correlation_id: bool = Field(default=True)

    def apply(self, config: RequestConfig) -> RequestConfig:
        """Merge defaults into a request config; explicit values win."""
        changes = {}

        if self.default_headers:
            headers = dict(self.default_headers)
            headers.update(config.headers)
            changes["headers"] = headers

        if self.default_timeout_ms and not config.has_any_timeout:
            changes["timeout"] = self.default_timeout_ms

        return replace(config, **changes) if changes else config

    def to_logging_config(self) -> LoggingConfig:
        return LoggingConfig.create(
            level=self.log_level,
            format=self.log_format,
            enable_correlation_id=self.log_enable_correlation_id,
        )
