"""prom-request - awaitable HTTP requests with classified errors and layered timeouts."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.client import RequestClient
from .core.config import HttpMethod, RequestConfig
from .core.settings import PromRequestSettings
from .core.response import Response
from .core.stream import StreamHandle
from .core.utils import is_ok
from .core.exceptions import (
    PromRequestException,
    OutcomeKind,
    ConfigurationError,
    ResponseError,
    ConnectionError,
)
from .core.logging import LoggingConfig, configure_logging
from .api import (
    request,
    get,
    post,
    patch,
    delete,
    head,
    put,
    stream,
    post_file,
    get_default_client,
    set_default_client,
)

# Set up logging - add NullHandler to prevent "No handler found" warnings
# Users can configure logging themselves using logging.getLogger('prom_request')
logging.getLogger('prom_request').addHandler(logging.NullHandler())

# Version info - read from package metadata (single source of truth in pyproject.toml)
try:
    __version__ = version("prom-request")
except PackageNotFoundError:
    # Package is not installed (development mode)
    __version__ = "0.0.0-dev"

__all__ = [
    # API
    "request",
    "get",
    "post",
    "patch",
    "delete",
    "head",
    "put",
    "stream",
    "post_file",
    "get_default_client",
    "set_default_client",

    # Core
    "RequestClient",
    "RequestConfig",
    "HttpMethod",
    "PromRequestSettings",
    "Response",
    "StreamHandle",
    "is_ok",

    # Exceptions
    "PromRequestException",
    "OutcomeKind",
    "ConfigurationError",
    "ResponseError",
    "ConnectionError",

    # Logging
    "LoggingConfig",
    "configure_logging",

    # Version
    "__version__",
]
