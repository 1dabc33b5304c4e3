"""Core модули prom-request."""

from .config import HttpMethod, RequestConfig
from .settings import PromRequestSettings
from .exceptions import (
    PromRequestException,
    OutcomeKind,
    ConfigurationError,
    ResponseError,
    ConnectionError,
    TransportError,
    TIMEOUT_CODES,
    SOCKET_TIMEOUT_CODE,
    CONNECT_TIMEOUT_CODE,
)
from .response import Response
from .timers import Timer, TimerState
from .transport import Call, Form, HttpxTransport, Socket, Transport
from .orchestrator import (
    TimeoutGuard,
    classify_response,
    classify_transport_error,
    create_request,
)
from .stream import StreamHandle, stream_request
from .client import RequestClient
from .utils import is_ok, sanitize_url

__all__ = [
    # Config
    "HttpMethod",
    "RequestConfig",
    "PromRequestSettings",
    # Exceptions
    "PromRequestException",
    "OutcomeKind",
    "ConfigurationError",
    "ResponseError",
    "ConnectionError",
    "TransportError",
    "TIMEOUT_CODES",
    "SOCKET_TIMEOUT_CODE",
    "CONNECT_TIMEOUT_CODE",
    # Transport
    "Response",
    "Timer",
    "TimerState",
    "Call",
    "Form",
    "HttpxTransport",
    "Socket",
    "Transport",
    # Orchestration
    "TimeoutGuard",
    "classify_response",
    "classify_transport_error",
    "create_request",
    "StreamHandle",
    "stream_request",
    "RequestClient",
    # Utils
    "is_ok",
    "sanitize_url",
]
