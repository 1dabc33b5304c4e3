"""
Module-level API backed by a shared default RequestClient.

Example:
    >>> import prom_request
    >>> response = await prom_request.get("http://foo.com/get")
    >>> response = await prom_request.request(url="http://foo.com/slow", socket_timeout=500)
    >>> handle = prom_request.stream(url="http://foo.com/file")
"""

from typing import Any, Optional

from .core.client import RequestClient
from .core.config import RequestConfig
from .core.response import Response
from .core.stream import StreamHandle

_default_client: Optional[RequestClient] = None


def get_default_client() -> RequestClient:
    """Create the default client on first use (reads PROM_REQUEST_* once)."""
    global _default_client

    if _default_client is None:
        _default_client = RequestClient()

    return _default_client


def set_default_client(client: Optional[RequestClient]) -> None:
    """Replace the default client; None resets it to a fresh one on next use."""
    global _default_client
    _default_client = client


async def request(config: Optional[RequestConfig] = None, **options: Any) -> Response:
    return await get_default_client().request(config, **options)


async def get(url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
    return await get_default_client().get(url, config, **options)


async def post(url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
    return await get_default_client().post(url, config, **options)


async def patch(url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
    return await get_default_client().patch(url, config, **options)


async def delete(url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
    return await get_default_client().delete(url, config, **options)


async def head(url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
    return await get_default_client().head(url, config, **options)


async def put(url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
    return await get_default_client().put(url, config, **options)


def stream(config: Optional[RequestConfig] = None, **options: Any) -> StreamHandle:
    return get_default_client().stream(config, **options)


async def post_file(url: str, file: Any, config: Optional[RequestConfig] = None, **options: Any) -> Response:
    return await get_default_client().post_file(url, file, config, **options)
