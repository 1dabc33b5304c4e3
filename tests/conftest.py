"""
Pytest configuration and fixtures for prom-request tests.
"""

import asyncio
from typing import List, Optional

import pytest
import pytest_asyncio

from prom_request.core.client import RequestClient
from prom_request.core.config import RequestConfig
from prom_request.core.events import EventEmitter
from prom_request.core.exceptions import ABORTED_CODE, TransportError
from prom_request.core.response import Response
from prom_request.core.settings import PromRequestSettings
from prom_request.core.transport import Form, Socket


class FakeCall(EventEmitter):
    """Scripted call: the test decides when sockets connect and responses arrive."""

    def __init__(self, config: RequestConfig, stream: bool = False, materialized: bool = True):
        super().__init__()
        self.config = config
        self.url = config.target_url
        self.stream = stream
        self.materialized = materialized
        self.completed = False
        self.aborted = False
        self.closed = False
        self.socket: Optional[Socket] = None
        self._form: Optional[Form] = None

    def form(self) -> Form:
        if self._form is None:
            self._form = Form()
        return self._form

    def abort(self) -> None:
        if self.aborted:
            return
        self.aborted = True
        # like the real transport, a cancelled request reports a secondary error
        asyncio.get_running_loop().call_soon(
            self.fail, "Request aborted", ABORTED_CODE
        )

    async def aclose(self) -> None:
        self.closed = True

    async def wait(self) -> None:
        return None

    # ==================== Script ====================

    def acquire_socket(self, connecting: bool = True) -> Socket:
        self.socket = Socket(connecting=connecting)
        self.emit("socket", self.socket)
        return self.socket

    def _complete(self) -> None:
        if self.completed:
            return
        self.completed = True
        if self.socket is not None:
            self.socket.clear_timeout()
        self.emit("complete")

    def respond(self, status_code: int = 200, body=None) -> Response:
        response = Response(status_code=status_code, body=body, url=self.url)
        self._complete()
        self.emit("response", response)
        return response

    def fail(self, message: str, code: Optional[str] = None) -> None:
        self._complete()
        self.emit("error", TransportError(message, code))


class FakeTransport:
    """Transport issuing FakeCall objects."""

    def __init__(self, materialized: bool = True):
        self.materialized = materialized
        self.calls: List[FakeCall] = []

    def issue_call(self, config: RequestConfig, stream: bool = False) -> FakeCall:
        call = FakeCall(config, stream=stream, materialized=self.materialized)
        self.calls.append(call)
        return call

    @property
    def last(self) -> FakeCall:
        return self.calls[-1]


@pytest.fixture
def base_url():
    """Base URL for testing."""
    return "http://foo.com"


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env files."""
    return PromRequestSettings(_env_file=None)


@pytest.fixture
def client(settings):
    """RequestClient on the default httpx transport (mock it with respx)."""
    return RequestClient(settings=settings)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def unmaterialized_transport():
    """Transport whose calls never build a native request."""
    return FakeTransport(materialized=False)


@pytest.fixture
def fake_client(fake_transport, settings):
    """RequestClient on a scripted transport."""
    return RequestClient(fake_transport, settings=settings)


@pytest_asyncio.fixture
async def local_server():
    """
    Plain HTTP/1.1 server on localhost.

    GET /slow waits 2s before answering, everything else answers "ok" at once.
    """
    handlers = set()

    async def handle(reader, writer):
        handlers.add(asyncio.current_task())
        try:
            head = await reader.readuntil(b"\r\n\r\n")
            path = head.split(b" ", 2)[1]
            if path == b"/slow":
                await asyncio.sleep(2)
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Length: 2\r\n"
                b"Connection: close\r\n\r\n"
                b"ok"
            )
            await writer.drain()
        except (asyncio.IncompleteReadError, OSError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]

    yield f"http://127.0.0.1:{port}"

    for task in handlers:
        task.cancel()
    server.close()
    await server.wait_closed()
