# src/prom_request/core/stream.py
"""
Streaming ответов.

stream_request() возвращает StreamHandle синхронно, до того как исход
запроса известен. Данные начинают читаться только когда появился первый
слушатель "data" (или начата async итерация), поэтому слушатели,
добавленные после await, получают всё тело ровно один раз. Ошибки,
случившиеся до появления слушателя "error", буферизуются.

Ответ вне 2xx даёт событие "error" с ResponseError, но handle всё равно
разрешается телом ответа - вызывающий код может прочитать его.
"""

import asyncio
from typing import Any, AsyncIterator, List, Optional

import httpx

from .config import RequestConfig
from .events import EventEmitter, Listener
from .exceptions import ABORTED_CODE, ConnectionError, PromRequestException, ResponseError
from .logging import RequestLogger, get_logger
from .orchestrator import TimeoutGuard, classify_transport_error
from .response import Response
from .transport import Call, Transport, to_transport_error
from .utils import is_ok


def stream_failure_message(status_code: int, url: str) -> str:
    return f"Server responded with {status_code}, unable get data from url: {url}"


class StreamHandle(EventEmitter):
    """
    Ленивый поток ответа.

    События:
        response(Response) - ответ получен (в том числе вне 2xx)
        data(bytes)        - очередной кусок тела
        end()              - тело прочитано
        error(exc)         - ConnectionError/ResponseError, каждое появление

    Example:
        >>> handle = stream_request(RequestConfig(url="http://foo.com/file"), transport)
        >>> await asyncio.sleep(0)
        >>> handle.on("data", chunks.append).on("end", done)

        >>> async with stream_request(config, transport) as handle:
        ...     async for chunk in handle:
        ...         ...
    """

    def __init__(self, url: str):
        super().__init__()
        self.url = url
        self.errors: List[PromRequestException] = []
        self.response: Optional[Response] = None
        self._call: Optional[Call] = None
        self._pending_errors: List[PromRequestException] = []
        self._settled = asyncio.Event()
        self._pump: Optional[asyncio.Task] = None
        self._consumed = False
        self._ended = False
        self._closed = False

    # ==================== Listeners ====================

    def on(self, event: str, listener: Listener) -> "StreamHandle":
        super().on(event, listener)

        if event == "error" and self._pending_errors:
            pending, self._pending_errors = self._pending_errors, []
            for error in pending:
                self.emit("error", error)
        elif event == "data":
            self._maybe_flow()

        return self

    @property
    def resolved(self) -> bool:
        return self.response is not None

    @property
    def ended(self) -> bool:
        return self._ended

    # ==================== Settlement ====================

    def fail(self, error: PromRequestException) -> None:
        """Сообщить ошибку; вызывается на каждое появление."""
        if self._closed:
            return
        self.errors.append(error)
        if isinstance(error, ConnectionError) and not self.resolved:
            self._settled.set()

        if self.listener_count("error"):
            self.emit("error", error)
        else:
            self._pending_errors.append(error)

    def resolve(self, call: Call, response: Response) -> None:
        """Разрешить handle телом ответа call."""
        if self.resolved or self._closed:
            return
        self._call = call
        self.response = response
        self._settled.set()
        self.emit("response", response)
        self._maybe_flow()

    # ==================== Flowing mode ====================

    def _maybe_flow(self) -> None:
        if not self.resolved or self._consumed or not self.listener_count("data"):
            return
        self._consumed = True
        self._pump = asyncio.get_running_loop().create_task(self._flow())

    async def _flow(self) -> None:
        try:
            async for chunk in self._chunks():
                self.emit("data", chunk)
        except httpx.HTTPError as e:
            self.fail(classify_transport_error(to_transport_error(e), self.url))
            return
        finally:
            await self._release()

        self._ended = True
        self.emit("end")

    async def _chunks(self) -> AsyncIterator[bytes]:
        async for chunk in self.response.raw.aiter_bytes():
            if chunk:
                yield chunk

    # ==================== Pull mode ====================

    async def wait(self) -> Optional[Response]:
        """
        Дождаться ответа.

        Raises:
            ConnectionError: Ответа не будет (ошибка транспорта или handle закрыт)
        """
        await self._settled.wait()
        if self.resolved:
            return self.response
        for error in self.errors:
            if isinstance(error, ConnectionError):
                raise error
        raise ConnectionError("Stream closed", ABORTED_CODE)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        await self.wait()
        if self._consumed:
            raise RuntimeError("Stream is already being consumed")
        self._consumed = True

        try:
            async for chunk in self._chunks():
                yield chunk
        except httpx.HTTPError as e:
            error = classify_transport_error(to_transport_error(e), self.url)
            self.fail(error)
            raise error from e
        finally:
            await self._release()

        self._ended = True
        self.emit("end")

    async def read(self) -> bytes:
        """Прочитать тело целиком."""
        return b"".join([chunk async for chunk in self])

    # ==================== Cleanup ====================

    async def _release(self) -> None:
        if self._call is not None:
            await self._call.aclose()

    async def aclose(self) -> None:
        """Закрыть поток; ошибки после закрытия не эмитятся."""
        if self._closed:
            return
        self._closed = True
        if not self.resolved:
            self._settled.set()
        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
            await asyncio.gather(self._pump, return_exceptions=True)
        if self._call is not None:
            if not self._call.completed:
                self._call.abort()
                await self._call.wait()
            await self._call.aclose()

    async def __aenter__(self) -> "StreamHandle":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


def stream_request(
    config: RequestConfig,
    transport: Transport,
    logger: Optional[RequestLogger] = None
) -> StreamHandle:
    """
    Выпустить streaming запрос.

    Ошибка транспорта -> "error" с ConnectionError.
    Ответ вне 2xx -> "error" с ResponseError, затем handle разрешается.
    Ответ 2xx -> handle разрешается.
    """
    logger = logger or get_logger()
    url = config.require_url()
    handle = StreamHandle(url)

    call = transport.issue_call(config, stream=True)
    guard = TimeoutGuard(call, config, logger).attach()
    handle._call = call

    def on_error(error) -> None:
        guard.cancel()
        failure = classify_transport_error(error, url)
        logger.warning("Stream request failed", url=url, code=failure.code, error=failure.message)
        handle.fail(failure)

    def on_response(response: Response) -> None:
        guard.cancel()
        if not is_ok(response.status_code):
            logger.warning("Stream request failed", url=url, status_code=response.status_code)
            handle.fail(ResponseError(stream_failure_message(response.status_code, url), response))
        handle.resolve(call, response)

    call.on("error", on_error)
    call.on("response", on_response)
    return handle
