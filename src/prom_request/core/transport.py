# src/prom_request/core/transport.py
"""
Транспорт на базе httpx.

Call - один запрос в полёте. Он стартует на следующей итерации event loop,
поэтому вызывающий код успевает синхронно заполнить форму (call.form()).

События Call:
    socket(Socket)       - сокет получен (новый или из пула)
    response(Response)   - ответ получен (тело прочитано, либо streaming)
    error(TransportError)
    complete()           - терминальное событие, до response/error

Сокетные события строятся из trace extension httpcore:
    connection.connect_tcp.started   -> socket(connecting=True)
    connection.connect_tcp.complete  -> socket "connect"
    http11/http2.send_request_headers.started без сокета
                                     -> socket(connecting=False), соединение из пула
"""

import asyncio
import errno
import json
import os
import socket as socketlib
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx

from .config import RequestConfig
from .events import EventEmitter
from .exceptions import (
    ABORTED_CODE,
    CONNECT_TIMEOUT_CODE,
    SOCKET_TIMEOUT_CODE,
    TransportError,
)
from .response import Response
from .timers import Timer


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SOCKET
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Socket(EventEmitter):
    """
    Представление сокета запроса.

    Args:
        connecting: True, пока TCP подключение не установлено
    """

    def __init__(self, connecting: bool):
        super().__init__()
        self.connecting = connecting
        self._timer: Optional[Timer] = None

    def mark_connected(self) -> None:
        if not self.connecting:
            return
        self.connecting = False
        self.emit("connect")

    def set_timeout(self, ms: float, on_idle) -> Timer:
        """Взвести таймер простоя; предыдущий таймер отменяется."""
        self.clear_timeout()
        self._timer = Timer(ms, on_idle, name="socket")
        self._timer.arm()
        return self._timer

    def clear_timeout(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# FORM
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Form:
    """
    Multipart форма запроса.

    Строки, bytes и числа становятся обычными полями, всё остальное
    (объекты с read()) - файлами.
    """

    def __init__(self):
        self._fields: List[Tuple[str, Any, Optional[str]]] = []

    def append(self, field_name: str, source: Any, filename: Optional[str] = None) -> None:
        self._fields.append((field_name, source, filename))

    def __len__(self) -> int:
        return len(self._fields)

    def to_httpx(self) -> Tuple[Dict[str, Any], List[Tuple[str, Tuple[Optional[str], Any]]]]:
        """Вернуть (data, files) для httpx."""
        data: Dict[str, Any] = {}
        files: List[Tuple[str, Tuple[Optional[str], Any]]] = []

        for field_name, source, filename in self._fields:
            if isinstance(source, (str, bytes, int, float)):
                data[field_name] = str(source) if not isinstance(source, (str, bytes)) else source
            else:
                files.append((field_name, (filename, source)))

        return data, files


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ERRORS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _errno_code(exc: BaseException) -> Optional[str]:
    """Найти символьный errno код в цепочке исключений."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socketlib.gaierror):
            return "ENOTFOUND"
        if isinstance(current, OSError) and current.errno in errno.errorcode:
            return errno.errorcode[current.errno]
        current = current.__cause__ or current.__context__
    return None


def to_transport_error(exc: httpx.HTTPError) -> TransportError:
    """
    Конвертировать исключение httpx в TransportError с кодом.

    Examples:
        >>> to_transport_error(httpx.ReadTimeout("timed out")).code
        'ESOCKETTIMEDOUT'
        >>> to_transport_error(httpx.ConnectTimeout("timed out")).code
        'ETIMEDOUT'
    """
    message = str(exc) or exc.__class__.__name__

    if isinstance(exc, (httpx.ConnectTimeout, httpx.PoolTimeout)):
        return TransportError(message, CONNECT_TIMEOUT_CODE, connect=True)
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(message, SOCKET_TIMEOUT_CODE, connect=False)

    code = _errno_code(exc)
    if code is None and isinstance(exc, httpx.RemoteProtocolError):
        code = "ECONNRESET"

    return TransportError(message, code)


def decode_body(response: httpx.Response, expect_json: bool) -> Any:
    """
    Тело ответа как текст, либо как JSON при expect_json.

    Невалидный JSON остаётся текстом, пустое тело при expect_json - None:
    классификацию по типу делает оркестратор.
    """
    text = response.text
    if not expect_json:
        return text
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CALL
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Call(EventEmitter):
    """
    Один запрос через httpx.AsyncClient.

    Args:
        config: Конфигурация запроса
        client: Общий httpx.AsyncClient; если None, Call создаёт свой
            и закрывает его по завершении
        stream: Не читать тело; вызывающий код читает его через
            response.raw и обязан вызвать aclose()
        verify_ssl: Проверять SSL сертификаты (только для своего клиента)
    """

    def __init__(
        self,
        config: RequestConfig,
        client: Optional[httpx.AsyncClient] = None,
        stream: bool = False,
        verify_ssl: bool = True
    ):
        super().__init__()
        self.config = config
        self.url = config.require_url()
        self.stream = stream
        self._verify_ssl = verify_ssl
        self._client = client
        self._owns_client = client is None
        self._form: Optional[Form] = None
        self._socket: Optional[Socket] = None
        self._request: Optional[httpx.Request] = None
        self._response: Optional[httpx.Response] = None
        self._task: Optional[asyncio.Task] = None
        self._started = False
        self._aborted = False
        self._completed = False
        self._closed = False

    # ==================== Lifecycle ====================

    def start(self) -> "Call":
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    @property
    def materialized(self) -> bool:
        """Построен ли нативный httpx запрос (есть что отменять)."""
        return self._request is not None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def socket(self) -> Optional[Socket]:
        return self._socket

    def form(self) -> Form:
        """Multipart форма; заполнять до первого await после issue_call."""
        if self._form is None:
            if self.materialized:
                raise RuntimeError("Request is already sent, form can't be attached")
            self._form = Form()
        return self._form

    def abort(self) -> None:
        """
        Прервать запрос.

        Прерванная задача сообщит вторичную ошибку "Request aborted".
        Если задача ещё не начала выполняться, Call завершается сразу
        (без ошибки), чтобы слушатели "complete" сняли свои таймеры.
        """
        if self._aborted:
            return
        self._aborted = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if not self._started:
            self._complete()

    async def aclose(self) -> None:
        """Закрыть streaming ответ и собственный клиент."""
        if self._closed:
            return
        self._closed = True
        if self._response is not None:
            await self._response.aclose()
        if self._owns_client and self._client is not None:
            await self._client.aclose()

    async def wait(self) -> None:
        """Дождаться завершения внутренней задачи."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    # ==================== Internals ====================

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self._verify_ssl,
                follow_redirects=True,
            )
        return self._client

    def _timeout(self) -> httpx.Timeout:
        if self.config.timeout:
            return httpx.Timeout(self.config.timeout / 1000)
        return httpx.Timeout(None)

    def _build_request(self, client: httpx.AsyncClient) -> httpx.Request:
        config = self.config
        kwargs: Dict[str, Any] = {
            "headers": dict(config.headers),
            "params": dict(config.params) or None,
            "timeout": self._timeout(),
            "extensions": {"trace": self._trace},
        }

        if self._form is not None and len(self._form):
            data, files = self._form.to_httpx()
            kwargs["data"] = data or None
            kwargs["files"] = files
        elif config.form is not None:
            kwargs["data"] = dict(config.form)
        elif config.has_json_payload:
            kwargs["json"] = config.json
        elif config.body is not None:
            kwargs["content"] = config.body

        if config.expects_json:
            kwargs["headers"].setdefault("Accept", "application/json")

        return client.build_request(config.method.value, self.url, **kwargs)

    async def _trace(self, event_name: str, info: Dict[str, Any]) -> None:
        if event_name == "connection.connect_tcp.started":
            if self._socket is None:
                self._acquire_socket(connecting=True)
        elif event_name == "connection.connect_tcp.complete":
            if self._socket is None:
                self._acquire_socket(connecting=True)
            self._socket.mark_connected()
        elif event_name.endswith("send_request_headers.started") and self._socket is None:
            # соединение переиспользовано из пула
            self._acquire_socket(connecting=False)

    def _acquire_socket(self, connecting: bool) -> None:
        self._socket = Socket(connecting=connecting)
        self.emit("socket", self._socket)

    def _complete(self) -> bool:
        if self._completed:
            return False
        self._completed = True
        if self._socket is not None:
            self._socket.clear_timeout()
        self.emit("complete")
        return True

    def _fail(self, error: TransportError) -> None:
        self._complete()
        self.emit("error", error)

    async def _run(self) -> None:
        self._started = True
        client = self._get_client()
        try:
            self._request = self._build_request(client)
            response = await client.send(self._request, stream=True)
            self._response = response

            if self.stream:
                body = None
            else:
                try:
                    await response.aread()
                finally:
                    await response.aclose()
                body = decode_body(response, self.config.expects_json)

            result = Response(
                status_code=response.status_code,
                headers=response.headers,
                body=body,
                url=self.url,
                raw=response,
            )
        except asyncio.CancelledError:
            await self.aclose()
            if not self._aborted:
                raise
            self._fail(TransportError("Request aborted", ABORTED_CODE))
            return
        except httpx.HTTPError as e:
            await self.aclose()
            self._fail(to_transport_error(e))
            return
        except Exception as e:
            await self.aclose()
            self._fail(TransportError(str(e) or e.__class__.__name__, _errno_code(e)))
            return

        if not self.stream:
            await self.aclose()

        self._complete()
        self.emit("response", result)


def file_name(source: Any) -> Optional[str]:
    """Имя файла для multipart поля, если источник - открытый файл."""
    name = getattr(source, "name", None)
    if isinstance(name, (str, os.PathLike)):
        return os.path.basename(os.fspath(name))
    return None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Transport(Protocol):
    """Способность выпускать запросы (см. HttpxTransport)."""

    def issue_call(self, config: RequestConfig, stream: bool = False) -> Call:
        ...


class HttpxTransport:
    """
    Транспорт по умолчанию.

    Args:
        client: Общий httpx.AsyncClient (пул соединений, прокси, ...).
            Если None, каждый запрос получает свой клиент.
        verify_ssl: Проверять SSL сертификаты (для собственных клиентов)

    Example:
        >>> async with httpx.AsyncClient() as client:
        ...     transport = HttpxTransport(client)
        ...     call = transport.issue_call(RequestConfig(url="http://foo.com"))
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, verify_ssl: bool = True):
        self._client = client
        self._verify_ssl = verify_ssl

    def issue_call(self, config: RequestConfig, stream: bool = False) -> Call:
        call = Call(config, client=self._client, stream=stream, verify_ssl=self._verify_ssl)
        return call.start()
