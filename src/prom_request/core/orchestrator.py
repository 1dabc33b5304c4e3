# src/prom_request/core/orchestrator.py
"""
Оркестратор запроса.

Выпускает запрос через транспорт, вешает таймеры connect/socket таймаутов
и классифицирует терминальное событие:

    error    -> ConnectionError
    response -> Response | ResponseError

Кто первым сообщил исход (ошибка транспорта, ответ или синтетический
таймаут), тот и определяет результат; идемпотентность обеспечивает
получатель (Future в RequestClient).
"""

from typing import Callable, Optional

from .config import RequestConfig
from .exceptions import (
    CONNECT_TIMEOUT_CODE,
    SOCKET_TIMEOUT_CODE,
    TIMEOUT_CODES,
    ConnectionError,
    ResponseError,
    TransportError,
)
from .logging import RequestLogger, get_logger
from .response import Response
from .timers import Timer
from .transport import Call, Socket, Transport
from .utils import is_ok


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# КЛАССИФИКАЦИЯ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def connect_timeout_message(url: str) -> str:
    return f"Connect timeout occurred when requesting url: {url}"


def classify_transport_error(error: TransportError, url: str) -> ConnectionError:
    """
    Ошибка транспорта -> ConnectionError.

    Коды таймаутов нормализуются в ESOCKETTIMEDOUT; какой таймер сработал,
    сохраняет маркер connect.

    Examples:
        >>> e = classify_transport_error(TransportError("boom", "ETIMEDOUT"), "http://foo.com")
        >>> e.code, e.connect
        ('ESOCKETTIMEDOUT', True)
    """
    if error.code in TIMEOUT_CODES:
        connect = error.connect
        if connect is None:
            connect = error.code == CONNECT_TIMEOUT_CODE
        return ConnectionError(connect_timeout_message(url), SOCKET_TIMEOUT_CODE, connect=connect)

    return ConnectionError(error.message, error.code)


def classify_response(
    response: Response,
    url: str,
    expect_json: bool = False
) -> Optional[ResponseError]:
    """
    Проверить ответ; None - ответ пригоден.

    Проверяется тип тела, а не содержимое: JSON число или строка
    верхнего уровня - тоже ошибка.
    """
    if not is_ok(response.status_code):
        return ResponseError(f"Request to {url} failed. code: {response.status_code}", response)

    if expect_json and not isinstance(response.body, (dict, list)):
        return ResponseError(f"Unable to parse json from url: {url}", response)

    return None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ТАЙМАУТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TimeoutGuard:
    """
    connect_timeout и socket_timeout поверх одного Call.

    connect: таймер взводится при выпуске запроса и отменяется событием
        "connect" сокета. При срабатывании запрос прерывается (если нативный
        запрос уже построен) и на Call эмитится ESOCKETTIMEDOUT, connect=True.
    socket: таймер простоя взводится на уже подключённом сокете сразу,
        иначе - по событию "connect". При срабатывании запрос прерывается
        и эмитится ESOCKETTIMEDOUT, connect=False.

    Все таймеры отменяются на "complete" Call, до классификации исхода.
    """

    def __init__(
        self,
        call: Call,
        config: RequestConfig,
        logger: Optional[RequestLogger] = None
    ):
        self.call = call
        self.config = config
        self._logger = logger or get_logger()
        self.connect_timer: Optional[Timer] = None
        self.socket_timer: Optional[Timer] = None

    def attach(self) -> "TimeoutGuard":
        if self.config.connect_timeout:
            self.connect_timer = Timer(
                self.config.connect_timeout, self._on_connect_timeout, name="connect"
            )
            self.connect_timer.arm()
            self.call.on("socket", self._watch_connect)

        if self.config.socket_timeout:
            self.call.on("socket", self._arm_socket_timer)

        self.call.on("complete", self.cancel)
        return self

    def cancel(self) -> None:
        if self.connect_timer is not None:
            self.connect_timer.cancel()
        if self.socket_timer is not None:
            self.socket_timer.cancel()

    # ==================== connect ====================

    def _watch_connect(self, socket: Socket) -> None:
        socket.on("connect", self.connect_timer.cancel)

    def _on_connect_timeout(self) -> None:
        self._logger.debug(
            "Connect timeout fired",
            url=self.call.url,
            timeout_ms=self.config.connect_timeout,
            materialized=self.call.materialized,
        )
        if self.call.materialized:
            self.call.abort()

        self.call.emit("error", TransportError(SOCKET_TIMEOUT_CODE, SOCKET_TIMEOUT_CODE, connect=True))

    # ==================== socket ====================

    def _arm_socket_timer(self, socket: Socket) -> None:
        if not socket.connecting:
            self._start_socket_timer(socket)
            return

        socket.on("connect", lambda: self._start_socket_timer(socket))

    def _start_socket_timer(self, socket: Socket) -> None:
        if self.call.completed:
            return
        self.socket_timer = socket.set_timeout(self.config.socket_timeout, self._on_socket_timeout)

    def _on_socket_timeout(self) -> None:
        self._logger.debug(
            "Socket timeout fired",
            url=self.call.url,
            timeout_ms=self.config.socket_timeout,
        )
        self.call.abort()
        self.call.emit("error", TransportError(SOCKET_TIMEOUT_CODE, SOCKET_TIMEOUT_CODE, connect=False))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ЗАПРОС
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def create_request(
    config: RequestConfig,
    transport: Transport,
    resolve: Callable[[Response], None],
    reject: Callable[[Exception], None],
    logger: Optional[RequestLogger] = None
) -> Call:
    """
    Выпустить запрос и связать его исход с resolve/reject.

    Args:
        config: Проверенная конфигурация (RequestConfig валидирует себя сам)
        transport: Транспорт
        resolve: Вызывается с Response при успехе
        reject: Вызывается с ConnectionError/ResponseError

    Returns:
        Call - форму можно заполнить до первого await
    """
    url = config.require_url()
    call = transport.issue_call(config)
    guard = TimeoutGuard(call, config, logger).attach()

    def on_error(error: TransportError) -> None:
        guard.cancel()
        reject(classify_transport_error(error, url))

    def on_response(response: Response) -> None:
        guard.cancel()
        failure = classify_response(response, url, config.expects_json)
        if failure is not None:
            reject(failure)
        else:
            resolve(response)

    call.on("error", on_error)
    call.on("response", on_response)
    return call
