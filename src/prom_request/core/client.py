# src/prom_request/core/client.py
"""
RequestClient - awaitable API поверх оркестратора.

Example:
    >>> client = RequestClient()
    >>> response = await client.get("http://foo.com/get", headers={"User-Agent": "testo"})
    >>> response.status_code
    200

    >>> try:
    ...     await client.request(url="http://foo.com/500")
    ... except ResponseError as e:
    ...     print(e.message, e.status_code)
    Request to http://foo.com/500 failed. code: 500 500
"""

import asyncio
import os
import uuid
from typing import Any, Callable, Dict, Optional, Union

import httpx

from .config import HttpMethod, RequestConfig
from .exceptions import PromRequestException
from .logging import RequestLogger, configure_logging, get_logger
from .logging.filters import set_correlation_id
from .orchestrator import create_request
from .response import Response
from .settings import PromRequestSettings
from .stream import StreamHandle, stream_request
from .transport import Call, HttpxTransport, Transport, file_name


class RequestClient:
    """
    Awaitable HTTP запросы с классификацией ошибок и раздельными таймаутами.

    Args:
        transport: Транспорт (по умолчанию HttpxTransport)
        settings: Значения по умолчанию (по умолчанию из окружения PROM_REQUEST_*)
        client: Общий httpx.AsyncClient для HttpxTransport
        logger: RequestLogger
        setup_logging: Настроить логгер пакета из settings.log_*
            (configure_logging); по умолчанию логирование настраивает приложение

    Features:
        - Один исход на запрос: Response, ResponseError или ConnectionError
        - connect_timeout / socket_timeout поверх единого timeout транспорта
        - Streaming, безопасный для подписки после await
        - Multipart загрузка файлов
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        settings: Optional[PromRequestSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[RequestLogger] = None,
        setup_logging: bool = False,
    ):
        self._settings = settings or PromRequestSettings()
        if setup_logging:
            configure_logging(self._settings.to_logging_config())
        self._transport = transport or HttpxTransport(
            client, verify_ssl=self._settings.verify_ssl
        )
        self._logger = logger or get_logger()

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def settings(self) -> PromRequestSettings:
        return self._settings

    def _prepare(self, config: Optional[RequestConfig], **options: Any) -> RequestConfig:
        """Собрать и проверить конфиг до любой сетевой активности."""
        config = self._settings.apply(RequestConfig.from_options(config, **options))
        config.require_url()
        return config

    # ==================== Запрос ====================

    async def request(self, config: Optional[RequestConfig] = None, **options: Any) -> Response:
        """
        Выполнить запрос.

        Args:
            config: RequestConfig (опции из **options накладываются поверх)
            **options: Поля RequestConfig

        Returns:
            Response при статусе 2xx (и JSON объекте/массиве, если json=True)

        Raises:
            ConfigurationError: timeout вместе с connect_timeout/socket_timeout
            ResponseError: Статус вне 2xx или тело не JSON объект/массив
            ConnectionError: Сетевая ошибка или таймаут
        """
        return await self._settle(self._prepare(config, **options))

    async def _settle(
        self,
        config: RequestConfig,
        populate: Optional[Callable[[Call], None]] = None
    ) -> Response:
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Response]" = loop.create_future()
        url = config.target_url
        method = config.method.value
        started = loop.time()

        correlation_id = str(uuid.uuid4())
        set_correlation_id(correlation_id)

        def elapsed_ms() -> float:
            return round((loop.time() - started) * 1000, 2)

        def resolve(response: Response) -> None:
            if future.done():
                return
            self._logger.info(
                "Request succeeded",
                method=method,
                url=url,
                status_code=response.status_code,
                duration_ms=elapsed_ms(),
            )
            future.set_result(response)

        def reject(error: PromRequestException) -> None:
            if future.done():
                return
            self._logger.warning(
                "Request failed",
                method=method,
                url=url,
                error_kind=error.kind.value if error.kind else None,
                code=getattr(error, "code", None),
                status_code=getattr(error, "status_code", None),
                error=error.message,
                duration_ms=elapsed_ms(),
            )
            future.set_exception(error)

        self._logger.debug(
            "Request issued",
            method=method,
            url=url,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
            socket_timeout=config.socket_timeout,
        )
        call = create_request(config, self._transport, resolve, reject, self._logger)
        if populate is not None:
            populate(call)

        try:
            return await future
        except asyncio.CancelledError:
            call.abort()
            raise

    # ==================== Удобные методы ====================

    async def _shorthand(
        self,
        method: HttpMethod,
        url: str,
        config: Optional[RequestConfig],
        options: Dict[str, Any]
    ) -> Response:
        return await self.request(config, url=url, method=method, **options)

    async def get(self, url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
        """GET запрос."""
        return await self._shorthand(HttpMethod.GET, url, config, options)

    async def post(self, url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
        """POST запрос."""
        return await self._shorthand(HttpMethod.POST, url, config, options)

    async def patch(self, url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
        """PATCH запрос."""
        return await self._shorthand(HttpMethod.PATCH, url, config, options)

    async def delete(self, url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
        """DELETE запрос."""
        return await self._shorthand(HttpMethod.DELETE, url, config, options)

    async def head(self, url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
        """HEAD запрос."""
        return await self._shorthand(HttpMethod.HEAD, url, config, options)

    async def put(self, url: str, config: Optional[RequestConfig] = None, **options: Any) -> Response:
        """PUT запрос."""
        return await self._shorthand(HttpMethod.PUT, url, config, options)

    # ==================== Streaming ====================

    def stream(self, config: Optional[RequestConfig] = None, **options: Any) -> StreamHandle:
        """
        Streaming запрос; handle возвращается сразу.

        Вызывать внутри работающего event loop.

        Example:
            >>> handle = client.stream(url="http://foo.com/file")
            >>> await asyncio.sleep(0)
            >>> handle.on("data", chunks.append)
        """
        config = self._prepare(config, **options)
        self._logger.debug("Stream issued", method=config.method.value, url=config.target_url)
        return stream_request(config, self._transport, self._logger)

    # ==================== File upload ====================

    async def post_file(
        self,
        url: str,
        file: Union[str, "os.PathLike[str]", Any],
        config: Optional[RequestConfig] = None,
        **options: Any
    ) -> Response:
        """
        POST multipart формы с полем "file".

        Args:
            url: URL
            file: Путь к файлу или открытый файловый объект (с read())
            config: RequestConfig
            **options: Поля RequestConfig

        Example:
            >>> response = await client.post_file("http://foo.com/upload", "/tmp/report.csv")
        """
        config = self._prepare(config, url=url, method=HttpMethod.POST, **options)

        if hasattr(file, "read"):
            source, filename, opened = file, file_name(file), None
        else:
            path = os.fspath(file)
            opened = open(path, "rb")
            source, filename = opened, os.path.basename(path)

        def populate(call: Call) -> None:
            call.form().append("file", source, filename=filename)

        try:
            return await self._settle(config, populate)
        finally:
            if opened is not None:
                opened.close()
