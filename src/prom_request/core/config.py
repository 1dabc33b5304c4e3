"""
Конфигурация запроса.

RequestConfig - immutable (frozen dataclass): ядро только читает его,
хелперы получают производные копии через dataclasses.replace.
"""

import json as jsonlib
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from .exceptions import CONFLICTING_TIMEOUTS_MESSAGE, ConfigurationError


class HttpMethod(str, Enum):
    """Поддерживаемые HTTP методы."""
    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    PUT = "PUT"


_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class RequestConfig:
    """
    Параметры одного запроса.

    Args:
        url: URL запроса
        uri: Синоним url (используется, если url пуст)
        method: HTTP метод
        headers: Заголовки запроса
        body: Сырое тело запроса
        json: True - ожидать JSON объект/массив в ответе;
            любое другое значение (кроме False/None) сериализуется в тело
            запроса и тоже включает ожидание JSON
        params: Query string параметры
        form: Поля urlencoded формы
        timeout: Единый таймаут транспорта (мс)
        connect_timeout: Таймаут подключения (мс)
        socket_timeout: Таймаут простоя сокета после подключения (мс)

    Examples:
        >>> RequestConfig(url="http://foo.com/get", timeout=100)
        >>> RequestConfig(url="http://foo.com/get", connect_timeout=50, socket_timeout=500)
        >>> RequestConfig(url="http://foo.com", timeout=100, socket_timeout=100)
        Traceback (most recent call last):
        ...
        ConfigurationError: Can't use socketTimeout/connectTimeout in conjuction with timeout
    """
    url: str = ""
    uri: Optional[str] = None
    method: Union[HttpMethod, str] = HttpMethod.GET
    headers: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    body: Optional[Union[str, bytes]] = None
    json: Any = None
    params: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    form: Optional[Mapping[str, str]] = None
    timeout: Optional[float] = None
    connect_timeout: Optional[float] = None
    socket_timeout: Optional[float] = None

    def __post_init__(self):
        """Валидация."""
        if self.timeout and (self.socket_timeout or self.connect_timeout):
            raise ConfigurationError(CONFLICTING_TIMEOUTS_MESSAGE)

        for name in ("timeout", "connect_timeout", "socket_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigurationError(f"{name} must be positive")

        try:
            method = HttpMethod(str(getattr(self.method, "value", self.method)).upper())
        except ValueError:
            raise ConfigurationError(f"Unsupported method: {self.method}") from None
        object.__setattr__(self, "method", method)

        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers or {})))
        object.__setattr__(self, "params", MappingProxyType(dict(self.params or {})))

        if self.has_json_payload:
            try:
                jsonlib.dumps(self.json)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"json payload is not serializable: {e}") from e

    @classmethod
    def from_options(
        cls,
        config: Optional["RequestConfig"] = None,
        **options: Any
    ) -> "RequestConfig":
        """
        Создать конфиг из keyword опций или производный от существующего.

        Examples:
            >>> RequestConfig.from_options(url="http://foo.com", timeout=10)
            >>> RequestConfig.from_options(base, method="POST")
        """
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise ConfigurationError(f"Unknown request options: {', '.join(sorted(unknown))}")

        if config is None:
            return cls(**options)
        if not options:
            return config
        return replace(config, **options)

    @property
    def target_url(self) -> str:
        """URL запроса (url или uri)."""
        return self.url or self.uri or ""

    @property
    def has_json_payload(self) -> bool:
        return self.json is not None and not isinstance(self.json, bool)

    @property
    def expects_json(self) -> bool:
        """Ожидается ли JSON объект/массив в ответе."""
        return self.json is True or self.has_json_payload

    @property
    def has_custom_timeouts(self) -> bool:
        return bool(self.connect_timeout or self.socket_timeout)

    @property
    def has_any_timeout(self) -> bool:
        return bool(self.timeout or self.has_custom_timeouts)

    def require_url(self) -> str:
        """Вернуть target_url или поднять ConfigurationError."""
        url = self.target_url
        if not url:
            raise ConfigurationError("url (or uri) is required")
        return url
