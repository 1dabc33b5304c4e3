"""
Исключения prom-request.

Каждый исход запроса помечен OutcomeKind:
- SUCCESS - ответ получен и пригоден (см. Response)
- RESPONSE_FAILURE - ответ получен, но непригоден (ResponseError)
- CONNECTION_FAILURE - пригодного ответа нет (ConnectionError)
- CONFIGURATION_ERROR - ошибка программиста (ConfigurationError)

Все классы ошибок наследуются напрямую от PromRequestException,
без промежуточных уровней.
"""

from enum import Enum
from typing import Any, Optional

# Коды таймаутов транспорта
CONNECT_TIMEOUT_CODE = "ETIMEDOUT"
SOCKET_TIMEOUT_CODE = "ESOCKETTIMEDOUT"
TIMEOUT_CODES = frozenset({CONNECT_TIMEOUT_CODE, SOCKET_TIMEOUT_CODE})

ABORTED_CODE = "ECONNABORTED"

CONFLICTING_TIMEOUTS_MESSAGE = (
    "Can't use socketTimeout/connectTimeout in conjuction with timeout"
)


class OutcomeKind(str, Enum):
    """Тип исхода запроса."""
    SUCCESS = "success"
    RESPONSE_FAILURE = "response_failure"
    CONNECTION_FAILURE = "connection_failure"
    CONFIGURATION_ERROR = "configuration_error"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class PromRequestException(Exception):
    """Базовое исключение prom-request."""

    kind: Optional[OutcomeKind] = None

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ИСХОДЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ConfigurationError(PromRequestException):
    """
    Ошибка конфигурации запроса.

    Поднимается синхронно, до любой сетевой активности.
    Никогда не ретраится.
    """
    kind = OutcomeKind.CONFIGURATION_ERROR


class ResponseError(PromRequestException):
    """
    Ответ получен, но непригоден.

    Примеры:
    - статус вне 2xx
    - ожидался JSON объект/массив, пришло что-то другое

    Args:
        message: Сообщение об ошибке
        response: Исходный ответ (Response) для анализа вызывающим кодом
    """
    kind = OutcomeKind.RESPONSE_FAILURE

    def __init__(self, message: str, response: Any):
        self.response = response
        self.status_code: Optional[int] = getattr(response, "status_code", None)
        super().__init__(message)


class ConnectionError(PromRequestException):
    """
    Пригодного ответа нет: сетевая ошибка или таймаут.

    Args:
        message: Сообщение об ошибке
        code: Код ошибки (например ESOCKETTIMEDOUT)
        connect: True - сработал connect таймаут, False - socket таймаут,
            None - не таймаут или неизвестно
    """
    kind = OutcomeKind.CONNECTION_FAILURE

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        connect: Optional[bool] = None
    ):
        self.code = code
        self.connect = connect
        super().__init__(message)

    @property
    def is_timeout(self) -> bool:
        return self.code in TIMEOUT_CODES


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ТРАНСПОРТ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportError(PromRequestException):
    """
    Сырая ошибка транспорта до классификации.

    Args:
        message: Сообщение транспорта
        code: Символьный код (ECONNRESET, ETIMEDOUT, ...) или None
        connect: Маркер таймаута, выставляется только синтетическими ошибками
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        connect: Optional[bool] = None
    ):
        self.code = code
        self.connect = connect
        super().__init__(message)
