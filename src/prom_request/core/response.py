"""Successful (or inspected) HTTP response handed to callers."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .exceptions import OutcomeKind
from .utils import is_ok


@dataclass
class Response:
    """
    Ответ транспорта.

    Attributes:
        status_code: HTTP статус
        headers: Заголовки ответа
        body: Распарсенный JSON, текст или None (streaming / пустой JSON ответ)
        url: URL запроса
        raw: Исходный httpx.Response
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    url: str = ""
    raw: Optional[Any] = field(default=None, repr=False)

    kind = OutcomeKind.SUCCESS

    @property
    def ok(self) -> bool:
        return is_ok(self.status_code)
