"""
Таймеры запроса.

Каждый таймер - маленькая машина состояний:

    IDLE -> ARMED -> CANCELLED
                  -> FIRED

Переходы необратимы: отменённый или сработавший таймер нельзя
перевзвести, повторная отмена - no-op.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional


class TimerState(str, Enum):
    """Состояние таймера."""
    IDLE = "idle"
    ARMED = "armed"
    CANCELLED = "cancelled"
    FIRED = "fired"


class Timer:
    """
    Одноразовый таймер поверх loop.call_later.

    Args:
        delay_ms: Задержка в миллисекундах
        callback: Вызывается без аргументов при срабатывании
        name: Имя для логов и repr

    Example:
        >>> timer = Timer(10, on_timeout, name="connect")
        >>> timer.arm()
        >>> timer.cancel()
        >>> timer.state
        <TimerState.CANCELLED: 'cancelled'>
    """

    def __init__(
        self,
        delay_ms: float,
        callback: Callable[[], None],
        name: str = "timer",
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        self.delay_ms = delay_ms
        self.name = name
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._state = TimerState.IDLE

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def armed(self) -> bool:
        return self._state is TimerState.ARMED

    def arm(self) -> bool:
        """Взвести таймер. Возвращает False, если он уже не в IDLE."""
        if self._state is not TimerState.IDLE:
            return False

        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_ms / 1000, self._fire)
        self._state = TimerState.ARMED
        return True

    def cancel(self) -> bool:
        """
        Отменить таймер.

        IDLE таймер тоже переходит в CANCELLED, чтобы поздний arm()
        не взвёл его после завершения запроса.
        """
        if self._state not in (TimerState.IDLE, TimerState.ARMED):
            return False

        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._state = TimerState.CANCELLED
        return True

    def _fire(self) -> None:
        if self._state is not TimerState.ARMED:
            return
        self._handle = None
        self._state = TimerState.FIRED
        self._callback()

    def __repr__(self) -> str:
        return f"<Timer {self.name} {self.delay_ms}ms {self._state.value}>"
