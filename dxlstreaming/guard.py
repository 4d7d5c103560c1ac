"""Неблокирующая реентерабельная защита канала от доступа из нескольких потоков."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from .errors import TemporaryError


class AccessGuard:
    """Владение каналом одним потоком.

    Свободный guard захватывается вызывающим потоком; поток-владелец может
    входить повторно (run вызывает subscribe/consume/commit); любой другой
    поток сразу получает TemporaryError вместо ожидания. Guard освобождается,
    когда завершается самый внешний вызов потока-владельца.

    Example:
        ```python
        guard = AccessGuard()
        with guard.hold("consume"):
            ...
        ```
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: Optional[int] = None
        self._depth = 0

    @property
    def owner(self) -> Optional[int]:
        """Идентификатор потока-владельца или None."""
        return self._owner

    @property
    def depth(self) -> int:
        return self._depth

    def acquire(self, api: str = "") -> None:
        """Захватывает guard для текущего потока.

        Raises:
            TemporaryError: Если guard удерживает другой поток.
        """
        ident = threading.get_ident()
        with self._lock:
            if self._owner is None or self._owner == ident:
                self._owner = ident
                self._depth += 1
                return
        raise TemporaryError(
            "Channel is in use by another thread; concurrent access is not supported",
            api=api,
        )

    def release(self) -> None:
        """Освобождает один уровень вложенности.

        Raises:
            RuntimeError: Если текущий поток не владеет guard.
        """
        with self._lock:
            if self._owner != threading.get_ident():
                raise RuntimeError("Cannot release a guard owned by another thread")
            self._depth -= 1
            if self._depth == 0:
                self._owner = None

    @contextmanager
    def hold(self, api: str = "") -> Iterator[None]:
        self.acquire(api)
        try:
            yield
        finally:
            self.release()
