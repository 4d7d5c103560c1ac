"""Ошибки транспортного уровня."""

from __future__ import annotations


class TransportError(Exception):
    """Запрос не удалось выполнить: соединение, TLS, таймаут, обрыв потока.

    Attributes:
        message: Текст ошибки.
        cause: Исходное исключение httpx.
        request: Описание запроса вида ``GET http://host/path HTTP/1.1``.
    """

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        request: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.request = request
