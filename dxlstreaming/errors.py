"""
Ошибки клиента сервиса потоков.

Иерархия:
    ClientError
    ├── ConsumerError   - сервис больше не знает этот consumer (404), лечится пересозданием
    ├── PermanentError  - некорректный запрос или нарушение предусловий, повтор не поможет
    ├── TemporaryError  - авторизация, конфликт, сбой сервера или транспорта, можно повторить
    └── StopError       - не удалось дождаться остановки run-цикла
"""

from __future__ import annotations

from enum import Enum


class ClientError(Exception):
    """Базовая ошибка клиента.

    Attributes:
        message: Текст ошибки.
        status_code: HTTP статус; 0 если статус неприменим.
        cause: Исходное исключение.
        api: Имя операции, в которой произошла ошибка (create, consume, run...).
        request: Описание HTTP запроса, например
            ``POST http://host/databus/cloudproxy/v1/produce HTTP/1.1``.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        cause: BaseException | None = None,
        api: str = "",
        request: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.cause = cause
        self.api = api
        self.request = request

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"status_code={self.status_code}, api={self.api!r})"
        )


class ConsumerError(ClientError):
    """Consumer instance не найден на сервисе."""


class PermanentError(ClientError):
    """Ошибка, которую бессмысленно повторять."""


class TemporaryError(ClientError):
    """Временная ошибка, запрос можно повторить."""


class StopError(ClientError):
    """Сбой ожидания остановки run-цикла."""


class ErrorType(Enum):
    """Класс ошибки, в который отображается HTTP статус."""

    CONSUMER = ConsumerError
    PERMANENT = PermanentError
    TEMPORARY = TemporaryError

    def create(
        self,
        message: str,
        status_code: int = 0,
        cause: BaseException | None = None,
        api: str = "",
        request: str | None = None,
    ) -> ClientError:
        return self.value(
            message,
            status_code=status_code,
            cause=cause,
            api=api,
            request=request,
        )
