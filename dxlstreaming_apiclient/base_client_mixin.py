from __future__ import annotations

from abc import ABC
from typing import Any, NoReturn, Tuple

import httpx

from .exceptions import TransportError
from .helpers import describe_request


class ApiClientAbstract(ABC):
    """Общие настройки и обработка ошибок HTTP клиентов.

    Атрибуты:
        STICKINESS_COOKIE_NAME: Cookie балансировщика, привязывающая запросы
            к экземпляру сервиса, на котором создан consumer.
        TIMEOUT_EXCEPTIONS: Ошибки таймаута (логируются как warning).
        CONNECTION_EXCEPTIONS: Ошибки установки соединения.
        DEFAULT_HEADERS: Заголовки всех запросов.
    """

    STICKINESS_COOKIE_NAME: str = "AWSALB"
    TIMEOUT_EXCEPTIONS: Tuple = (
        httpx.ConnectTimeout,
        httpx.ReadTimeout,
        httpx.WriteTimeout,
        httpx.PoolTimeout,
    )
    CONNECTION_EXCEPTIONS: Tuple = (
        httpx.ConnectError,
        httpx.RemoteProtocolError,
        httpx.ReadError,
        httpx.WriteError,
    )
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json",
    }

    def _handle_exception(
        self,
        logger: Any,
        err: Exception,
        url: str,
        method: str,
    ) -> NoReturn:
        """Логирует сбой запроса и поднимает TransportError.

        Таймауты и обрывы соединения логируются как warning: для вызывающего
        кода это временная ошибка, которую можно повторить. Прочие ошибки
        httpx логируются как error.

        Аргументы:
            logger: Логгер для структурированного логирования.
            err: Исключение, возникшее во время выполнения запроса.
            url: URL запроса.
            method: HTTP метод.

        Raises:
            TransportError: Всегда, с исходной ошибкой в cause.
        """
        request = describe_request(method, url)

        if isinstance(err, self.TIMEOUT_EXCEPTIONS):
            logger.warning(
                "transport.timeout",
                exception_type=type(err).__name__,
                url=url,
                method=method,
            )
        elif isinstance(err, self.CONNECTION_EXCEPTIONS):
            logger.warning(
                "transport.connection_error",
                exception_type=type(err).__name__,
                error=str(err),
                url=url,
                method=method,
            )
        else:
            logger.error(
                "transport.request_error",
                exception_type=type(err).__name__,
                error=str(err),
                url=url,
                method=method,
            )

        raise TransportError(
            f"Failed to execute {request}: {type(err).__name__}: {err}",
            cause=err,
            request=request,
        ) from err
