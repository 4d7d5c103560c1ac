"""
Контракт аутентификации запросов к сервису потоков.

Стратегия получает каждый исходящий запрос до отправки и добавляет в него
учетные данные; reset() сбрасывает закешированные данные, чтобы следующий
запрос прошел аутентификацию заново (вызывается при ответах 401/403).
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from dxlstreaming_apiclient import (
    HttpConnection,
    TransportConfig,
    TransportError,
)
from dxlstreaming_logger import get_logger

from ..config import HttpProxySettings
from ..errors import PermanentError, TemporaryError

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "Authorization"


class ChannelAuth(ABC):
    """Стратегия аутентификации канала."""

    @abstractmethod
    def authenticate(self, request: httpx.Request) -> None:
        """Добавляет учетные данные в запрос.

        Raises:
            PermanentError: Учетные данные отвергнуты.
            TemporaryError: Временный сбой получения учетных данных.
        """

    @abstractmethod
    def reset(self) -> None:
        """Сбрасывает закешированные учетные данные."""


def set_bearer_token(request: httpx.Request, token: str) -> None:
    request.headers[AUTHORIZATION_HEADER] = f"Bearer {token}"


class CachedTokenAuth(ChannelAuth):
    """Аутентификация токеном, который выдает сервис идентификации.

    Токен запрашивается при первом запросе и кешируется до reset().
    Получение токена сериализовано: параллельные запросы одного канала не
    порождают параллельных логинов.
    """

    # Ключи JSON ответа, в которых может прийти токен (по порядку)
    TOKEN_KEYS: tuple[str, ...] = ()

    def __init__(
        self,
        base: str,
        path_fragment: str,
        verify_cert_bundle: str = "",
        http_proxy: Optional[HttpProxySettings] = None,
        transport_config: Optional[TransportConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base:
            raise PermanentError("Base URL may not be empty")
        self.base = base
        self.path_fragment = path_fragment
        self.verify_cert_bundle = verify_cert_bundle
        self.http_proxy = http_proxy
        self.transport_config = transport_config
        self.transport = transport
        self._token: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def token(self) -> Optional[str]:
        return self._token

    def authenticate(self, request: httpx.Request) -> None:
        with self._lock:
            if self._token is None:
                self._token = self.fetch_token()
            token = self._token
        set_bearer_token(request, token)

    def reset(self) -> None:
        with self._lock:
            self._token = None
        logger.debug("auth.token_reset", auth=type(self).__name__)

    def fetch_token(self) -> str:
        """Запрашивает новый токен у сервиса идентификации.

        Raises:
            PermanentError: 401/403 от сервиса идентификации.
            TemporaryError: Прочие ошибки статуса, разбора ответа и транспорта.
        """
        proxy = self.http_proxy.proxy_url() if self.http_proxy else None
        try:
            with HttpConnection(
                self.base,
                verify_cert_bundle=self.verify_cert_bundle,
                proxy=proxy,
                config=self.transport_config,
                transport=self.transport,
            ) as connection:
                response = self._send_token_request(connection)
        except TransportError as err:
            raise TemporaryError(
                f"Unexpected error: {err.message}",
                cause=err.cause,
                api="login",
                request=err.request,
            ) from err
        except OSError as err:
            raise TemporaryError(
                f"Failed to create http client: {err}", cause=err, api="login"
            ) from err

        token = self._parse_token(response)
        logger.info(
            "auth.token_acquired",
            auth=type(self).__name__,
            url=str(response.request.url),
        )
        return token

    @abstractmethod
    def _send_token_request(self, connection: HttpConnection) -> httpx.Response:
        """Отправляет запрос токена через подготовленное соединение."""

    def _parse_token(self, response: httpx.Response) -> str:
        status_code = response.status_code
        if status_code in (401, 403):
            raise PermanentError(
                f"Unauthorized {status_code}: {response.text}",
                status_code=status_code,
                api="login",
            )
        if not response.is_success:
            raise TemporaryError(
                f"Unexpected status code {status_code}: {response.text}",
                status_code=status_code,
                api="login",
            )

        try:
            body: Any = response.json()
        except ValueError as err:
            raise TemporaryError(
                f"Error while parsing response: {err}",
                status_code=status_code,
                cause=err,
                api="login",
            ) from err

        if isinstance(body, dict):
            for key in self.TOKEN_KEYS:
                token = body.get(key)
                if token:
                    return str(token)

        raise TemporaryError(
            f"Token not found in response: {response.text}",
            status_code=status_code,
            api="login",
        )
