"""Аутентификация логином и паролем через сервис идентификации."""

from __future__ import annotations

from typing import Optional

import httpx
from dxlstreaming_apiclient import HttpConnection, TransportConfig

from ..config import HttpProxySettings
from ..errors import PermanentError
from .base import CachedTokenAuth

DEFAULT_LOGIN_PATH_FRAGMENT = "/identity/v1/login"


class ChannelAuthUserPass(CachedTokenAuth):
    """Получает токен GET-запросом с HTTP Basic авторизацией.

    Example:
        ```python
        auth = ChannelAuthUserPass(
            "https://identity.example.com", "me", "secret",
            verify_cert_bundle="/etc/ssl/ca.pem",
        )
        ```
    """

    TOKEN_KEYS = ("AuthorizationToken", "authorizationToken")

    def __init__(
        self,
        base: str,
        username: str,
        password: str,
        path_fragment: Optional[str] = None,
        verify_cert_bundle: str = "",
        http_proxy: Optional[HttpProxySettings] = None,
        transport_config: Optional[TransportConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Инициализация.

        Args:
            base: Базовый URL сервиса идентификации.
            username: Имя пользователя.
            password: Пароль.
            path_fragment: Путь логина; по умолчанию /identity/v1/login.
            verify_cert_bundle: PEM данные или путь к файлу сертификатов.
            http_proxy: Настройки прокси.
            transport_config: Таймауты транспорта.
            transport: Подменный транспорт httpx (для тестов).

        Raises:
            PermanentError: Если base или username пустые, или password None.
        """
        super().__init__(
            base,
            path_fragment or DEFAULT_LOGIN_PATH_FRAGMENT,
            verify_cert_bundle=verify_cert_bundle,
            http_proxy=http_proxy,
            transport_config=transport_config,
            transport=transport,
        )
        if not username:
            raise PermanentError("Username may not be empty")
        if password is None:
            raise PermanentError("Password may not be None")
        self.username = username
        self.password = password

    def _send_token_request(self, connection: HttpConnection) -> httpx.Response:
        return connection.get(
            self.path_fragment,
            auth=httpx.BasicAuth(self.username, self.password),
        )


def login(
    base: str,
    username: str,
    password: str,
    path_fragment: Optional[str] = None,
    verify_cert_bundle: str = "",
    http_proxy: Optional[HttpProxySettings] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """Выполняет логин и возвращает токен.

    Raises:
        PermanentError: Неверные учетные данные.
        TemporaryError: Сбой сервиса идентификации или транспорта.
    """
    return ChannelAuthUserPass(
        base,
        username,
        password,
        path_fragment=path_fragment,
        verify_cert_bundle=verify_cert_bundle,
        http_proxy=http_proxy,
        transport=transport,
    ).fetch_token()
