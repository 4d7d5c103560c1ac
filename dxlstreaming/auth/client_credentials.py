"""Аутентификация по OAuth client credentials."""

from __future__ import annotations

from typing import Optional

import httpx
from dxlstreaming_apiclient import HttpConnection, TransportConfig

from ..config import HttpProxySettings
from ..errors import PermanentError
from .base import CachedTokenAuth

DEFAULT_TOKEN_PATH_FRAGMENT = "/iam/v1.4/token"
DEFAULT_GRANT_TYPE = "client_credentials"


class ChannelAuthClientCredentialSecret(CachedTokenAuth):
    """Получает access token POST-запросом формы с HTTP Basic авторизацией.

    Поля формы: grant_type, audience, scope (пустые не отправляются).
    """

    TOKEN_KEYS = ("access_token", "Access_Token")

    def __init__(
        self,
        base: str,
        client_id: str,
        client_secret: str,
        audience: Optional[str] = None,
        grant_type: Optional[str] = DEFAULT_GRANT_TYPE,
        scope: Optional[str] = None,
        path_fragment: Optional[str] = None,
        verify_cert_bundle: str = "",
        http_proxy: Optional[HttpProxySettings] = None,
        transport_config: Optional[TransportConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(
            base,
            path_fragment or DEFAULT_TOKEN_PATH_FRAGMENT,
            verify_cert_bundle=verify_cert_bundle,
            http_proxy=http_proxy,
            transport_config=transport_config,
            transport=transport,
        )
        if not client_id:
            raise PermanentError("Client ID may not be empty")
        if client_secret is None:
            raise PermanentError("Client secret may not be None")
        self.client_id = client_id
        self.client_secret = client_secret
        self.audience = audience
        self.grant_type = grant_type
        self.scope = scope

    def form_fields(self) -> dict[str, str]:
        fields = {
            "grant_type": self.grant_type,
            "audience": self.audience,
            "scope": self.scope,
        }
        return {key: value for key, value in fields.items() if value}

    def _send_token_request(self, connection: HttpConnection) -> httpx.Response:
        return connection.post(
            self.path_fragment,
            data=self.form_fields(),
            auth=httpx.BasicAuth(self.client_id, self.client_secret),
        )


def get_token(
    base: str,
    client_id: str,
    client_secret: str,
    audience: Optional[str] = None,
    grant_type: Optional[str] = DEFAULT_GRANT_TYPE,
    scope: Optional[str] = None,
    path_fragment: Optional[str] = None,
    verify_cert_bundle: str = "",
    http_proxy: Optional[HttpProxySettings] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """Запрашивает и возвращает access token.

    Raises:
        PermanentError: Клиент не авторизован.
        TemporaryError: Сбой сервиса идентификации или транспорта.
    """
    return ChannelAuthClientCredentialSecret(
        base,
        client_id,
        client_secret,
        audience=audience,
        grant_type=grant_type,
        scope=scope,
        path_fragment=path_fragment,
        verify_cert_bundle=verify_cert_bundle,
        http_proxy=http_proxy,
        transport=transport,
    ).fetch_token()
