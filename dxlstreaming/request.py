"""
Слой запросов: HTTP соединение + аутентификация + классификация ошибок.

Каждый ответ с неуспешным статусом превращается в ConsumerError,
PermanentError или TemporaryError по таблице операции; статусы, которых
нет в таблице, считаются временными. Ответы 401/403 дополнительно
сбрасывают кеш аутентификации, чтобы следующий запрос получил новый токен.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx
from dxlstreaming_apiclient import (
    HttpConnection,
    HTTPMethod,
    TransportConfig,
    TransportError,
    describe_request,
)
from dxlstreaming_logger import get_logger
from dxlstreaming_logger.utils import truncate_string

from .auth import ChannelAuth
from .config import HttpProxySettings
from .datatypes import StickinessCookie
from .errors import ClientError, ErrorType, TemporaryError

logger = get_logger(__name__)

ErrorMap = Mapping[int, ErrorType]

# Статусы, после которых закешированные учетные данные недействительны
AUTH_RESET_STATUS_CODES = (401, 403)


class Request:
    """HTTP сессия одного канала.

    Хранит cookies (включая cookie привязки к экземпляру сервиса) на время
    жизни объекта. При пересоздании consumer канал создает новый Request.
    """

    def __init__(
        self,
        base: str,
        auth: Optional[ChannelAuth],
        verify_cert_bundle: str = "",
        http_proxy: Optional[HttpProxySettings] = None,
        headers: Optional[dict[str, str]] = None,
        transport_config: Optional[TransportConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Инициализация.

        Raises:
            TemporaryError: Если HTTP клиент не удалось создать (например,
                не читается файл сертификатов).
        """
        self.base = base
        self.auth = auth
        try:
            self._connection = HttpConnection(
                base,
                verify_cert_bundle=verify_cert_bundle,
                proxy=http_proxy.proxy_url() if http_proxy else None,
                headers=headers,
                config=transport_config,
                transport=transport,
            )
        except OSError as err:
            raise TemporaryError(
                f"Failed to create http client: {err}", cause=err
            ) from err

    def close(self) -> None:
        self._connection.close()

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    def get_stickiness_cookie(self) -> StickinessCookie:
        cookie = self._connection.get_cookie(
            self._connection.STICKINESS_COOKIE_NAME
        )
        if cookie is None:
            return StickinessCookie()
        value, domain = cookie
        return StickinessCookie(value=value, domain=domain)

    def set_stickiness_cookie(self, cookie: StickinessCookie) -> None:
        self._connection.set_cookie(
            self._connection.STICKINESS_COOKIE_NAME, cookie.value, cookie.domain
        )

    def reset_cookies(self) -> None:
        self._connection.reset_cookies()

    # ------------------------------------------------------------------
    # Запросы
    # ------------------------------------------------------------------

    def post(
        self, path: str, api: str, error_map: ErrorMap, **kwargs: Any
    ) -> httpx.Response:
        return self._execute(HTTPMethod.POST, path, api, error_map, **kwargs)

    def get(
        self, path: str, api: str, error_map: ErrorMap, **kwargs: Any
    ) -> httpx.Response:
        return self._execute(HTTPMethod.GET, path, api, error_map, **kwargs)

    def delete(
        self, path: str, api: str, error_map: ErrorMap, **kwargs: Any
    ) -> httpx.Response:
        return self._execute(HTTPMethod.DELETE, path, api, error_map, **kwargs)

    def _execute(
        self,
        method: HTTPMethod,
        path: str,
        api: str,
        error_map: ErrorMap,
        **kwargs: Any,
    ) -> httpx.Response:
        on_request = self.auth.authenticate if self.auth is not None else None
        try:
            response = self._connection.request(
                method.value, path, on_request=on_request, **kwargs
            )
        except TransportError as err:
            raise TemporaryError(
                f"Unexpected temporary error: {err.message}",
                cause=err.cause or err,
                api=api,
                request=err.request,
            ) from err

        if response.is_success:
            return response

        if response.status_code in AUTH_RESET_STATUS_CODES and self.auth:
            self.auth.reset()

        raise self._to_error(response, api, error_map)

    @staticmethod
    def _to_error(
        response: httpx.Response, api: str, error_map: ErrorMap
    ) -> ClientError:
        status_code = response.status_code
        status_line = (
            f"{response.http_version} {status_code} {response.reason_phrase}"
        )
        error_type = error_map.get(status_code)
        if error_type is None:
            error_type = ErrorType.TEMPORARY
            message = f"Unexpected temporary error: {status_line}"
        else:
            message = f"{response.text}: {status_line}"

        logger.warning(
            "request.failed",
            api=api,
            status_code=status_code,
            error_type=error_type.name,
            response_text=truncate_string(response.text),
        )
        return error_type.create(
            message,
            status_code=status_code,
            api=api,
            request=describe_request(
                response.request.method,
                str(response.request.url),
                response.http_version,
            ),
        )
