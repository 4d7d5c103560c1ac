from __future__ import annotations

import os
import ssl
from enum import Enum

# Маркер PEM данных: строка сертификатов, а не путь к файлу
PEM_MARKER = "-----BEGIN CERTIFICATE-----"


class HTTPMethod(Enum):
    """HTTP-методы, которые использует API сервиса потоков."""

    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"

    @classmethod
    def list_methods(cls) -> list[str]:
        """Возвращает список всех поддерживаемых HTTP-методов.

        Returns:
            list[str]: Список строковых значений HTTP-методов.
        """
        return [method.value for method in cls]


def join_url(base: str, path: str) -> str:
    """Склеивает базовый URL и путь без двойных слэшей.

    Examples:
        >>> join_url("http://host:8080/", "/databus/consumer-service/v1/consumers")
        'http://host:8080/databus/consumer-service/v1/consumers'
    """
    if not path:
        return base
    return base.rstrip("/") + "/" + path.lstrip("/")


def describe_request(
    method: str, url: str, http_version: str = "HTTP/1.1"
) -> str:
    """Строка запроса для сообщений об ошибках.

    Examples:
        >>> describe_request("POST", "http://localhost:8080/produce")
        'POST http://localhost:8080/produce HTTP/1.1'
    """
    return f"{method.upper()} {url} {http_version}"


def build_verify(verify_cert_bundle: str | None) -> ssl.SSLContext | bool:
    """Готовит параметр verify для httpx.

    Args:
        verify_cert_bundle: PEM данные доверенных сертификатов или путь к
            файлу с ними. Пустое значение отключает проверку сертификата.

    Returns:
        SSLContext с загруженными сертификатами или False.

    Raises:
        OSError: Если файл не найден.
        ssl.SSLError: Если сертификаты не удалось разобрать.
    """
    if not verify_cert_bundle:
        return False

    if PEM_MARKER in verify_cert_bundle:
        return ssl.create_default_context(cadata=verify_cert_bundle)

    if not os.path.isfile(verify_cert_bundle):
        raise FileNotFoundError(
            f"Certificate bundle file not found: {verify_cert_bundle}"
        )
    return ssl.create_default_context(cafile=verify_cert_bundle)
