# -*- coding: utf-8 -*-
"""Настройки HTTP транспорта.

Параметры можно переопределить переменными окружения с префиксом
DXLSTREAMING_HTTP_.

Example:
    ```bash
    export DXLSTREAMING_HTTP_CONNECT_TIMEOUT_SECONDS=10
    export DXLSTREAMING_HTTP_READ_TIMEOUT_SECONDS=15
    ```
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransportConfig(BaseSettings):
    """Таймауты и поведение HTTP клиента.

    Таймауты фиксированы на время жизни соединения; единственное
    исключение - long-poll запрос записей, к таймауту чтения которого
    прибавляется запрошенное время ожидания на сервере.
    """

    model_config = SettingsConfigDict(
        env_prefix="DXLSTREAMING_HTTP_",
        frozen=True,
    )

    connect_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Таймаут установки соединения (с)"
    )
    read_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Таймаут чтения ответа (с)"
    )
    follow_redirects: bool = Field(
        default=False, description="Следовать ли редиректам"
    )
    max_connections: int = Field(
        default=10, gt=0, description="Размер пула соединений"
    )
