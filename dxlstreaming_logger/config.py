# -*- coding: utf-8 -*-
"""Конфигурация логгера DXL Streaming клиента.

Pydantic-based настройки логирования, все поля можно задать через
переменные окружения с префиксом DXLSTREAMING_LOG_.
"""

from __future__ import annotations

import socket
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Поля, значения которых маскируются в логах
DEFAULT_SENSITIVE_FIELDS = [
    "password",
    "token",
    "secret",
    "client_secret",
    "authorization",
    "auth",
    "bearer",
    "access_token",
    "authorization_token",
    "cookie",
    "proxy_password",
]

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggerConfig(BaseSettings):
    """Конфигурация логирования клиента.

    Attributes:
        service_name: Имя приложения, использующего клиент.
        environment: Окружение (development, staging, production).
        log_level: Уровень логирования.
        enable_json: JSON формат вывода.
        enable_console_colors: Цветной вывод в консоли.
        sanitize_fields: Поля для маскировки.
        additional_context: Дополнительные поля для всех логов.
        host: Имя хоста.
        add_caller_info: Добавлять файл и строку вызова.
    """

    model_config = SettingsConfigDict(
        env_prefix="DXLSTREAMING_LOG_",
        case_sensitive=False,
        frozen=True,
    )

    service_name: str = Field(
        default="dxlstreaming-client",
        description="Имя приложения",
        min_length=1,
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Окружение выполнения",
    )

    log_level: str = Field(
        default="INFO",
        description="Уровень логирования",
    )
    enable_json: bool = Field(
        default=True,
        description="Использовать JSON формат",
    )
    enable_console_colors: bool = Field(
        default=False,
        description="Цветной вывод в консоли (только для development)",
    )

    sanitize_fields: list[str] = Field(
        default_factory=lambda: DEFAULT_SENSITIVE_FIELDS.copy(),
        description="Список полей для маскировки",
    )
    additional_context: dict[str, Any] = Field(
        default_factory=dict,
        description="Дополнительные поля для всех логов",
    )

    host: str = Field(
        default_factory=lambda: socket.gethostname(),
        description="Имя хоста",
    )
    add_caller_info: bool = Field(
        default=False,
        description="Добавлять информацию о файле и строке (замедляет работу)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Валидация уровня логирования.

        Raises:
            ValueError: Если уровень логирования невалиден.
        """
        v_upper = v.upper()
        if v_upper not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of {LOG_LEVELS}"
            )
        return v_upper

    @field_validator("sanitize_fields")
    @classmethod
    def validate_sanitize_fields(cls, v: list[str]) -> list[str]:
        """Приводит имена чувствительных полей к нижнему регистру."""
        return [field.lower() for field in v]
