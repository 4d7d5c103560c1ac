# -*- coding: utf-8 -*-
"""Маскировка чувствительных данных в логах.

Помимо ключей из списка маскируются строковые значения, похожие на
заголовок авторизации (Bearer/Basic), даже если ключ безобидный.
"""

from __future__ import annotations

from typing import Any

from structlog.types import EventDict, WrappedLogger

REDACTED_PLACEHOLDER = "[REDACTED]"

_AUTH_SCHEMES = ("bearer ", "basic ")


def sanitize_value(
    value: Any,
    sensitive_fields: set[str],
) -> Any:
    """Рекурсивно маскирует чувствительные поля.

    Args:
        value: Значение для обработки.
        sensitive_fields: Set чувствительных полей (lowercase).

    Returns:
        Значение с замаскированными полями.

    Examples:
        >>> sanitize_value({"password": "secret"}, {"password"})
        {'password': '[REDACTED]'}
        >>> sanitize_value({"headers": {"Authorization": "x"}}, {"authorization"})
        {'headers': {'Authorization': '[REDACTED]'}}
        >>> sanitize_value("Bearer abc", set())
        '[REDACTED]'
    """
    if isinstance(value, dict):
        return {
            key: (
                REDACTED_PLACEHOLDER
                if isinstance(key, str) and key.lower() in sensitive_fields
                else sanitize_value(val, sensitive_fields)
            )
            for key, val in value.items()
        }
    elif isinstance(value, (list, tuple)):
        return type(value)(
            sanitize_value(item, sensitive_fields) for item in value
        )
    elif isinstance(value, str) and value.lower().startswith(_AUTH_SCHEMES):
        return REDACTED_PLACEHOLDER
    return value


def create_sanitizer(sensitive_fields: list[str]):
    """Создает функцию маскировки с закешированным set полей.

    Examples:
        >>> sanitizer = create_sanitizer(["password"])
        >>> sanitizer({"password": "secret", "username": "john"})
        {'password': '[REDACTED]', 'username': 'john'}
    """
    sensitive_set = {field.lower() for field in sensitive_fields}

    def sanitizer(data: Any) -> Any:
        return sanitize_value(data, sensitive_set)

    return sanitizer


def create_sanitizer_processor(sensitive_fields: list[str]):
    """Создает structlog процессор маскировки.

    Args:
        sensitive_fields: Список чувствительных полей.

    Returns:
        Процессор функция.
    """
    sanitizer = create_sanitizer(sensitive_fields)

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return sanitizer(event_dict)

    return processor
