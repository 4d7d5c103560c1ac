# -*- coding: utf-8 -*-
"""Вспомогательные функции."""

from __future__ import annotations

import sys
import traceback
from typing import Any

# Ограничение на длину тел HTTP ответов, попадающих в логи
MAX_BODY_LOG_LENGTH = 1000


def format_exception_info(exc_info: tuple | None = None) -> dict[str, Any]:
    """Форматирует информацию об исключении в структурированный вид.

    Для ошибок клиента (ClientError) дополнительно выносит api и status_code.

    Args:
        exc_info: Tuple (type, value, traceback) или None для использования
            sys.exc_info().

    Returns:
        Словарь с информацией об исключении.
    """
    if exc_info is None:
        exc_info = sys.exc_info()

    exc_type, exc_value, exc_traceback = exc_info

    if exc_type is None or exc_value is None:
        return {}

    tb_lines = traceback.format_exception(exc_type, exc_value, exc_traceback)

    info: dict[str, Any] = {
        "type": exc_type.__name__,
        "message": str(exc_value),
        "traceback": [line.rstrip() for line in tb_lines],
        "module": exc_type.__module__ if exc_type.__module__ else None,
    }
    for attr in ("api", "status_code"):
        value = getattr(exc_value, attr, None)
        if value is not None:
            info[attr] = value
    return info


def truncate_string(value: str, max_length: int = MAX_BODY_LOG_LENGTH) -> str:
    """Обрезает строку до максимальной длины.

    Examples:
        >>> truncate_string("hello world", 5)
        'hello...[truncated]'
        >>> truncate_string("hello", 10)
        'hello'
    """
    if len(value) <= max_length:
        return value
    return f"{value[:max_length]}...[truncated]"
