# -*- coding: utf-8 -*-
"""Процессоры structlog для обогащения записей метаданными."""

from __future__ import annotations

import datetime
import inspect
from typing import Any

from structlog.types import EventDict, WrappedLogger

from ..context.manager import get_current_context
from ..utils import format_exception_info

# Порядок полей в итоговой записи
PRIORITY_FIELDS = [
    "timestamp",
    "level",
    "event",
    "logger_name",
    "service",
    "environment",
    "host",
    "consumer_group",
    "consumer_id",
    "run_id",
    "api",
]


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Добавляет ISO 8601 timestamp в UTC."""
    event_dict["timestamp"] = datetime.datetime.now(
        datetime.timezone.utc
    ).isoformat()
    return event_dict


def add_log_level(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict["level"] = method_name
    return event_dict


def create_service_context_processor(
    service_name: str,
    environment: str,
    host: str,
    additional_context: dict[str, Any] | None = None,
):
    """Создает процессор, добавляющий статический контекст приложения.

    Args:
        service_name: Имя приложения.
        environment: Окружение.
        host: Имя хоста.
        additional_context: Дополнительные поля.

    Returns:
        Процессор функция.
    """
    static_context = {
        "service": service_name,
        "environment": environment,
        "host": host,
    }
    if additional_context:
        static_context.update(additional_context)

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        for key, value in static_context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def add_contextvars_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Добавляет поля из ContextVars (consumer_group, run_id и т.д.).

    Явно переданные в вызов логгера поля имеют приоритет над контекстом.
    """
    for key, value in get_current_context().items():
        event_dict.setdefault(key, value)
    return event_dict


def add_exception_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Заменяет exc_info структурированным описанием исключения."""
    exc_info = event_dict.pop("exc_info", None)
    if not exc_info:
        return event_dict

    if exc_info is True:
        exc_data = format_exception_info()
    elif isinstance(exc_info, BaseException):
        exc_data = format_exception_info(
            (type(exc_info), exc_info, exc_info.__traceback__)
        )
    else:
        exc_data = format_exception_info(exc_info)

    if exc_data:
        event_dict["exception"] = exc_data
    return event_dict


def add_caller_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Добавляет файл, строку и функцию места вызова.

    ВНИМАНИЕ: замедляет работу, использовать только для отладки.
    """
    frame = inspect.currentframe()
    if frame is None:
        return event_dict

    try:
        caller_frame = frame
        for _ in range(10):
            caller_frame = caller_frame.f_back
            if caller_frame is None:
                break

            filename = caller_frame.f_code.co_filename
            if (
                "structlog" not in filename
                and "dxlstreaming_logger" not in filename
            ):
                event_dict["caller"] = {
                    "file": filename,
                    "line": caller_frame.f_lineno,
                    "function": caller_frame.f_code.co_name,
                }
                break
    finally:
        del frame

    return event_dict


def order_fields(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Ставит приоритетные поля в начало записи."""
    ordered: EventDict = {
        field: event_dict[field]
        for field in PRIORITY_FIELDS
        if field in event_dict
    }
    for key, value in event_dict.items():
        if key not in ordered:
            ordered[key] = value
    return ordered
