# -*- coding: utf-8 -*-
"""Ядро системы логирования клиента.

Логи пишутся в stderr: stdout принадлежит приложению (в частности CLI
печатает туда результат операции).
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Any

import structlog
from structlog.typing import FilteringBoundLogger

from .config import LoggerConfig
from .formatters import get_formatter
from .processors import (
    add_caller_info,
    add_contextvars_context,
    add_exception_info,
    add_log_level,
    add_timestamp,
    create_sanitizer_processor,
    create_service_context_processor,
    order_fields,
)

_global_config: LoggerConfig | None = None
_is_configured: bool = False
_is_default_config: bool = False
_config_lock = threading.Lock()

# Сторонние логгеры, которые шумят на уровне DEBUG/INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "urllib3")


def _apply_default_config() -> None:
    """Применяет базовую конфигурацию при первом get_logger().

    Позволяет пользоваться клиентом без явного configure_logging().
    """
    global _global_config, _is_configured, _is_default_config

    with _config_lock:
        if _is_configured:
            return

        default_config = LoggerConfig()
        _global_config = default_config
        _configure_stdlib_logging(default_config)
        _configure_structlog(default_config)

        _is_configured = True
        _is_default_config = True


def configure_logging(
    config: LoggerConfig | None = None,
    **kwargs: Any,
) -> None:
    """Глобальная конфигурация логирования.

    Вызывается один раз при старте приложения. Если не вызвана, при первом
    get_logger() применяется базовая конфигурация, которую этот вызов
    заменит.

    Args:
        config: Объект LoggerConfig или None для создания из kwargs.
        **kwargs: Параметры LoggerConfig если config=None.

    Examples:
        >>> configure_logging(service_name="alerts-consumer", log_level="DEBUG")

    Raises:
        RuntimeError: Если логирование уже было сконфигурировано явно.
    """
    global _global_config, _is_configured, _is_default_config

    with _config_lock:
        if _is_configured and not _is_default_config:
            raise RuntimeError(
                "Logging уже был сконфигурирован. "
                "configure_logging() должен вызываться только один раз."
            )

        if _is_default_config:
            structlog.reset_defaults()

        if config is None:
            config = LoggerConfig(**kwargs)

        _global_config = config
        _configure_stdlib_logging(config)
        _configure_structlog(config)

        _is_configured = True
        _is_default_config = False


def _configure_stdlib_logging(config: LoggerConfig) -> None:
    """Настраивает стандартный logging для сторонних библиотек."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=config.log_level,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _configure_structlog(config: LoggerConfig) -> None:
    processors: list[Any] = [
        add_log_level,
        add_timestamp,
        create_service_context_processor(
            service_name=config.service_name,
            environment=config.environment,
            host=config.host,
            additional_context=config.additional_context,
        ),
        add_contextvars_context,
        add_exception_info,
        create_sanitizer_processor(config.sanitize_fields),
        *([add_caller_info] if config.add_caller_info else []),
        order_fields,
        get_formatter(
            enable_json=config.enable_json,
            enable_colors=config.enable_console_colors,
        ),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Получить сконфигурированный логгер.

    Args:
        name: Имя логгера (обычно __name__ модуля).

    Returns:
        structlog logger.

    Examples:
        >>> logger = get_logger(__name__)
        >>> logger.info("channel.consumer_created", consumer_id="abc")
    """
    if not _is_configured:
        _apply_default_config()

    name = name or "dxlstreaming"
    return structlog.get_logger(name, logger_name=name)


def get_config() -> LoggerConfig:
    """Получить текущую конфигурацию логирования.

    Raises:
        RuntimeError: Если логирование не было сконфигурировано.
    """
    if _global_config is None:
        raise RuntimeError(
            "Logging не сконфигурирован. "
            "Сначала вызовите configure_logging()."
        )
    return _global_config


def is_configured() -> bool:
    return _is_configured


def reset_configuration() -> None:
    """Сбросить конфигурацию логирования.

    ВНИМАНИЕ: Используется только для тестов!
    """
    global _global_config, _is_configured, _is_default_config
    with _config_lock:
        _global_config = None
        _is_configured = False
        _is_default_config = False
        structlog.reset_defaults()
