# -*- coding: utf-8 -*-
"""DXL Streaming Logger - структурированное логирование клиента.

Основные возможности:
- Структурированное логирование на базе structlog
- Контекст consumer_group / consumer_id / run_id через ContextVars
- Маскировка токенов, паролей и заголовков авторизации
- JSON и Console форматтеры

Quick Start:
    >>> from dxlstreaming_logger import configure_logging, get_logger
    >>> configure_logging(service_name="alerts-consumer", log_level="INFO")
    >>> logger = get_logger(__name__)
    >>> logger.info("records_processed", count=10)

Context Management:
    >>> from dxlstreaming_logger import bind_context
    >>> with bind_context(consumer_group="cg1", topic="case-mgmt-events"):
    ...     logger.info("processing")  # содержит consumer_group и topic
"""

from __future__ import annotations

from .config import LoggerConfig
from .context import (
    bind_context,
    clear_all_context,
    generate_run_id,
    get_consumer_group,
    get_consumer_id,
    get_current_context,
    get_custom_context,
    get_run_id,
    set_consumer_group,
    set_consumer_id,
    set_custom_context,
    set_run_id,
)
from .logger import (
    configure_logging,
    get_config,
    get_logger,
    is_configured,
    reset_configuration,
)

__version__ = "1.0.0"

__all__ = [
    "__version__",
    # Конфигурация
    "LoggerConfig",
    "configure_logging",
    "get_config",
    "is_configured",
    "reset_configuration",
    # Core API
    "get_logger",
    # Context Management
    "bind_context",
    "get_current_context",
    "clear_all_context",
    "set_consumer_group",
    "get_consumer_group",
    "set_consumer_id",
    "get_consumer_id",
    "generate_run_id",
    "set_run_id",
    "get_run_id",
    "set_custom_context",
    "get_custom_context",
]
