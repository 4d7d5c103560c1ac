# -*- coding: utf-8 -*-
"""Процессоры для structlog."""

from __future__ import annotations

from .enrichers import (
    add_caller_info,
    add_contextvars_context,
    add_exception_info,
    add_log_level,
    add_timestamp,
    create_service_context_processor,
    order_fields,
)
from .sanitizers import create_sanitizer, create_sanitizer_processor

__all__ = [
    # Enrichers
    "add_timestamp",
    "add_log_level",
    "create_service_context_processor",
    "add_contextvars_context",
    "add_exception_info",
    "add_caller_info",
    "order_fields",
    # Sanitizers
    "create_sanitizer",
    "create_sanitizer_processor",
]
