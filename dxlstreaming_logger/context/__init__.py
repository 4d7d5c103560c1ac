# -*- coding: utf-8 -*-
"""Управление контекстом логирования."""

from __future__ import annotations

from .manager import (
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

__all__ = [
    "bind_context",
    "get_current_context",
    "clear_all_context",
    # Consumer
    "set_consumer_group",
    "get_consumer_group",
    "set_consumer_id",
    "get_consumer_id",
    # Run
    "generate_run_id",
    "set_run_id",
    "get_run_id",
    # Custom Context
    "set_custom_context",
    "get_custom_context",
]
