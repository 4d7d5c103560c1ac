# -*- coding: utf-8 -*-
"""Форматтеры для вывода логов."""

from __future__ import annotations

from .output import ConsoleFormatter, JSONFormatter, get_formatter

__all__ = [
    "JSONFormatter",
    "ConsoleFormatter",
    "get_formatter",
]
