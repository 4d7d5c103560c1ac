# -*- coding: utf-8 -*-
"""Форматтеры вывода логов: JSON для production и консольный для отладки."""

from __future__ import annotations

import json
from typing import Any

from structlog.types import EventDict


class JSONFormatter:
    """Однострочный JSON для каждого события."""

    def __init__(self, indent: int | None = None, sort_keys: bool = False):
        self.indent = indent
        self.sort_keys = sort_keys

    def __call__(
        self, logger: Any, method_name: str, event_dict: EventDict
    ) -> str:
        return json.dumps(
            event_dict,
            indent=self.indent,
            sort_keys=self.sort_keys,
            default=str,
            ensure_ascii=False,
        )


class ConsoleFormatter:
    """Читаемый однострочный формат для локальной отладки.

    Формат: ``HH:MM:SS.mmm [LEVEL   ] event  key=value key=value``.
    Трейсбек исключения выводится отдельными строками после основной.
    """

    COLORS = {
        "debug": "\033[36m",
        "info": "\033[32m",
        "warning": "\033[33m",
        "error": "\033[31m",
        "critical": "\033[35m",
        "reset": "\033[0m",
    }

    SKIP_FIELDS = {"timestamp", "level", "event", "exception"}

    def __init__(self, colors: bool = False, pad: int = 36):
        """Инициализация Console форматтера.

        Args:
            colors: Использовать ли ANSI цвета.
            pad: Ширина колонки с именем события.
        """
        self.colors = colors
        self.pad = pad

    def _colorize(self, text: str, color_name: str) -> str:
        if not self.colors:
            return text
        color = self.COLORS.get(color_name, "")
        return f"{color}{text}{self.COLORS['reset']}"

    @staticmethod
    def _short_time(timestamp: str) -> str:
        # 2024-01-01T10:00:00.123456+00:00 -> 10:00:00.123
        if "T" not in timestamp:
            return timestamp
        time_part = timestamp.split("T")[1].split("+")[0].split("Z")[0]
        if "." in time_part:
            seconds, micro = time_part.split(".")
            time_part = f"{seconds}.{micro[:3]}"
        return time_part

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value, default=str, ensure_ascii=False)
        return str(value)

    def __call__(
        self, logger: Any, method_name: str, event_dict: EventDict
    ) -> str:
        level = str(event_dict.get("level", method_name))
        level_str = self._colorize(level.upper().ljust(8), level)
        event_str = str(event_dict.get("event", "")).ljust(self.pad)

        fields = " ".join(
            f"{key}={self._format_value(value)}"
            for key, value in event_dict.items()
            if key not in self.SKIP_FIELDS
        )
        line = f"{self._short_time(str(event_dict.get('timestamp', '')))} "
        line += f"[{level_str}] {event_str} {fields}".rstrip()

        exception = event_dict.get("exception")
        if isinstance(exception, dict) and exception.get("traceback"):
            line += "\n" + "\n".join(
                f"    {tb_line}" for tb_line in exception["traceback"]
            )
        return line


def get_formatter(
    enable_json: bool = True,
    enable_colors: bool = False,
) -> JSONFormatter | ConsoleFormatter:
    """Возвращает подходящий форматтер.

    Examples:
        >>> isinstance(get_formatter(enable_json=True), JSONFormatter)
        True
    """
    if enable_json:
        return JSONFormatter()
    return ConsoleFormatter(colors=enable_colors)
