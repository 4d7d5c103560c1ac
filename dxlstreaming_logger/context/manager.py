# -*- coding: utf-8 -*-
"""Контекст логирования.

ContextVars хранят поля, которые автоматически попадают в каждую запись
лога: consumer_group, consumer_id, run_id и произвольные поля. Каждый поток
получает собственную копию контекста, поэтому run-цикл канала в отдельном
потоке не смешивает свои поля с полями вызывающего кода.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any

_consumer_group_var: ContextVar[str | None] = ContextVar(
    "consumer_group", default=None
)
_consumer_id_var: ContextVar[str | None] = ContextVar(
    "consumer_id", default=None
)
_run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)
_custom_context_var: ContextVar[dict[str, Any]] = ContextVar(
    "custom_context", default={}
)

_STANDARD_FIELDS = {
    "consumer_group": _consumer_group_var,
    "consumer_id": _consumer_id_var,
    "run_id": _run_id_var,
}


def set_consumer_group(consumer_group: str | None) -> Token[str | None]:
    """Установить consumer group в контекст.

    Returns:
        Token для возможности сброса значения.
    """
    return _consumer_group_var.set(consumer_group)


def get_consumer_group() -> str | None:
    return _consumer_group_var.get()


def set_consumer_id(consumer_id: str | None) -> Token[str | None]:
    """Установить идентификатор consumer instance в контекст.

    Args:
        consumer_id: Идентификатор, выданный сервисом при создании consumer.

    Returns:
        Token для возможности сброса значения.
    """
    return _consumer_id_var.set(consumer_id)


def get_consumer_id() -> str | None:
    return _consumer_id_var.get()


def generate_run_id() -> str:
    """Сгенерировать идентификатор запуска run-цикла.

    Examples:
        >>> generate_run_id().startswith("run_")
        True
    """
    return f"run_{uuid.uuid4().hex[:12]}"


def set_run_id(run_id: str | None) -> Token[str | None]:
    return _run_id_var.set(run_id)


def get_run_id() -> str | None:
    return _run_id_var.get()


def set_custom_context(key: str, value: Any) -> None:
    """Установить кастомное значение в контекст.

    Examples:
        >>> set_custom_context("topic", "case-mgmt-events")
        >>> get_custom_context("topic")
        'case-mgmt-events'
    """
    current = _custom_context_var.get()
    _custom_context_var.set({**current, key: value})


def get_custom_context(key: str) -> Any:
    return _custom_context_var.get().get(key)


@contextmanager
def bind_context(**kwargs: Any) -> Iterator[None]:
    """Временно добавить поля в контекст логирования.

    Стандартные поля (consumer_group, consumer_id, run_id) пишутся в свои
    ContextVars, остальные в кастомный контекст. При выходе восстанавливаются
    предыдущие значения.

    Examples:
        >>> with bind_context(consumer_group="cg1", run_id=generate_run_id()):
        ...     logger.info("channel.run_started")
    """
    tokens: list[Token] = []

    for name, var in _STANDARD_FIELDS.items():
        if name in kwargs:
            tokens.append(var.set(kwargs[name]))

    custom = {k: v for k, v in kwargs.items() if k not in _STANDARD_FIELDS}
    if custom:
        tokens.append(
            _custom_context_var.set({**_custom_context_var.get(), **custom})
        )

    try:
        yield
    finally:
        for token in reversed(tokens):
            token.var.reset(token)


def clear_all_context() -> None:
    """Очистить весь контекст. Используется в тестах."""
    for var in _STANDARD_FIELDS.values():
        var.set(None)
    _custom_context_var.set({})


def get_current_context() -> dict[str, Any]:
    """Получить весь текущий контекст.

    Examples:
        >>> with bind_context(consumer_group="cg1", topic="t1"):
        ...     get_current_context()
        {'consumer_group': 'cg1', 'topic': 't1'}
    """
    context: dict[str, Any] = {}

    for name, var in _STANDARD_FIELDS.items():
        value = var.get()
        if value:
            context[name] = value

    context.update(_custom_context_var.get())

    return context
