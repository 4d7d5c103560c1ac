"""Аутентификация заранее выданным токеном."""

from __future__ import annotations

import httpx

from ..errors import PermanentError
from .base import ChannelAuth, set_bearer_token


class ChannelAuthToken(ChannelAuth):
    """Добавляет ``Authorization: Bearer <token>`` к каждому запросу.

    Токен не обновляется: reset() ничего не делает, а отказ сервиса
    (401/403) приходит вызывающему коду как TemporaryError.
    """

    def __init__(self, token: str) -> None:
        if not token:
            raise PermanentError("Token may not be empty")
        self.token = token

    def authenticate(self, request: httpx.Request) -> None:
        set_bearer_token(request, self.token)

    def reset(self) -> None:
        pass
