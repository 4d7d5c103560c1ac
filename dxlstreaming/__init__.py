# -*- coding: utf-8 -*-
"""DXL Streaming - HTTP клиент сервиса потоков (pub/sub).

Основные возможности:
- Восстанавливаемая сессия consumer: create, subscribe, consume, commit, delete
- Run-цикл с пересозданием потерянного consumer и кооперативной остановкой
- Отправка записей в топики (produce)
- Аутентификация токеном, логином/паролем или client credentials
- Классификация ошибок: ConsumerError, PermanentError, TemporaryError

Quick Start:
    >>> from dxlstreaming import Channel, ChannelAuthToken
    >>> channel = Channel("https://streaming.example.com",
    ...                   ChannelAuthToken("my-token"), consumer_group="alerts")
    >>> channel.subscribe(["case-mgmt-events"])
    >>> records = channel.consume(timeout_ms=1000)
    >>> channel.commit()
    >>> channel.destroy()
"""

from __future__ import annotations

from .auth import (
    CachedTokenAuth,
    ChannelAuth,
    ChannelAuthClientCredentialSecret,
    ChannelAuthToken,
    ChannelAuthUserPass,
    get_token,
    login,
)
from .builders import ChannelBuilder, ConsumerBuilder, ProducerBuilder
from .channel import Channel
from .config import ChannelConfig, HttpProxySettings
from .consumer import Consumer
from .datatypes import (
    ConsumerRecord,
    ConsumerRecords,
    Message,
    ProducerRecord,
    ProducerRecords,
    RoutingData,
    StickinessCookie,
)
from .errors import (
    ClientError,
    ConsumerError,
    ErrorType,
    PermanentError,
    StopError,
    TemporaryError,
)
from .producer import Producer

__version__ = "1.0.0"

__all__ = [
    "__version__",
    # Канал и его представления
    "Channel",
    "Consumer",
    "Producer",
    "ChannelBuilder",
    "ConsumerBuilder",
    "ProducerBuilder",
    # Конфигурация
    "ChannelConfig",
    "HttpProxySettings",
    # Аутентификация
    "ChannelAuth",
    "CachedTokenAuth",
    "ChannelAuthToken",
    "ChannelAuthUserPass",
    "ChannelAuthClientCredentialSecret",
    "login",
    "get_token",
    # Записи
    "ConsumerRecord",
    "ConsumerRecords",
    "Message",
    "ProducerRecord",
    "ProducerRecords",
    "RoutingData",
    "StickinessCookie",
    # Ошибки
    "ClientError",
    "ConsumerError",
    "ErrorType",
    "PermanentError",
    "StopError",
    "TemporaryError",
]
