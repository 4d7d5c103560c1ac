"""Общие фикстуры: stub сервис потоков на httpx.MockTransport."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from typing import Any, Optional, Union

import httpx
import pytest

from dxlstreaming import Channel, ChannelAuthToken
from dxlstreaming_logger import clear_all_context, reset_configuration

HOST = "streaming.example.com"
BASE = f"http://{HOST}"
CONSUMER_PREFIX = "/databus/consumer-service/v1"
PRODUCER_PREFIX = "/databus/cloudproxy/v1"
CONSUMERS = f"{CONSUMER_PREFIX}/consumers"

Handler = Callable[[httpx.Request], httpx.Response]
Route = Union[httpx.Response, Handler]


def respond(
    status_code: int = 200,
    json_body: Any = None,
    text: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> httpx.Response:
    if json_body is not None:
        return httpx.Response(status_code, json=json_body, headers=headers)
    if text is not None:
        return httpx.Response(status_code, text=text, headers=headers)
    return httpx.Response(status_code, headers=headers)


def consumer_path(consumer_id: str, *parts: str) -> str:
    return "/".join((f"{CONSUMERS}/{consumer_id}", *parts))


def wire_record(
    topic: str = "t1",
    payload: str = "aGk=",
    partition: int = 0,
    offset: int = 1,
    sharding_key: str = "",
    headers: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    return {
        "routingData": {"topic": topic, "shardingKey": sharding_key},
        "message": {"headers": headers or {}, "payload": payload},
        "partition": partition,
        "offset": offset,
    }


class StubServer:
    """Stub сервиса: маршруты (method, path) -> очередь ответов.

    Последний ответ маршрута повторяется для всех следующих запросов.
    Маршрут может быть функцией, получающей httpx.Request. Все запросы
    сохраняются в порядке поступления.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Route]] = {}
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    def add(self, method: str, path: str, *responses: Route) -> StubServer:
        self.routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            queue = self.routes.get((request.method, request.url.path))
            if not queue:
                return httpx.Response(599, text="no route")
            route = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(route):
            return route(request)
        # httpx привязывает ответ к запросу, поэтому каждый раз новая копия
        return httpx.Response(
            route.status_code, headers=route.headers, content=route.content
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> list[httpx.Request]:
        with self._lock:
            requests = list(self.requests)
        return [
            request
            for request in requests
            if (method is None or request.method == method)
            and (path is None or request.url.path == path)
        ]

    def trace(self) -> list[str]:
        """Последовательность запросов вида ``POST /path``."""
        return [f"{r.method} {r.url.path}" for r in self.calls()]

    # Типовые маршруты

    def with_consumer(self, *consumer_ids: str) -> StubServer:
        """create выдает consumer_ids по очереди; остальные операции 2xx."""
        self.add(
            "POST",
            CONSUMERS,
            *(
                respond(
                    200,
                    {"consumerInstanceId": consumer_id},
                    headers={"Set-Cookie": f"AWSALB=cookie-{consumer_id}; Path=/"},
                )
                for consumer_id in consumer_ids
            ),
        )
        for consumer_id in consumer_ids:
            self.add("POST", consumer_path(consumer_id, "subscription"), respond(204))
            self.add("POST", consumer_path(consumer_id, "offsets"), respond(204))
            self.add("DELETE", consumer_path(consumer_id), respond(204))
        return self


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content)


@pytest.fixture(autouse=True)
def reset_logging():
    """Каждый тест начинает с конфигурацией логирования по умолчанию."""
    yield
    reset_configuration()
    clear_all_context()


@pytest.fixture
def server() -> StubServer:
    return StubServer()


@pytest.fixture
def make_channel(server: StubServer):
    """Фабрика каналов, подключенных к stub серверу."""
    channels: list[Channel] = []

    def factory(**options: Any) -> Channel:
        options.setdefault("consumer_group", "cg1")
        auth = options.pop("auth", ChannelAuthToken("tkn"))
        channel = Channel(BASE, auth, transport=server.transport, **options)
        channels.append(channel)
        return channel

    yield factory

    for channel in channels:
        if channel.active and not channel.running:
            channel.detach()
