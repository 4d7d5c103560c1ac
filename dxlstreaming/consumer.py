"""Consumer: канал, ограниченный операциями чтения."""

from __future__ import annotations

from collections.abc import Sequence
from types import TracebackType
from typing import Optional, Union

from .channel import Channel, RecordCallback
from .datatypes import ConsumerRecord, StickinessCookie


class Consumer:
    """Читающая половина канала.

    Оборачивает один Channel и не дает доступа к produce. Закрытие Consumer
    уничтожает канал (останавливает цикл и удаляет consumer на сервисе).

    Example:
        ```python
        with ConsumerBuilder("https://streaming.example.com", auth) \\
                .with_consumer_group("alerts") \\
                .with_offset("earliest") \\
                .build() as consumer:
            consumer.subscribe(["case-mgmt-events"])
            records = consumer.consume(timeout_ms=1000)
            consumer.commit()
        ```
    """

    def __init__(self, channel: Channel) -> None:
        self._channel = channel

    @property
    def channel(self) -> Channel:
        return self._channel

    @property
    def consumer_id(self) -> Optional[str]:
        return self._channel.consumer_id

    @property
    def consumer_group(self) -> Optional[str]:
        return self._channel.consumer_group

    @property
    def current_subscriptions(self) -> list[str]:
        return self._channel.current_subscriptions

    @property
    def running(self) -> bool:
        return self._channel.running

    def get_stickiness_cookie(self) -> StickinessCookie:
        return self._channel.get_stickiness_cookie()

    def set_stickiness_cookie(self, cookie: StickinessCookie) -> None:
        self._channel.set_stickiness_cookie(cookie)

    def resume(
        self,
        consumer_id: str,
        cookie: Optional[StickinessCookie] = None,
        subscriptions: Optional[Sequence[str]] = None,
    ) -> None:
        self._channel.resume(consumer_id, cookie, subscriptions)

    def create(self) -> None:
        self._channel.create()

    def subscribe(self, topics: Union[Sequence[str], str]) -> None:
        self._channel.subscribe(topics)

    def subscriptions(self) -> list[str]:
        return self._channel.subscriptions()

    def refresh_subscriptions(self) -> list[str]:
        return self._channel.refresh_subscriptions()

    def unsubscribe(self) -> None:
        self._channel.unsubscribe()

    def consume(self, timeout_ms: int = 0) -> list[ConsumerRecord]:
        return self._channel.consume(timeout_ms)

    def commit(self) -> None:
        self._channel.commit()

    def delete(self) -> None:
        self._channel.delete()

    def run(
        self,
        callback: RecordCallback,
        topics: Optional[Union[Sequence[str], str]] = None,
        timeout_ms: int = 0,
        wait_between_queries: float = 0,
    ) -> None:
        self._channel.run(callback, topics, timeout_ms, wait_between_queries)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._channel.stop(timeout)

    def destroy(self) -> None:
        self._channel.destroy()

    def close(self) -> None:
        self._channel.close()

    def __enter__(self) -> Consumer:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
