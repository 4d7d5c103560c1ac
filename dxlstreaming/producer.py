"""Producer: канал, ограниченный отправкой записей."""

from __future__ import annotations

from types import TracebackType
from typing import Optional

from .channel import Channel, ProduceBatch


class Producer:
    """Отправляющая половина канала.

    Example:
        ```python
        records = ProducerRecords().add(
            ProducerRecord.create("case-mgmt-events", b"Hello", sharding_key="1")
        )
        with ProducerBuilder("https://streaming.example.com", auth).build() as producer:
            producer.produce(records)
        ```
    """

    def __init__(self, channel: Channel) -> None:
        self._channel = channel

    @property
    def channel(self) -> Channel:
        return self._channel

    def produce(self, records: ProduceBatch) -> None:
        self._channel.produce(records)

    def close(self) -> None:
        self._channel.close()

    def __enter__(self) -> Producer:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
