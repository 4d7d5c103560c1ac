"""
Pydantic модели записей сервиса потоков.

Формат записи на проводе (и для чтения, и для отправки):

    {
        "routingData": {"topic": "case-mgmt-events", "shardingKey": "123"},
        "message": {"headers": {"sourceId": "abc"}, "payload": "SGVsbG8="},
        "partition": 0,   # только у прочитанных записей
        "offset": 100     # только у прочитанных записей
    }

Payload передается в base64; модели кодируют его сами.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

RawPayload = Union[bytes, str, None]


def encode_payload(payload: RawPayload) -> str:
    """Кодирует payload в base64; строки предварительно в UTF-8.

    Examples:
        >>> encode_payload("hi")
        'aGk='
        >>> encode_payload(None)
        ''
    """
    if payload is None:
        return ""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return base64.b64encode(payload).decode("ascii")


class RoutingData(BaseModel):
    """Маршрутизация записи: топик и необязательный ключ шардирования."""

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., min_length=1, description="Топик")
    sharding_key: Optional[str] = Field(
        default=None, description="Ключ выбора партиции на сервере"
    )

    def to_wire(self) -> dict[str, Any]:
        return {"topic": self.topic, "shardingKey": self.sharding_key or ""}


class Message(BaseModel):
    """Сообщение: заголовки и payload.

    Поле payload хранит значение, уже закодированное в base64, и при
    валидации (в том числе из model_dump или JSON) не меняется. Сырой
    payload (bytes или str) кодируется один раз в create().

    Example:
        ```python
        Message.create(b"Hello", headers={"sourceId": "abc"}).payload
        # 'SGVsbG8='
        ```
    """

    model_config = ConfigDict(frozen=True)

    headers: dict[str, Optional[str]] = Field(
        default_factory=dict, description="Заголовки сообщения"
    )
    payload: str = Field(default="", description="Payload в base64")

    @classmethod
    def create(
        cls,
        payload: RawPayload = None,
        headers: Optional[dict[str, Optional[str]]] = None,
    ) -> Message:
        return cls(payload=encode_payload(payload), headers=headers or {})

    def to_wire(self) -> dict[str, Any]:
        return {
            "headers": {
                key: "" if value is None else value
                for key, value in self.headers.items()
            },
            "payload": self.payload,
        }


class ProducerRecord(BaseModel):
    """Запись для отправки в топик.

    Example:
        ```python
        record = ProducerRecord.create(
            "case-mgmt-events", b"Hello", sharding_key="123",
            headers={"sourceId": "abc"},
        )
        ```
    """

    model_config = ConfigDict(frozen=True)

    routing_data: RoutingData
    message: Message = Field(default_factory=Message)

    @classmethod
    def create(
        cls,
        topic: str,
        payload: RawPayload = None,
        sharding_key: Optional[str] = None,
        headers: Optional[dict[str, Optional[str]]] = None,
    ) -> ProducerRecord:
        return cls(
            routing_data=RoutingData(topic=topic, sharding_key=sharding_key),
            message=Message.create(payload, headers),
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "routingData": self.routing_data.to_wire(),
            "message": self.message.to_wire(),
        }


class ProducerRecords(BaseModel):
    """Пакет записей для одного запроса produce."""

    records: list[ProducerRecord] = Field(default_factory=list)

    def add(self, record: ProducerRecord) -> ProducerRecords:
        self.records.append(record)
        return self

    def __len__(self) -> int:
        return len(self.records)

    def to_wire(self) -> dict[str, Any]:
        return {"records": [record.to_wire() for record in self.records]}

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False)


class ConsumerRecord(BaseModel):
    """Прочитанная из топика запись. Неизменяема.

    Attributes:
        topic: Топик.
        partition: Партиция.
        offset: Offset в партиции.
        sharding_key: Ключ шардирования, если был задан producer.
        headers: Заголовки сообщения.
        payload: Payload в base64; байты возвращает decode_payload().
    """

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., description="Топик")
    partition: int = Field(..., ge=0, description="Партиция")
    offset: int = Field(..., ge=0, description="Offset")
    sharding_key: Optional[str] = Field(
        default=None, description="Ключ шардирования"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Заголовки сообщения"
    )
    payload: str = Field(default="", description="Payload в base64")

    @model_validator(mode="before")
    @classmethod
    def flatten_wire_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict) or (
            "routingData" not in data and "message" not in data
        ):
            return data

        routing = data.get("routingData") or {}
        message = data.get("message") or {}
        return {
            "topic": routing.get("topic"),
            "sharding_key": routing.get("shardingKey") or None,
            "headers": message.get("headers") or {},
            "payload": message.get("payload") or "",
            "partition": data.get("partition"),
            "offset": data.get("offset"),
        }

    def decode_payload(self) -> bytes:
        """Возвращает payload в виде байтов."""
        return base64.b64decode(self.payload)

    def to_wire(self) -> dict[str, Any]:
        return {
            "routingData": {
                "topic": self.topic,
                "shardingKey": self.sharding_key or "",
            },
            "message": {"headers": dict(self.headers), "payload": self.payload},
            "partition": self.partition,
            "offset": self.offset,
        }


class ConsumerRecords(BaseModel):
    """Ответ на запрос записей. Отсутствующий список - пустой пакет."""

    records: list[ConsumerRecord] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def null_records_as_empty(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("records") is None:
            return {**data, "records": []}
        return data


class StickinessCookie(BaseModel):
    """Cookie привязки к экземпляру сервиса за балансировщиком."""

    model_config = ConfigDict(frozen=True)

    value: str = ""
    domain: str = ""
