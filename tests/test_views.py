"""Consumer, Producer и builders."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from dxlstreaming import (
    Channel,
    ChannelAuthToken,
    ChannelBuilder,
    Consumer,
    ConsumerBuilder,
    PermanentError,
    Producer,
    ProducerBuilder,
    ProducerRecord,
)
from dxlstreaming_apiclient import TransportConfig

from .conftest import BASE, PRODUCER_PREFIX, consumer_path, respond, wire_record


class TestChannelBuilder:
    def test_builder_is_immutable(self):
        base_builder = ChannelBuilder(BASE, ChannelAuthToken("t"))
        alerts = base_builder.with_consumer_group("alerts")

        assert base_builder.options == {}
        assert alerts.options == {"consumer_group": "alerts"}

    def test_config_collects_options(self):
        config = (
            ChannelBuilder(BASE)
            .with_consumer_group("cg")
            .with_offset("earliest")
            .with_path_prefix("/p")
            .with_retry_on_fail(False)
            .with_extra_configs({"a": "1"})
            .with_extra_configs({"b": "2"})
            .with_request_headers({"X-Tenant": "t1"})
            .config()
        )

        assert config.base == BASE
        assert config.consumer_group == "cg"
        assert config.offset == "earliest"
        assert config.consumer_prefix == "/p"
        assert config.retry_on_fail is False
        assert config.extra_configs == {"a": "1", "b": "2"}
        assert config.request_headers == {"X-Tenant": "t1"}

    def test_invalid_option_is_permanent(self):
        with pytest.raises(PermanentError):
            ChannelBuilder(BASE).with_offset("nowhere").config()

    def test_build_channel(self, server):
        server.add("POST", f"{PRODUCER_PREFIX}/produce", respond(204))
        channel = (
            ChannelBuilder(BASE, transport=server.transport)
            .with_auth(ChannelAuthToken("t"))
            .with_transport_config(TransportConfig(read_timeout_seconds=1))
            .with_request_headers({"X-Tenant": "t1"})
            .build()
        )

        try:
            channel.produce([ProducerRecord.create("t1", "hi")])
        finally:
            channel.destroy()

        assert isinstance(channel, Channel)
        request = server.calls()[0]
        assert request.headers["authorization"] == "Bearer t"
        assert request.headers["x-tenant"] == "t1"


class TestConsumerView:
    def test_builder_returns_consumer(self, server):
        server.with_consumer("c1")
        server.add("GET", consumer_path("c1", "records"), respond(200, {"records": [wire_record()]}))

        with ConsumerBuilder(BASE, ChannelAuthToken("t"), transport=server.transport) \
                .with_consumer_group("cg").build() as consumer:
            assert isinstance(consumer, Consumer)
            consumer.subscribe(["t1"])
            records = consumer.consume()
            consumer.commit()
            consumer_id = consumer.consumer_id

        assert consumer_id == "c1"
        assert records[0].decode_payload() == b"hi"
        assert server.trace()[-1] == f"DELETE {consumer_path('c1')}"

    def test_has_no_produce(self):
        assert not hasattr(Consumer, "produce")

    def test_delegates_run_and_stop(self):
        channel = MagicMock(spec=Channel)
        consumer = Consumer(channel)
        callback = MagicMock()

        consumer.run(callback, ["t1"], timeout_ms=10)
        consumer.stop(timeout=1)

        channel.run.assert_called_once_with(callback, ["t1"], 10, 0)
        channel.stop.assert_called_once_with(1)


class TestProducerView:
    def test_builder_returns_producer(self, server):
        server.add("POST", f"{PRODUCER_PREFIX}/produce", respond(204))

        with ProducerBuilder(BASE, ChannelAuthToken("t"), transport=server.transport).build() as producer:
            assert isinstance(producer, Producer)
            producer.produce([ProducerRecord.create("t1", "hi")])

        assert not producer.channel.active
        assert server.trace() == [f"POST {PRODUCER_PREFIX}/produce"]

    def test_exposes_only_produce_and_close(self):
        public = {name for name in vars(Producer) if not name.startswith("_")}

        assert public == {"channel", "produce", "close"}
