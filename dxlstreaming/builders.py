"""
Fluent builders канала, consumer и producer.

Каждый метод with_* возвращает новый builder, исходный не меняется, поэтому
общую часть настроек можно переиспользовать:

    ```python
    common = ChannelBuilder(base, auth).with_verify_cert_bundle("/etc/ssl/ca.pem")
    alerts = common.with_consumer_group("alerts").build()
    audit = common.with_consumer_group("audit").build()
    ```

Все параметры сводятся в неизменяемый ChannelConfig; ошибки валидации
приходят как PermanentError при вызове config() или build().
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, TypeVar

import httpx
from dxlstreaming_apiclient import TransportConfig

from .auth import ChannelAuth
from .channel import Channel
from .config import ChannelConfig, HttpProxySettings
from .consumer import Consumer
from .producer import Producer

BuilderT = TypeVar("BuilderT", bound="ChannelBuilder")


class ChannelBuilder:
    """Builder канала."""

    def __init__(
        self,
        base: str,
        auth: Optional[ChannelAuth] = None,
        transport_config: Optional[TransportConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base = base
        self._auth = auth
        self._transport_config = transport_config
        self._transport = transport
        self._options: dict[str, Any] = {}

    def _with(self: BuilderT, **options: Any) -> BuilderT:
        clone = self.__class__(
            self._base, self._auth, self._transport_config, self._transport
        )
        clone._options = {**self._options, **options}
        return clone

    @property
    def options(self) -> dict[str, Any]:
        """Накопленные параметры (копия)."""
        return dict(self._options)

    def with_auth(self: BuilderT, auth: Optional[ChannelAuth]) -> BuilderT:
        clone = self._with()
        clone._auth = auth
        return clone

    def with_transport_config(
        self: BuilderT, transport_config: TransportConfig
    ) -> BuilderT:
        clone = self._with()
        clone._transport_config = transport_config
        return clone

    def with_consumer_group(self: BuilderT, consumer_group: str) -> BuilderT:
        return self._with(consumer_group=consumer_group)

    def with_path_prefix(self: BuilderT, path_prefix: str) -> BuilderT:
        return self._with(path_prefix=path_prefix)

    def with_consumer_path_prefix(self: BuilderT, prefix: str) -> BuilderT:
        return self._with(consumer_path_prefix=prefix)

    def with_producer_path_prefix(self: BuilderT, prefix: str) -> BuilderT:
        return self._with(producer_path_prefix=prefix)

    def with_offset(self: BuilderT, offset: str) -> BuilderT:
        return self._with(offset=offset)

    def with_request_timeout(self: BuilderT, seconds: int) -> BuilderT:
        return self._with(request_timeout=seconds)

    def with_session_timeout(self: BuilderT, seconds: int) -> BuilderT:
        return self._with(session_timeout=seconds)

    def with_retry_on_fail(self: BuilderT, retry_on_fail: bool) -> BuilderT:
        return self._with(retry_on_fail=retry_on_fail)

    def with_verify_cert_bundle(self: BuilderT, bundle: str) -> BuilderT:
        return self._with(verify_cert_bundle=bundle)

    def with_extra_configs(self: BuilderT, configs: Mapping[str, Any]) -> BuilderT:
        """Добавляет свойства consumer к уже накопленным."""
        merged = {**self._options.get("extra_configs", {}), **configs}
        return self._with(extra_configs=merged)

    def with_http_proxy(
        self: BuilderT, http_proxy: Optional[HttpProxySettings]
    ) -> BuilderT:
        return self._with(http_proxy=http_proxy)

    def with_multi_tenant(self: BuilderT, multi_tenant: bool) -> BuilderT:
        return self._with(multi_tenant=multi_tenant)

    def with_request_headers(
        self: BuilderT, headers: Mapping[str, str]
    ) -> BuilderT:
        merged = {**self._options.get("request_headers", {}), **headers}
        return self._with(request_headers=merged)

    def config(self) -> ChannelConfig:
        """Сводит параметры в ChannelConfig.

        Raises:
            PermanentError: Если параметры невалидны.
        """
        return ChannelConfig.build(base=self._base, **self._options)

    def build(self) -> Channel:
        return Channel(
            auth=self._auth,
            config=self.config(),
            transport_config=self._transport_config,
            transport=self._transport,
        )


class ConsumerBuilder(ChannelBuilder):
    """Builder Consumer."""

    def build(self) -> Consumer:  # type: ignore[override]
        return Consumer(super().build())


class ProducerBuilder(ChannelBuilder):
    """Builder Producer; consumer group не нужна."""

    def build(self) -> Producer:  # type: ignore[override]
        return Producer(super().build())
