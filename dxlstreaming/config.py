"""
Конфигурация канала через Pydantic Settings.

Любой параметр можно задать переменной окружения с префиксом
DXLSTREAMING_CHANNEL_.

Example:
    ```bash
    export DXLSTREAMING_CHANNEL_BASE="https://streaming.example.com"
    export DXLSTREAMING_CHANNEL_CONSUMER_GROUP="alerts"
    export DXLSTREAMING_CHANNEL_OFFSET="earliest"
    ```
"""

from __future__ import annotations

from typing import Any, Literal, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import PermanentError

DEFAULT_CONSUMER_PATH_PREFIX = "/databus/consumer-service/v1"
DEFAULT_PRODUCER_PATH_PREFIX = "/databus/cloudproxy/v1"

AUTO_OFFSET_RESET_CONFIG_SETTING = "auto.offset.reset"
ENABLE_AUTO_COMMIT_CONFIG_SETTING = "enable.auto.commit"
REQUEST_TIMEOUT_CONFIG_SETTING = "request.timeout.ms"
SESSION_TIMEOUT_CONFIG_SETTING = "session.timeout.ms"


class HttpProxySettings(BaseModel):
    """Настройки HTTP прокси.

    Attributes:
        enabled: Использовать ли прокси.
        url: Хост прокси (допускается со схемой).
        port: Порт прокси.
        username: Пользователь прокси.
        password: Пароль прокси.

    Raises:
        PermanentError: Если прокси включен, а url пустой или port <= 0.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    url: str = ""
    port: int = 0
    username: Optional[str] = None
    password: Optional[str] = None

    @model_validator(mode="after")
    def check_address(self) -> HttpProxySettings:
        if self.enabled:
            if not self.url:
                raise PermanentError("Proxy url may not be empty")
            if self.port <= 0:
                raise PermanentError(
                    f"Proxy port must be greater than 0: {self.port}"
                )
        return self

    def proxy_url(self) -> Optional[str]:
        """URL прокси для httpx или None, если прокси выключен.

        Examples:
            >>> HttpProxySettings(url="proxy.local", port=3128).proxy_url()
            'http://proxy.local:3128'
        """
        if not self.enabled:
            return None

        scheme, _, host = self.url.rpartition("://")
        credentials = ""
        if self.username:
            credentials = quote(self.username, safe="")
            if self.password:
                credentials += ":" + quote(self.password, safe="")
            credentials += "@"
        return f"{scheme or 'http'}://{credentials}{host}:{self.port}"


class ChannelConfig(BaseSettings):
    """Неизменяемая конфигурация канала.

    Attributes:
        base: Базовый URL сервиса (схема, хост, порт).
        consumer_group: Consumer group; обязательна для операций consumer.
        path_prefix: Общий префикс; если задан, заменяет оба префикса ниже.
        consumer_path_prefix: Префикс API consumer.
        producer_path_prefix: Префикс API producer.
        offset: Политика auto.offset.reset.
        request_timeout: request.timeout.ms в секундах.
        session_timeout: session.timeout.ms в секундах.
        retry_on_fail: Продолжать run-цикл после пересоздания consumer.
        verify_cert_bundle: PEM данные или путь к файлу сертификатов.
        extra_configs: Дополнительные свойства consumer.
        http_proxy: Настройки прокси.
        multi_tenant: Признак мультитенантного окружения.
        request_headers: Дополнительные заголовки всех запросов.
    """

    model_config = SettingsConfigDict(
        env_prefix="DXLSTREAMING_CHANNEL_",
        frozen=True,
    )

    base: str = Field(..., min_length=1, description="Базовый URL сервиса")
    consumer_group: Optional[str] = Field(
        default=None, description="Имя consumer group"
    )
    path_prefix: Optional[str] = Field(
        default=None,
        description="Общий префикс путей, перекрывает префиксы consumer и producer",
    )
    consumer_path_prefix: str = Field(
        default=DEFAULT_CONSUMER_PATH_PREFIX,
        description="Префикс путей API consumer",
    )
    producer_path_prefix: str = Field(
        default=DEFAULT_PRODUCER_PATH_PREFIX,
        description="Префикс путей API producer",
    )
    offset: Literal["latest", "earliest", "none"] = Field(
        default="latest",
        description="Позиция чтения при отсутствии закоммиченного offset",
    )
    request_timeout: Optional[int] = Field(
        default=None,
        gt=0,
        description="Таймаут ответа брокера (с); должен превышать session_timeout",
    )
    session_timeout: Optional[int] = Field(
        default=None,
        gt=0,
        description="Таймаут сессии consumer (с)",
    )
    retry_on_fail: bool = Field(
        default=True,
        description="Продолжать run-цикл после пересоздания consumer",
    )
    verify_cert_bundle: str = Field(
        default="",
        description="PEM данные или путь к CA bundle; пусто - без проверки",
    )
    extra_configs: dict[str, Any] = Field(
        default_factory=dict,
        description="Дополнительные свойства consumer",
    )
    http_proxy: Optional[HttpProxySettings] = Field(
        default=None, description="Настройки прокси"
    )
    multi_tenant: bool = Field(
        default=True, description="Мультитенантное окружение"
    )
    request_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Дополнительные заголовки всех запросов",
    )

    @classmethod
    def build(cls, **options: Any) -> ChannelConfig:
        """Создает конфигурацию, превращая ошибки валидации в PermanentError.

        Raises:
            PermanentError: Если параметры невалидны.
        """
        try:
            return cls(**options)
        except ValidationError as err:
            raise PermanentError(
                f"Invalid channel configuration: {err}", cause=err
            ) from err

    @property
    def consumer_prefix(self) -> str:
        return self.path_prefix or self.consumer_path_prefix

    @property
    def producer_prefix(self) -> str:
        return self.path_prefix or self.producer_path_prefix

    def consumer_configs(self) -> dict[str, Any]:
        """Свойства consumer, отправляемые при его создании.

        Явные offset и таймауты перекрывают значения из extra_configs;
        enable.auto.commit по умолчанию "false".
        """
        configs = dict(self.extra_configs)
        configs.setdefault(ENABLE_AUTO_COMMIT_CONFIG_SETTING, "false")
        configs[AUTO_OFFSET_RESET_CONFIG_SETTING] = self.offset
        if self.session_timeout is not None:
            configs[SESSION_TIMEOUT_CONFIG_SETTING] = self.session_timeout * 1000
        if self.request_timeout is not None:
            configs[REQUEST_TIMEOUT_CONFIG_SETTING] = self.request_timeout * 1000
        return configs

    @property
    def auto_commit_enabled(self) -> bool:
        value = self.consumer_configs()[ENABLE_AUTO_COMMIT_CONFIG_SETTING]
        return str(value).strip().lower() == "true"
