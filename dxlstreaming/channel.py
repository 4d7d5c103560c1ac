"""
Канал: сессия consumer и адресация producer сервиса потоков.

Канал превращает набор независимых HTTP вызовов в одну восстанавливаемую
сессию consumer:

    create -> subscribe -> (consume -> callback -> commit)* -> delete

run() крутит цикл чтения и сам пересоздает consumer, если сервис сообщил,
что не знает его (ConsumerError). Записи коммитятся только после обработки
callback, поэтому сбой между чтением и коммитом приводит к повторной
доставке, а не к потере (at-least-once).

Канал не рассчитан на одновременную работу из нескольких потоков: вызов из
чужого потока, пока канал занят, сразу завершается TemporaryError.
Единственный поддерживаемый межпоточный вызов - stop() (и destroy(), который
его вызывает) во время run() в другом потоке.

Example:
    ```python
    from dxlstreaming import Channel, ChannelAuthToken

    def process(records, consumer_id):
        for record in records:
            print(record.topic, record.decode_payload())
        return True  # False остановит цикл

    with Channel(
        "https://streaming.example.com",
        ChannelAuthToken("my-token"),
        consumer_group="alerts",
        offset="earliest",
    ) as channel:
        channel.run(process, topics=["case-mgmt-events"], timeout_ms=30000)
    ```
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from types import TracebackType
from typing import Any, Callable, Optional, Union

import httpx
from dxlstreaming_apiclient import TransportConfig
from dxlstreaming_logger import bind_context, generate_run_id, get_logger
from dxlstreaming_logger.utils import truncate_string
from pydantic import ValidationError

from .auth import ChannelAuth
from .config import ChannelConfig
from .datatypes import (
    ConsumerRecord,
    ConsumerRecords,
    ProducerRecord,
    ProducerRecords,
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
from .guard import AccessGuard
from .request import Request

logger = get_logger(__name__)

P = ErrorType.PERMANENT
T = ErrorType.TEMPORARY
C = ErrorType.CONSUMER

CREATE_ERROR_MAP = {400: P, 401: T, 403: T, 404: P, 500: T}
# Операции над конкретным consumer: 404 означает, что сервис его потерял
CONSUMER_ERROR_MAP = {400: P, 401: T, 403: T, 404: C, 409: T, 500: T}
SUBSCRIBE_ERROR_MAP = CONSUMER_ERROR_MAP
SUBSCRIPTIONS_ERROR_MAP = CONSUMER_ERROR_MAP
UNSUBSCRIBE_ERROR_MAP = CONSUMER_ERROR_MAP
CONSUME_ERROR_MAP = CONSUMER_ERROR_MAP
COMMIT_ERROR_MAP = CONSUMER_ERROR_MAP
DELETE_ERROR_MAP = CONSUMER_ERROR_MAP
PRODUCE_ERROR_MAP = {400: P, 401: T, 403: T, 404: P, 409: T, 500: T}

# callback(records, consumer_id) -> False чтобы остановить цикл
RecordCallback = Callable[[list[ConsumerRecord], Optional[str]], Any]
ProduceBatch = Union[ProducerRecords, Sequence[ProducerRecord], str, bytes]


class Channel:
    """Канал сервиса потоков."""

    def __init__(
        self,
        base: Optional[str] = None,
        auth: Optional[ChannelAuth] = None,
        consumer_group: Optional[str] = None,
        *,
        config: Optional[ChannelConfig] = None,
        transport_config: Optional[TransportConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        **options: Any,
    ) -> None:
        """Инициализация канала.

        Args:
            base: Базовый URL сервиса.
            auth: Стратегия аутентификации; None - запросы без учетных данных.
            consumer_group: Consumer group (нужна только для операций consumer).
            config: Готовая конфигурация; если задана, base, consumer_group и
                options игнорируются.
            transport_config: Таймауты HTTP транспорта.
            transport: Подменный транспорт httpx (используется в тестах).
            **options: Остальные поля ChannelConfig (offset, path_prefix,
                extra_configs, retry_on_fail, http_proxy...).

        Raises:
            PermanentError: Если конфигурация невалидна.
            TemporaryError: Если не удалось создать HTTP клиент.
        """
        if config is None:
            # None не перекрывает значения из переменных окружения
            if base is not None:
                options["base"] = base
            if consumer_group is not None:
                options["consumer_group"] = consumer_group
            config = ChannelConfig.build(**options)
        self.config = config
        self.auth = auth
        self._transport_config = transport_config
        self._transport = transport

        self._consumer_id: Optional[str] = None
        self._subscriptions: list[str] = []
        self._request = self._new_request()

        self._guard = AccessGuard()
        self._active = True
        self._destroy_lock = threading.Lock()

        # Состояние run-цикла; все поля меняются только под _run_condition
        self._run_condition = threading.Condition()
        self._running = False
        self._stop_requested = False
        self._stop_waiting = False
        self._run_thread: Optional[int] = None
        self._run_generation = 0

        self._log = logger.bind(
            channel=self.__class__.__name__,
            consumer_group=config.consumer_group,
        )

    def _new_request(self) -> Request:
        return Request(
            self.config.base,
            self.auth,
            verify_cert_bundle=self.config.verify_cert_bundle,
            http_proxy=self.config.http_proxy,
            headers=self.config.request_headers,
            transport_config=self._transport_config,
            transport=self._transport,
        )

    # ------------------------------------------------------------------
    # Состояние
    # ------------------------------------------------------------------

    @property
    def consumer_id(self) -> Optional[str]:
        return self._consumer_id

    @property
    def consumer_group(self) -> Optional[str]:
        return self.config.consumer_group

    @property
    def current_subscriptions(self) -> list[str]:
        """Топики, на которые подписан consumer по данным клиента."""
        return list(self._subscriptions)

    @property
    def active(self) -> bool:
        return self._active

    @property
    def running(self) -> bool:
        with self._run_condition:
            return self._running

    def _reset(self) -> None:
        """Сбрасывает локальное состояние сессии, cookies и кеш авторизации."""
        self._consumer_id = None
        self._subscriptions = []
        self._request.reset_cookies()
        if self.auth is not None:
            self.auth.reset()

    @contextmanager
    def _access(self, api: str) -> Iterator[None]:
        if not self._active:
            raise PermanentError("Channel has been destroyed", api=api)
        with self._guard.hold(api):
            yield

    def _consumer_path(self, *parts: str) -> str:
        path = f"{self.config.consumer_prefix}/consumers/{self._consumer_id}"
        return "/".join((path, *parts))

    def _require_consumer(self, api: str) -> None:
        if not self._consumer_id:
            raise PermanentError("Consumer has not been created", api=api)

    @staticmethod
    def _parse_json(response: httpx.Response, api: str) -> Any:
        try:
            return response.json()
        except ValueError as err:
            raise TemporaryError(
                f"Error while parsing response: {type(err).__name__} {err}",
                cause=err,
                api=api,
            ) from err

    # ------------------------------------------------------------------
    # Сессия
    # ------------------------------------------------------------------

    def get_stickiness_cookie(self) -> StickinessCookie:
        """Cookie привязки к экземпляру сервиса (пустая, если ее нет)."""
        return self._request.get_stickiness_cookie()

    def set_stickiness_cookie(self, cookie: StickinessCookie) -> None:
        with self._access("cookie"):
            self._request.set_stickiness_cookie(cookie)

    def resume(
        self,
        consumer_id: str,
        cookie: Optional[StickinessCookie] = None,
        subscriptions: Optional[Sequence[str]] = None,
    ) -> None:
        """Продолжает сессию consumer, созданную ранее (например, другим
        процессом): устанавливает id, cookie привязки и локальный список
        подписок без обращений к сервису.
        """
        with self._access("resume"):
            if not consumer_id:
                raise PermanentError(
                    "Non-empty consumer id must be specified", api="resume"
                )
            self._consumer_id = consumer_id
            if cookie is not None and cookie.value:
                self._request.set_stickiness_cookie(cookie)
            if subscriptions is not None:
                self._subscriptions = [topic for topic in subscriptions if topic]

    def refresh_subscriptions(self) -> list[str]:
        """Запрашивает подписки у сервиса и сохраняет их локально."""
        with self._access("subscriptions"):
            topics = self.subscriptions()
            self._subscriptions = list(topics)
            return topics

    # ------------------------------------------------------------------
    # Операции consumer
    # ------------------------------------------------------------------

    def create(self) -> None:
        """Создает новый consumer в consumer group.

        Raises:
            PermanentError: Consumer group не задана; 400/404 от сервиса.
            TemporaryError: 401/403/500, прочие статусы, ошибка разбора ответа
                или транспорта.
        """
        with self._access("create"):
            if not self.config.consumer_group:
                raise PermanentError(
                    "No value specified for 'consumer_group' during channel init",
                    api="create",
                )

            self._reset()

            response = self._request.post(
                f"{self.config.consumer_prefix}/consumers",
                "create",
                CREATE_ERROR_MAP,
                json={
                    "consumerGroup": self.config.consumer_group,
                    "configs": self.config.consumer_configs(),
                },
            )
            body = self._parse_json(response, "create")
            consumer_id = (
                body.get("consumerInstanceId") if isinstance(body, dict) else None
            )
            if not consumer_id:
                raise TemporaryError(
                    "Error while parsing response: consumerInstanceId not found in "
                    + truncate_string(response.text),
                    api="create",
                )

            self._consumer_id = str(consumer_id)
            self._log.info(
                "channel.consumer_created", consumer_id=self._consumer_id
            )

    def subscribe(self, topics: Union[Sequence[str], str]) -> None:
        """Подписывает consumer на топики, создавая consumer при необходимости.

        Локальный список подписок заменяется целиком и только после
        успешного ответа сервиса.

        Raises:
            PermanentError: Пустой список топиков; 400 от сервиса.
            ConsumerError: Сервис не знает consumer (404).
            TemporaryError: 401/403/409/500 и прочие временные сбои.
        """
        with self._access("subscribe"):
            if isinstance(topics, str):
                topics = [topics]
            topic_list = [topic for topic in (topics or []) if topic]
            if not topic_list:
                raise PermanentError(
                    "Non-empty value must be specified for topics",
                    api="subscribe",
                )

            if not self._consumer_id:
                self.create()

            self._request.post(
                self._consumer_path("subscription"),
                "subscribe",
                SUBSCRIBE_ERROR_MAP,
                json={"topics": topic_list},
            )
            self._subscriptions = topic_list
            self._log.info(
                "channel.subscribed",
                consumer_id=self._consumer_id,
                topics=topic_list,
            )

    def subscriptions(self) -> list[str]:
        """Возвращает топики, на которые consumer подписан по данным сервиса."""
        with self._access("subscriptions"):
            self._require_consumer("subscriptions")
            response = self._request.get(
                self._consumer_path("subscription"),
                "subscriptions",
                SUBSCRIPTIONS_ERROR_MAP,
            )
            body = self._parse_json(response, "subscriptions")
            if not isinstance(body, list):
                raise TemporaryError(
                    "Error while parsing response: expected a list of topics, got "
                    + truncate_string(response.text),
                    api="subscriptions",
                )
            return [str(topic) for topic in body]

    def unsubscribe(self) -> None:
        """Снимает все подписки consumer."""
        with self._access("unsubscribe"):
            self._require_consumer("unsubscribe")
            self._request.delete(
                self._consumer_path("subscription"),
                "unsubscribe",
                UNSUBSCRIBE_ERROR_MAP,
            )
            self._subscriptions = []
            self._log.info("channel.unsubscribed", consumer_id=self._consumer_id)

    def consume(self, timeout_ms: int = 0) -> list[ConsumerRecord]:
        """Читает очередную порцию записей.

        Args:
            timeout_ms: Сколько сервер может ждать новых записей (long-poll);
                0 - ответить сразу.

        Returns:
            Список записей, возможно пустой.

        Raises:
            PermanentError: Consumer ни на что не подписан; 400 от сервиса.
            ConsumerError: Сервис не знает consumer (404).
            TemporaryError: 401/403/409/500, ошибка разбора ответа, транспорт.
        """
        with self._access("consume"):
            if not self._subscriptions:
                raise PermanentError(
                    "Channel is not subscribed to any topic", api="consume"
                )

            response = self._request.get(
                self._consumer_path("records"),
                "consume",
                CONSUME_ERROR_MAP,
                params={"timeout": timeout_ms} if timeout_ms > 0 else None,
                long_poll_ms=max(timeout_ms, 0),
            )
            body = self._parse_json(response, "consume")
            try:
                records = ConsumerRecords.model_validate(body).records
            except ValidationError as err:
                raise TemporaryError(
                    f"Error while parsing response: {err}",
                    cause=err,
                    api="consume",
                ) from err

            self._log.debug(
                "channel.records_consumed",
                consumer_id=self._consumer_id,
                count=len(records),
            )
            return records

    def commit(self) -> None:
        """Коммитит offsets всех выданных с прошлого коммита записей.

        При включенном enable.auto.commit запрос не отправляется.
        """
        with self._access("commit"):
            if self.config.auto_commit_enabled:
                return

            self._require_consumer("commit")
            self._request.post(
                self._consumer_path("offsets"), "commit", COMMIT_ERROR_MAP
            )
            self._log.debug("channel.offsets_committed", consumer_id=self._consumer_id)

    def delete(self) -> None:
        """Удаляет consumer на сервисе.

        Без consumer ничего не делает. 404 (consumer уже удален) не считается
        ошибкой. Локальное состояние очищается в любом случае, после чего
        остальные ошибки пробрасываются.
        """
        with self._access("delete"):
            if self._consumer_id is None:
                return

            consumer_id = self._consumer_id
            try:
                self._request.delete(
                    self._consumer_path(), "delete", DELETE_ERROR_MAP
                )
                self._log.info("channel.consumer_deleted", consumer_id=consumer_id)
            except ConsumerError:
                self._log.info(
                    "channel.consumer_not_found",
                    consumer_id=consumer_id,
                    message=f"Consumer with ID {consumer_id} not found. "
                    "Resetting consumer anyways.",
                )
            finally:
                self._reset()

    # ------------------------------------------------------------------
    # Producer
    # ------------------------------------------------------------------

    def produce(self, records: ProduceBatch) -> None:
        """Отправляет пакет записей; consumer для этого не нужен.

        Args:
            records: ProducerRecords, последовательность ProducerRecord или
                уже сериализованный JSON ``{"records": [...]}``.

        Raises:
            PermanentError: Неподдерживаемый тип пакета; 400/404 от сервиса.
            TemporaryError: 401/403/409/500 и прочие временные сбои.
        """
        with self._access("produce"):
            body = self._produce_body(records)
            self._request.post(
                f"{self.config.producer_prefix}/produce",
                "produce",
                PRODUCE_ERROR_MAP,
                content=body,
                headers={"Content-Type": "application/json"},
            )
            self._log.debug("channel.records_produced", size_bytes=len(body))

    @staticmethod
    def _produce_body(records: ProduceBatch) -> bytes:
        if isinstance(records, bytes):
            return records
        if isinstance(records, str):
            return records.encode("utf-8")
        if isinstance(records, ProducerRecords):
            return records.to_json().encode("utf-8")
        if isinstance(records, Sequence) and all(
            isinstance(record, ProducerRecord) for record in records
        ):
            return ProducerRecords(records=list(records)).to_json().encode("utf-8")
        raise PermanentError(
            f"Unsupported records type: {type(records).__name__}", api="produce"
        )

    # ------------------------------------------------------------------
    # Run-цикл
    # ------------------------------------------------------------------

    def run(
        self,
        callback: RecordCallback,
        topics: Optional[Union[Sequence[str], str]] = None,
        timeout_ms: int = 0,
        wait_between_queries: float = 0,
    ) -> None:
        """Читает записи в цикле и передает их в callback до остановки.

        Каждая итерация: подписка (если нужна) -> consume -> callback ->
        commit. ConsumerError на любом шаге пересоздает consumer и
        переподписывает его на те же топики (если retry_on_fail выключен,
        цикл после пересоздания завершается). Прочие ошибки удаляют consumer
        и пробрасываются; ошибки клиента сохраняют api операции, в которой
        возникли, а PermanentError/TemporaryError из callback получают
        api="run".

        Повторный вызов во время работы цикла ничего не делает.

        Args:
            callback: ``callback(records, consumer_id)``; вернуть False, чтобы
                завершить цикл после коммита текущей порции.
            topics: Топики; по умолчанию текущие подписки канала.
            timeout_ms: Long-poll таймаут каждого consume.
            wait_between_queries: Пауза между итерациями (с); stop() ее
                прерывает.

        Raises:
            PermanentError: Канал уничтожен, нет consumer group, callback или
                топиков; фатальные ошибки цикла.
            TemporaryError: Фатальные временные ошибки цикла.
        """
        if not self._active:
            raise PermanentError("Channel has been destroyed", api="run")
        if not self.config.consumer_group:
            raise PermanentError(
                "No value specified for 'consumer_group' during channel init",
                api="run",
            )
        if not callable(callback):
            raise PermanentError("A callback must be specified", api="run")

        with self._run_condition:
            if self._running:
                self._log.info("channel.run_already_in_progress")
                return
            self._running = True
            self._run_thread = threading.get_ident()
            self._run_generation += 1

        try:
            with self._access("run"), bind_context(
                consumer_group=self.config.consumer_group,
                run_id=generate_run_id(),
            ):
                topic_list = self._resolve_topics(topics)
                self._log.info("channel.run_started", topics=topic_list)
                self._consume_loop(
                    callback, topic_list, timeout_ms, wait_between_queries
                )
        finally:
            with self._run_condition:
                self._running = False
                self._stop_requested = False
                self._run_thread = None
                self._run_condition.notify_all()
            self._log.info("channel.run_finished")

    def _resolve_topics(
        self, topics: Optional[Union[Sequence[str], str]]
    ) -> list[str]:
        if isinstance(topics, str):
            topics = [topics]
        topic_list = [topic for topic in (topics or []) if topic]
        if not topic_list:
            topic_list = list(self._subscriptions)
        if not topic_list:
            raise PermanentError(
                "No topics specified and channel is not subscribed to any topic",
                api="run",
            )
        return topic_list

    def _stop_was_requested(self) -> bool:
        with self._run_condition:
            return self._stop_requested

    def _consume_loop(
        self,
        callback: RecordCallback,
        topics: list[str],
        timeout_ms: int,
        wait_between_queries: float,
    ) -> None:
        subscribed = False

        while not self._stop_was_requested():
            try:
                if not subscribed:
                    self.subscribe(topics)
                    subscribed = True

                records = self.consume(timeout_ms)
                continue_running = self._invoke_callback(callback, records)
                self.commit()
            except ConsumerError as error:
                subscribed = False
                self._recreate_consumer(error)
                if not self.config.retry_on_fail:
                    self._log.info("channel.run_retry_disabled")
                    return
                continue
            except Exception as error:
                self._log.warning(
                    "channel.run_failed",
                    api=getattr(error, "api", None),
                    error=str(error),
                )
                self._delete_after_failure(error)
                raise

            if continue_running is False:
                self._log.info("channel.run_stopped_by_callback")
                return

            if wait_between_queries > 0:
                with self._run_condition:
                    self._run_condition.wait_for(
                        lambda: self._stop_requested,
                        timeout=wait_between_queries,
                    )

    def _invoke_callback(
        self, callback: RecordCallback, records: list[ConsumerRecord]
    ) -> Any:
        with bind_context(consumer_id=self._consumer_id):
            try:
                return callback(records, self._consumer_id)
            except (PermanentError, TemporaryError) as error:
                error.api = "run"
                raise

    def _recreate_consumer(self, error: ClientError) -> None:
        """Удаляет потерянный consumer и создает новый в новой HTTP сессии."""
        self._log.warning(
            "channel.run_recovering",
            consumer_id=self._consumer_id,
            api=error.api,
            reason=error.message,
        )
        try:
            self.delete()
            self._request.close()
            self._request = self._new_request()
            if self._stop_was_requested():
                return
            self.create()
        except ClientError as recreate_error:
            self._delete_after_failure(recreate_error)
            raise

    def _delete_after_failure(self, error: BaseException) -> None:
        # Исходная ошибка важнее ошибки удаления: последнюю только логируем
        try:
            self.delete()
        except ClientError as delete_error:
            self._log.warning(
                "channel.delete_after_failure_failed",
                error=delete_error.message,
                original_error=str(error),
            )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Останавливает run(), выполняющийся в другом потоке.

        Если цикл не запущен, возвращается сразу. Иначе блокируется, пока
        цикл не дойдет до границы итерации и не завершится. Вызов из самого
        цикла (например, из callback) только запрашивает остановку. Второй
        stop(), пока первый ждет, ничего не делает.

        Args:
            timeout: Максимальное время ожидания (с); None - без ограничения.

        Raises:
            StopError: Цикл не остановился за timeout.
        """
        with self._run_condition:
            if not self._running:
                return

            if self._run_thread == threading.get_ident():
                self._stop_requested = True
                self._log.info("channel.stop_requested_from_run")
                return

            # _stop_requested выставляет и сам цикл; no-op только при ожидающем stop()
            if self._stop_waiting:
                self._log.info("channel.stop_already_in_progress")
                return

            self._stop_requested = True
            self._stop_waiting = True
            generation = self._run_generation
            self._run_condition.notify_all()
            self._log.info("channel.stop_requested")

            try:
                stopped = self._run_condition.wait_for(
                    lambda: not self._running
                    or self._run_generation != generation,
                    timeout=timeout,
                )
            finally:
                self._stop_waiting = False
            if not stopped:
                raise StopError(
                    f"Channel did not stop within {timeout} seconds", api="stop"
                )

        self._log.info("channel.stopped")

    # ------------------------------------------------------------------
    # Жизненный цикл
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Останавливает цикл, удаляет consumer и освобождает HTTP клиент.

        После вызова канал неактивен и любая операция завершается
        PermanentError. Повторный вызов ничего не делает.

        Raises:
            TemporaryError: destroy уже выполняется в другом потоке; канал
                занят другим потоком; удаление consumer не удалось.
            StopError: Не удалось дождаться остановки цикла.
        """
        if not self._destroy_lock.acquire(blocking=False):
            raise TemporaryError(
                "Channel is already being destroyed", api="destroy"
            )
        try:
            if not self._active:
                self._log.info("channel.already_destroyed")
                return

            self.stop()
            with self._guard.hold("destroy"):
                try:
                    self.delete()
                finally:
                    self._request.close()
                    self._active = False
            self._log.info("channel.destroyed")
        finally:
            self._destroy_lock.release()

    def detach(self) -> None:
        """Освобождает HTTP клиент, не удаляя consumer на сервисе.

        Сессию можно продолжить в другом канале или процессе через resume()
        с сохраненными consumer_id и cookie привязки. После вызова канал
        неактивен.
        """
        if not self._destroy_lock.acquire(blocking=False):
            raise TemporaryError(
                "Channel is already being destroyed", api="detach"
            )
        try:
            if not self._active:
                return

            self.stop()
            with self._guard.hold("detach"):
                self._request.close()
                self._active = False
            self._log.info("channel.detached", consumer_id=self._consumer_id)
        finally:
            self._destroy_lock.release()

    def close(self) -> None:
        self.destroy()

    def __enter__(self) -> Channel:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
