"""
Командная строка клиента сервиса потоков.

Каждый запуск выполняет одну операцию и печатает в stdout один JSON
ExecutionResult:

    {"code": "200", "result": ..., "options": {...}}

code - HTTP-подобный статус: 200/204 при успехе, статус ошибки (или 0, если
статуса нет) при сбое, 400 при некорректной командной строке. Пароли,
секреты и токены в options маскируются.

Сессия consumer переживает отдельные запуски: create возвращает consumerId и
cookie привязки, которые передаются следующим операциям через
--consumer-id, --cookie и --domain.

Example:
    ```bash
    dxlstreaming-cli --operation login --auth-url https://id.example.com/identity/v1/login \\
        --user me --password secret
    dxlstreaming-cli --operation create --url https://streaming.example.com \\
        --token $TOKEN --cg alerts --config auto.offset.reset=earliest
    dxlstreaming-cli --operation subscribe --url https://streaming.example.com \\
        --token $TOKEN --cg alerts --consumer-id $ID --cookie $COOKIE \\
        --domain streaming.example.com --topic case-mgmt-events
    ```
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from typing import Any, Callable, NoReturn, Optional
from urllib.parse import urlsplit

import httpx
from dxlstreaming_logger import configure_logging, get_logger
from pydantic import BaseModel, Field, ValidationError

from .auth import ChannelAuthToken, get_token, login
from .channel import Channel
from .config import (
    DEFAULT_CONSUMER_PATH_PREFIX,
    DEFAULT_PRODUCER_PATH_PREFIX,
    HttpProxySettings,
)
from .datatypes import ProducerRecord, ProducerRecords, StickinessCookie
from .errors import ClientError

logger = get_logger(__name__)

OPERATIONS = (
    "login",
    "token",
    "create",
    "subscribe",
    "subscriptions",
    "consume",
    "commit",
    "produce",
)

SESSION_OPTIONS = ("url", "token", "consumer_id", "cookie", "domain")

# Обязательные опции каждой операции (имена argparse dest)
REQUIRED_OPTIONS: dict[str, tuple[str, ...]] = {
    "login": ("auth_url", "user", "password"),
    "token": ("auth_url", "client_id", "client_secret"),
    "create": ("url", "token", "cg"),
    "subscribe": (*SESSION_OPTIONS, "cg", "topic"),
    "subscriptions": SESSION_OPTIONS,
    "consume": SESSION_OPTIONS,
    "commit": SESSION_OPTIONS,
    "produce": ("url", "token", "records"),
}

MASKED_OPTIONS = frozenset({"password", "client_secret", "token"})
MASK = "****"

USAGE_ERROR_CODE = "400"


class CliUsageError(Exception):
    """Некорректная командная строка."""


class ExecutionResult(BaseModel):
    """Результат операции командной строки."""

    code: str = Field(..., description="HTTP-подобный статус операции")
    result: Any = Field(default="", description="Данные операции")
    options: dict[str, Any] = Field(
        default_factory=dict, description="Опции запуска (секреты маскируются)"
    )

    def to_json(self) -> str:
        return json.dumps(self.model_dump(), ensure_ascii=False)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise CliUsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="dxlstreaming-cli",
        description="DXL Streaming client command line tool",
    )
    parser.add_argument(
        "--operation", required=True, choices=OPERATIONS, help="Операция"
    )

    auth = parser.add_argument_group("authentication")
    auth.add_argument("--auth-url", help="URL сервиса идентификации (с путем)")
    auth.add_argument("--user", help="Пользователь (login)")
    auth.add_argument("--password", help="Пароль (login)")
    auth.add_argument("--client-id", help="Client ID (token)")
    auth.add_argument("--client-secret", help="Client secret (token)")
    auth.add_argument("--audience", help="Audience (token)")
    auth.add_argument(
        "--grant-type", default="client_credentials", help="Grant type (token)"
    )
    auth.add_argument("--scope", help="Scope (token)")

    channel = parser.add_argument_group("channel")
    channel.add_argument("--url", help="URL сервиса потоков")
    channel.add_argument("--token", help="Токен авторизации")
    channel.add_argument("--cg", help="Consumer group")
    channel.add_argument("--config", help="Свойства consumer: k=v,k2=v2")
    channel.add_argument(
        "--consumer-path-prefix",
        default=DEFAULT_CONSUMER_PATH_PREFIX,
        help="Префикс путей API consumer",
    )
    channel.add_argument(
        "--producer-path-prefix",
        default=DEFAULT_PRODUCER_PATH_PREFIX,
        help="Префикс путей API producer",
    )
    channel.add_argument(
        "--retry", default="true", choices=("true", "false"), help="Retry on fail"
    )
    channel.add_argument("--consumer-id", help="Consumer ID")
    channel.add_argument("--cookie", help="Значение cookie привязки")
    channel.add_argument("--domain", help="Домен cookie привязки")
    channel.add_argument("--topic", help="Топики через запятую: t1,t2")
    channel.add_argument(
        "--records",
        help='JSON список записей: [{"topic": ..., "payload": ..., '
        '"shardingKey": ..., "headers": {...}}]',
    )

    common = parser.add_argument_group("common")
    common.add_argument(
        "--verify-cert-bundle",
        default="",
        help="PEM данные или путь к CA bundle",
    )
    common.add_argument("--http-proxy", help="Прокси: [user:password@]host:port")
    common.add_argument("--log-level", default="WARNING", help="Уровень логов (stderr)")
    return parser


# ----------------------------------------------------------------------
# Разбор значений опций
# ----------------------------------------------------------------------


def parse_config(value: Optional[str]) -> dict[str, str]:
    """Разбирает ``k=v,k2=v2`` в словарь.

    Examples:
        >>> parse_config("auto.offset.reset=earliest, max.poll.records=10")
        {'auto.offset.reset': 'earliest', 'max.poll.records': '10'}
    """
    if not value:
        return {}

    configs = {}
    for pair in value.split(","):
        if not pair.strip():
            continue
        key, sep, item = pair.partition("=")
        if not sep or not key.strip():
            raise CliUsageError(f"Invalid config entry: {pair!r}")
        configs[key.strip()] = item.strip()
    return configs


def parse_topics(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [topic.strip() for topic in value.split(",") if topic.strip()]


def parse_http_proxy(value: Optional[str]) -> Optional[HttpProxySettings]:
    """Разбирает ``[user:password@]host:port``."""
    if not value:
        return None

    credentials, _, address = value.rpartition("@")
    host, _, port = address.rpartition(":")
    if not host or not port.isdigit():
        raise CliUsageError(f"Invalid http proxy: {value!r}")

    username, _, password = credentials.partition(":")
    return HttpProxySettings(
        url=host,
        port=int(port),
        username=username or None,
        password=password or None,
    )


def parse_records(value: Optional[str]) -> ProducerRecords:
    try:
        items = json.loads(value or "")
    except ValueError as err:
        raise CliUsageError(f"Invalid records JSON: {err}") from err
    if not isinstance(items, list) or not items:
        raise CliUsageError("records parameter may not be empty")

    records = ProducerRecords()
    try:
        for item in items:
            records.add(
                ProducerRecord.create(
                    item.get("topic", ""),
                    item.get("payload"),
                    sharding_key=item.get("shardingKey"),
                    headers=item.get("headers"),
                )
            )
    except (AttributeError, ValidationError) as err:
        raise CliUsageError(f"Invalid record: {err}") from err
    return records


def split_url(value: str) -> tuple[str, str]:
    """Делит URL на базу (схема, хост, порт) и путь.

    Examples:
        >>> split_url("https://id.example.com:8443/identity/v1/login")
        ('https://id.example.com:8443', '/identity/v1/login')
    """
    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        raise CliUsageError(f"Invalid url: {value!r}")
    return f"{parts.scheme}://{parts.netloc}", parts.path.rstrip("/")


def masked_options(args: argparse.Namespace) -> dict[str, Any]:
    options = {}
    for name, value in vars(args).items():
        if value is None or value == "":
            continue
        key = name.replace("_", "-")
        options[key] = MASK if name in MASKED_OPTIONS else value
    return options


# ----------------------------------------------------------------------
# Операции
# ----------------------------------------------------------------------


OperationResult = tuple[str, Any]


def _channel(
    args: argparse.Namespace,
    transport: Optional[httpx.BaseTransport],
    **options: Any,
) -> Channel:
    base, _ = split_url(args.url)
    return Channel(
        base,
        ChannelAuthToken(args.token),
        consumer_path_prefix=args.consumer_path_prefix,
        producer_path_prefix=args.producer_path_prefix,
        retry_on_fail=args.retry == "true",
        verify_cert_bundle=args.verify_cert_bundle,
        http_proxy=parse_http_proxy(args.http_proxy),
        transport=transport,
        **options,
    )


def _resume(channel: Channel, args: argparse.Namespace) -> None:
    domain = args.domain or urlsplit(args.url).hostname or ""
    channel.resume(
        args.consumer_id,
        StickinessCookie(value=args.cookie or "", domain=domain),
    )


def run_login(
    args: argparse.Namespace, transport: Optional[httpx.BaseTransport]
) -> OperationResult:
    base, path = split_url(args.auth_url)
    token = login(
        base,
        args.user,
        args.password,
        path_fragment=path or None,
        verify_cert_bundle=args.verify_cert_bundle,
        http_proxy=parse_http_proxy(args.http_proxy),
        transport=transport,
    )
    return "200", token


def run_token(
    args: argparse.Namespace, transport: Optional[httpx.BaseTransport]
) -> OperationResult:
    base, path = split_url(args.auth_url)
    token = get_token(
        base,
        args.client_id,
        args.client_secret,
        audience=args.audience,
        grant_type=args.grant_type,
        scope=args.scope,
        path_fragment=path or None,
        verify_cert_bundle=args.verify_cert_bundle,
        http_proxy=parse_http_proxy(args.http_proxy),
        transport=transport,
    )
    return "200", token


def run_create(
    args: argparse.Namespace, transport: Optional[httpx.BaseTransport]
) -> OperationResult:
    channel = _channel(
        args,
        transport,
        consumer_group=args.cg,
        extra_configs=parse_config(args.config),
    )
    try:
        channel.create()
        result = {
            "consumerId": channel.consumer_id,
            "cookie": channel.get_stickiness_cookie().model_dump(),
        }
    finally:
        channel.detach()
    return "200", result


def run_subscribe(
    args: argparse.Namespace, transport: Optional[httpx.BaseTransport]
) -> OperationResult:
    topics = parse_topics(args.topic)
    channel = _channel(args, transport, consumer_group=args.cg)
    try:
        _resume(channel, args)
        channel.subscribe(topics)
    finally:
        channel.detach()
    return "204", ""


def run_subscriptions(
    args: argparse.Namespace, transport: Optional[httpx.BaseTransport]
) -> OperationResult:
    channel = _channel(args, transport)
    try:
        _resume(channel, args)
        topics = channel.subscriptions()
    finally:
        channel.detach()
    return "200", topics


def run_consume(
    args: argparse.Namespace, transport: Optional[httpx.BaseTransport]
) -> OperationResult:
    channel = _channel(args, transport)
    try:
        _resume(channel, args)
        channel.refresh_subscriptions()
        records = channel.consume()
    finally:
        channel.detach()
    return "200", [record.to_wire() for record in records]


def run_commit(
    args: argparse.Namespace, transport: Optional[httpx.BaseTransport]
) -> OperationResult:
    channel = _channel(args, transport)
    try:
        _resume(channel, args)
        channel.commit()
    finally:
        channel.detach()
    return "204", ""


def run_produce(
    args: argparse.Namespace, transport: Optional[httpx.BaseTransport]
) -> OperationResult:
    records = parse_records(args.records)
    channel = _channel(args, transport)
    try:
        channel.produce(records)
    finally:
        channel.detach()
    return "204", ""


OPERATION_HANDLERS: dict[
    str,
    Callable[[argparse.Namespace, Optional[httpx.BaseTransport]], OperationResult],
] = {
    "login": run_login,
    "token": run_token,
    "create": run_create,
    "subscribe": run_subscribe,
    "subscriptions": run_subscriptions,
    "consume": run_consume,
    "commit": run_commit,
    "produce": run_produce,
}


def _configure_logging(log_level: str) -> None:
    # Приложение, встроившее CLI, могло уже настроить логирование само
    try:
        configure_logging(service_name="dxlstreaming-cli", log_level=log_level.upper())
    except (RuntimeError, ValidationError) as err:
        logger.debug("cli.logging_not_configured", reason=str(err))


def _check_required(args: argparse.Namespace) -> None:
    missing = [
        "--" + name.replace("_", "-")
        for name in REQUIRED_OPTIONS[args.operation]
        if not getattr(args, name)
    ]
    if missing:
        raise CliUsageError(
            f"Missing required options for {args.operation}: {', '.join(missing)}"
        )


def execute(
    argv: Optional[Sequence[str]] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ExecutionResult:
    """Разбирает аргументы и выполняет операцию.

    Args:
        argv: Аргументы командной строки (по умолчанию sys.argv[1:]).
        transport: Подменный транспорт httpx (используется в тестах).

    Returns:
        ExecutionResult; исключения клиента превращаются в результат с
        кодом ошибки.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        _check_required(args)
    except CliUsageError as err:
        return ExecutionResult(code=USAGE_ERROR_CODE, result=str(err))

    _configure_logging(args.log_level)
    options = masked_options(args)
    try:
        code, result = OPERATION_HANDLERS[args.operation](args, transport)
    except CliUsageError as err:
        return ExecutionResult(code=USAGE_ERROR_CODE, result=str(err), options=options)
    except ClientError as err:
        logger.warning(
            "cli.operation_failed",
            operation=args.operation,
            api=err.api,
            status_code=err.status_code,
            error=err.message,
        )
        return ExecutionResult(
            code=str(err.status_code or 0), result=err.message, options=options
        )

    return ExecutionResult(code=code, result=result, options=options)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Точка входа dxlstreaming-cli. Возвращает код выхода процесса."""
    result = execute(argv)
    print(result.to_json())
    return 0 if result.code in ("200", "204") else 1


if __name__ == "__main__":
    sys.exit(main())
