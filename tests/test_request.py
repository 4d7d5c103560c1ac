"""Классификация HTTP ответов в ошибки клиента."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from dxlstreaming.auth import ChannelAuth
from dxlstreaming.channel import (
    CONSUMER_ERROR_MAP,
    CREATE_ERROR_MAP,
    PRODUCE_ERROR_MAP,
)
from dxlstreaming.errors import (
    ClientError,
    ConsumerError,
    ErrorType,
    PermanentError,
    StopError,
    TemporaryError,
)
from dxlstreaming.request import Request

from .conftest import BASE, StubServer, respond


@pytest.fixture
def auth() -> MagicMock:
    return MagicMock(spec=ChannelAuth)


@pytest.fixture
def request_layer(server: StubServer, auth: MagicMock) -> Request:
    layer = Request(BASE, auth, transport=server.transport)
    yield layer
    layer.close()


class TestClientError:
    def test_str_is_message(self):
        error = PermanentError("bad", status_code=400, api="create")
        assert str(error) == "bad"
        assert error.status_code == 400
        assert error.api == "create"
        assert error.cause is None

    def test_subclasses_share_base(self):
        for cls in (ConsumerError, PermanentError, TemporaryError, StopError):
            assert issubclass(cls, ClientError)

    def test_error_type_creates_matching_class(self):
        error = ErrorType.CONSUMER.create("gone", status_code=404, api="consume")
        assert isinstance(error, ConsumerError)
        assert error.status_code == 404
        assert error.api == "consume"

    def test_repr_names_class(self):
        assert repr(TemporaryError("x", api="commit")).startswith("TemporaryError(")


class TestErrorMaps:
    @pytest.mark.parametrize(
        "status_code, error_type",
        [(400, ErrorType.PERMANENT), (401, ErrorType.TEMPORARY),
         (403, ErrorType.TEMPORARY), (404, ErrorType.PERMANENT),
         (500, ErrorType.TEMPORARY)],
    )
    def test_create(self, status_code, error_type):
        assert CREATE_ERROR_MAP[status_code] is error_type

    def test_consumer_scoped_404_is_consumer_error(self):
        assert CONSUMER_ERROR_MAP[404] is ErrorType.CONSUMER
        assert CONSUMER_ERROR_MAP[409] is ErrorType.TEMPORARY

    def test_produce_404_is_permanent(self):
        assert PRODUCE_ERROR_MAP[404] is ErrorType.PERMANENT
        assert PRODUCE_ERROR_MAP[400] is ErrorType.PERMANENT


class TestRequestExecute:
    def test_success_returns_response(self, server, request_layer):
        server.add("GET", "/ping", respond(200, {"ok": True}))

        response = request_layer.get("/ping", "ping", CONSUMER_ERROR_MAP)

        assert response.json() == {"ok": True}

    def test_auth_hook_applied(self, server, request_layer, auth):
        server.add("GET", "/ping", respond(204))

        request_layer.get("/ping", "ping", CONSUMER_ERROR_MAP)

        auth.authenticate.assert_called_once()
        sent = auth.authenticate.call_args.args[0]
        assert isinstance(sent, httpx.Request)
        assert sent.url.path == "/ping"

    def test_mapped_status_message(self, server, request_layer):
        server.add("POST", "/c", respond(404, text="not found"))

        with pytest.raises(PermanentError) as exc_info:
            request_layer.post("/c", "create", CREATE_ERROR_MAP)

        error = exc_info.value
        assert error.message == "not found: HTTP/1.1 404 Not Found"
        assert error.status_code == 404
        assert error.api == "create"
        assert error.request == f"POST {BASE}/c HTTP/1.1"

    def test_unmapped_status_is_temporary(self, server, request_layer):
        server.add("POST", "/c", respond(502, text="gateway"))

        with pytest.raises(TemporaryError) as exc_info:
            request_layer.post("/c", "create", CREATE_ERROR_MAP)

        assert exc_info.value.message == (
            "Unexpected temporary error: HTTP/1.1 502 Bad Gateway"
        )
        assert exc_info.value.status_code == 502

    def test_consumer_error_on_404(self, server, request_layer):
        server.add("GET", "/records", respond(404, text="unknown consumer"))

        with pytest.raises(ConsumerError):
            request_layer.get("/records", "consume", CONSUMER_ERROR_MAP)

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_auth_failure_resets_auth(self, server, request_layer, auth, status_code):
        server.add("GET", "/records", respond(status_code, text="denied"))

        with pytest.raises(TemporaryError):
            request_layer.get("/records", "consume", CONSUMER_ERROR_MAP)

        auth.reset.assert_called_once()

    def test_other_failures_keep_auth(self, server, request_layer, auth):
        server.add("GET", "/records", respond(500, text="boom"))

        with pytest.raises(TemporaryError):
            request_layer.get("/records", "consume", CONSUMER_ERROR_MAP)

        auth.reset.assert_not_called()

    def test_transport_failure_is_temporary(self, server, request_layer):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        server.add("GET", "/records", refuse)

        with pytest.raises(TemporaryError) as exc_info:
            request_layer.get("/records", "consume", CONSUMER_ERROR_MAP)

        error = exc_info.value
        assert error.message.startswith("Unexpected temporary error:")
        assert isinstance(error.cause, httpx.ConnectError)
        assert error.status_code == 0
        assert error.api == "consume"

    def test_auth_errors_propagate_unchanged(self, server, request_layer, auth):
        auth.authenticate.side_effect = PermanentError("Unauthorized 401: no")
        server.add("GET", "/records", respond(200, {}))

        with pytest.raises(PermanentError, match="Unauthorized 401"):
            request_layer.get("/records", "consume", CONSUMER_ERROR_MAP)

        assert server.calls() == []

    def test_missing_cert_bundle_is_temporary(self, auth, tmp_path):
        with pytest.raises(TemporaryError, match="Failed to create http client"):
            Request(BASE, auth, verify_cert_bundle=str(tmp_path / "missing.pem"))


class TestStickinessCookie:
    def test_cookie_round_trip(self, server, request_layer):
        server.add(
            "POST", "/c",
            respond(200, {}, headers={"Set-Cookie": "AWSALB=abc; Path=/"}),
        )
        server.add("GET", "/next", respond(204))

        request_layer.post("/c", "create", CREATE_ERROR_MAP)
        cookie = request_layer.get_stickiness_cookie()
        request_layer.get("/next", "consume", CONSUMER_ERROR_MAP)

        assert cookie.value == "abc"
        assert cookie.domain == "streaming.example.com"
        assert "AWSALB=abc" in server.calls("GET", "/next")[0].headers["cookie"]

    def test_missing_cookie_is_empty(self, request_layer):
        cookie = request_layer.get_stickiness_cookie()
        assert cookie.value == ""
        assert cookie.domain == ""

    def test_reset_cookies(self, server, request_layer):
        server.add(
            "POST", "/c",
            respond(200, {}, headers={"Set-Cookie": "AWSALB=abc; Path=/"}),
        )
        request_layer.post("/c", "create", CREATE_ERROR_MAP)

        request_layer.reset_cookies()

        assert request_layer.get_stickiness_cookie().value == ""
