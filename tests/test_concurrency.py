"""Доступ из нескольких потоков: guard, stop(), destroy()."""

from __future__ import annotations

import threading

import httpx
import pytest

from dxlstreaming import PermanentError, StopError, TemporaryError
from dxlstreaming.guard import AccessGuard

from .conftest import CONSUMERS, consumer_path, respond

WAIT = 5


class Gate:
    """Маршрут stub сервера, блокирующий запрос до release()."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.entered = threading.Event()
        self._released = threading.Event()

    def release(self) -> None:
        self._released.set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.entered.set()
        self._released.wait(WAIT)
        return httpx.Response(
            self.response.status_code,
            headers=self.response.headers,
            content=self.response.content,
        )


def start(target, *args) -> tuple[threading.Thread, list[BaseException]]:
    errors: list[BaseException] = []

    def runner():
        try:
            target(*args)
        except BaseException as err:
            errors.append(err)

    thread = threading.Thread(target=runner, daemon=True)
    thread.start()
    return thread, errors


class TestAccessGuard:
    def test_reentrant_for_owner(self):
        guard = AccessGuard()

        with guard.hold("outer"):
            with guard.hold("inner"):
                assert guard.depth == 2
            assert guard.owner == threading.get_ident()

        assert guard.owner is None
        assert guard.depth == 0

    def test_foreign_thread_rejected_without_blocking(self):
        guard = AccessGuard()
        guard.acquire("consume")
        errors = []

        def contender():
            try:
                guard.acquire("commit")
            except TemporaryError as err:
                errors.append(err)

        thread = threading.Thread(target=contender)
        thread.start()
        thread.join(WAIT)

        assert not thread.is_alive()
        assert len(errors) == 1
        assert errors[0].api == "commit"
        guard.release()

    def test_released_on_exception(self):
        guard = AccessGuard()

        with pytest.raises(ValueError):
            with guard.hold("x"):
                raise ValueError("boom")

        assert guard.owner is None

    def test_release_by_non_owner(self):
        with pytest.raises(RuntimeError):
            AccessGuard().release()


class TestSingleAccessor:
    def test_second_thread_gets_temporary_error(self, server, make_channel):
        server.with_consumer("c1")
        gate = Gate(respond(200, {"records": []}))
        server.add("GET", consumer_path("c1", "records"), gate)
        channel = make_channel()
        channel.subscribe(["t1"])

        thread, errors = start(channel.consume)
        assert gate.entered.wait(WAIT)
        try:
            with pytest.raises(TemporaryError, match="concurrent access"):
                channel.commit()
        finally:
            gate.release()
            thread.join(WAIT)

        assert errors == []
        assert server.calls("POST", consumer_path("c1", "offsets")) == []

        channel.commit()
        assert len(server.calls("POST", consumer_path("c1", "offsets"))) == 1


class TestStop:
    def test_stop_when_idle_returns(self, make_channel):
        make_channel().stop()

    def test_stop_from_other_thread(self, server, make_channel):
        server.with_consumer("c1")
        server.add("GET", consumer_path("c1", "records"), respond(200, {"records": []}))
        first_batch = threading.Event()

        def callback(records, consumer_id):
            first_batch.set()
            return True

        channel = make_channel()
        thread, errors = start(channel.run, callback, ["t1"])
        assert first_batch.wait(WAIT)

        channel.stop(timeout=WAIT)

        assert not channel.running
        thread.join(WAIT)
        assert not thread.is_alive()
        assert errors == []
        # Остановка не удаляет consumer
        assert server.calls("DELETE") == []

    def test_restart_after_stop(self, server, make_channel):
        server.with_consumer("c1")
        server.add("GET", consumer_path("c1", "records"), respond(200, {"records": []}))
        channel = make_channel()

        for _ in range(2):
            batch = threading.Event()

            def callback(records, consumer_id, batch=batch):
                batch.set()
                return True

            thread, errors = start(channel.run, callback, ["t1"])
            assert batch.wait(WAIT)
            channel.stop(timeout=WAIT)
            thread.join(WAIT)
            assert errors == []
            assert not channel.running

        assert len(server.calls("POST", CONSUMERS)) == 1

    def test_stop_interrupts_wait_between_queries(self, server, make_channel):
        server.with_consumer("c1")
        server.add("GET", consumer_path("c1", "records"), respond(200, {"records": []}))
        batch = threading.Event()

        def callback(records, consumer_id):
            batch.set()
            return True

        channel = make_channel()
        thread, errors = start(channel.run, callback, ["t1"], 0, 60)
        assert batch.wait(WAIT)

        channel.stop(timeout=WAIT)

        thread.join(WAIT)
        assert not thread.is_alive()
        assert len(server.calls("GET", consumer_path("c1", "records"))) == 1

    def test_stop_from_callback(self, server, make_channel):
        server.with_consumer("c1")
        server.add("GET", consumer_path("c1", "records"), respond(200, {"records": []}))
        channel = make_channel()
        calls = []

        def callback(records, consumer_id):
            calls.append(consumer_id)
            channel.stop()
            return True

        channel.run(callback, ["t1"])

        assert calls == ["c1"]
        assert len(server.calls("POST", consumer_path("c1", "offsets"))) == 1
        assert not channel.running

    def test_stop_waits_when_callback_already_requested_stop(self, server, make_channel):
        server.with_consumer("c1")
        server.add("GET", consumer_path("c1", "records"), respond(200, {"records": []}))
        channel = make_channel()
        in_callback = threading.Event()
        release = threading.Event()

        def callback(records, consumer_id):
            channel.stop()
            in_callback.set()
            release.wait(WAIT)
            return True

        thread, errors = start(channel.run, callback, ["t1"])
        assert in_callback.wait(WAIT)
        timer = threading.Timer(0.1, release.set)
        timer.start()

        try:
            channel.stop(timeout=WAIT)

            assert not channel.running
        finally:
            release.set()
            timer.join(WAIT)
            thread.join(WAIT)

        assert errors == []

    def test_stop_timeout_raises_stop_error(self, server, make_channel):
        server.with_consumer("c1")
        gate = Gate(respond(200, {"records": []}))
        server.add("GET", consumer_path("c1", "records"), gate)
        channel = make_channel()
        thread, errors = start(channel.run, lambda records, consumer_id: True, ["t1"])
        assert gate.entered.wait(WAIT)

        try:
            with pytest.raises(StopError):
                channel.stop(timeout=0.05)
        finally:
            gate.release()
            thread.join(WAIT)

        assert not thread.is_alive()
        assert errors == []

    def test_concurrent_run_is_noop(self, server, make_channel):
        server.with_consumer("c1")
        gate = Gate(respond(200, {"records": []}))
        server.add("GET", consumer_path("c1", "records"), gate)
        channel = make_channel()
        thread, errors = start(channel.run, lambda records, consumer_id: False, ["t1"])
        assert gate.entered.wait(WAIT)

        try:
            channel.run(lambda records, consumer_id: False, ["t1"])
        finally:
            gate.release()
            thread.join(WAIT)

        assert errors == []
        assert len(server.calls("GET", consumer_path("c1", "records"))) == 1


class TestDestroy:
    def test_destroy_deletes_and_deactivates(self, server, make_channel):
        server.with_consumer("c1")
        channel = make_channel()
        channel.create()

        channel.destroy()

        assert not channel.active
        assert server.trace()[-1] == f"DELETE {consumer_path('c1')}"
        with pytest.raises(PermanentError, match="destroyed"):
            channel.create()
        with pytest.raises(PermanentError, match="destroyed"):
            channel.run(lambda records, consumer_id: False, ["t1"])

    def test_destroy_is_idempotent(self, server, make_channel):
        server.with_consumer("c1")
        channel = make_channel()
        channel.create()

        channel.destroy()
        channel.destroy()

        assert len(server.calls("DELETE")) == 1

    def test_context_manager_destroys(self, server, make_channel):
        server.with_consumer("c1")

        with make_channel() as channel:
            channel.create()

        assert not channel.active
        assert len(server.calls("DELETE")) == 1

    def test_destroy_stops_running_loop(self, server, make_channel):
        server.with_consumer("c1")
        server.add("GET", consumer_path("c1", "records"), respond(200, {"records": []}))
        batch = threading.Event()

        def callback(records, consumer_id):
            batch.set()
            return True

        channel = make_channel()
        thread, errors = start(channel.run, callback, ["t1"])
        assert batch.wait(WAIT)

        channel.destroy()

        thread.join(WAIT)
        assert not thread.is_alive()
        assert errors == []
        assert not channel.active
        assert len(server.calls("DELETE", consumer_path("c1"))) == 1

    def test_concurrent_destroy_rejected(self, server, make_channel):
        server.with_consumer("c1")
        gate = Gate(respond(204))
        server.routes[("DELETE", consumer_path("c1"))] = [gate]
        channel = make_channel()
        channel.create()

        thread, errors = start(channel.destroy)
        assert gate.entered.wait(WAIT)
        try:
            with pytest.raises(TemporaryError, match="already being destroyed"):
                channel.destroy()
        finally:
            gate.release()
            thread.join(WAIT)

        assert errors == []
        assert not channel.active

    def test_detach_keeps_consumer(self, server, make_channel):
        server.with_consumer("c1")
        channel = make_channel()
        channel.create()

        channel.detach()

        assert not channel.active
        assert channel.consumer_id == "c1"
        assert server.calls("DELETE") == []
