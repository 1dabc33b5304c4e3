"""
Tests for outcome classification and the connect/socket timer race.

Uses the scripted FakeTransport from conftest so every socket event is
driven by the test.
"""

import asyncio

import pytest

from prom_request.core.config import RequestConfig
from prom_request.core.exceptions import (
    ConfigurationError,
    ConnectionError,
    ResponseError,
    TransportError,
)
from prom_request.core.orchestrator import (
    TimeoutGuard,
    classify_response,
    classify_transport_error,
    create_request,
)
from prom_request.core.response import Response
from prom_request.core.timers import TimerState

URL = "http://foo.com"


class Outcomes:
    """Collects resolve/reject calls in order."""

    def __init__(self):
        self.resolved = []
        self.rejected = []

    def resolve(self, response):
        self.resolved.append(response)

    def reject(self, error):
        self.rejected.append(error)


class TestClassifyTransportError:

    @pytest.mark.parametrize("code", ["ETIMEDOUT", "ESOCKETTIMEDOUT"])
    def test_timeout_codes_normalized(self, code):
        error = classify_transport_error(TransportError("timed out", code), URL + "/timeout")

        assert isinstance(error, ConnectionError)
        assert error.code == "ESOCKETTIMEDOUT"
        assert error.message == "Connect timeout occurred when requesting url: http://foo.com/timeout"

    def test_connect_marker_inferred_from_code(self):
        assert classify_transport_error(TransportError("x", "ETIMEDOUT"), URL).connect is True
        assert classify_transport_error(TransportError("x", "ESOCKETTIMEDOUT"), URL).connect is False

    def test_explicit_connect_marker_kept(self):
        error = classify_transport_error(TransportError("x", "ESOCKETTIMEDOUT", connect=True), URL)

        assert error.connect is True

    def test_other_errors_wrapped_verbatim(self):
        error = classify_transport_error(TransportError("getaddrinfo failed", "ENOTFOUND"), URL)

        assert error.message == "getaddrinfo failed"
        assert error.code == "ENOTFOUND"
        assert error.connect is None

    def test_error_without_code(self):
        error = classify_transport_error(TransportError("shit"), URL + "/error")

        assert error.message == "shit"
        assert error.code is None


class TestClassifyResponse:

    def test_success(self):
        assert classify_response(Response(status_code=200, body=""), URL) is None

    def test_non_2xx(self):
        response = Response(status_code=500)
        error = classify_response(response, URL + "/500")

        assert error.message == "Request to http://foo.com/500 failed. code: 500"
        assert error.status_code == 500
        assert error.response is response

    def test_status_checked_before_json(self):
        error = classify_response(Response(status_code=404, body="nope"), URL, expect_json=True)

        assert "failed. code: 404" in error.message

    @pytest.mark.parametrize("body", ["fss", 42, "a string", None, True])
    def test_json_expected_but_not_object_or_array(self, body):
        error = classify_response(Response(status_code=200, body=body), URL + "/badJSON", expect_json=True)

        assert isinstance(error, ResponseError)
        assert error.message == "Unable to parse json from url: http://foo.com/badJSON"

    @pytest.mark.parametrize("body", [{"a": 1}, [1, 2], {}, []])
    def test_json_object_or_array(self, body):
        assert classify_response(Response(status_code=200, body=body), URL, expect_json=True) is None


class TestCreateRequest:

    @pytest.mark.asyncio
    async def test_response_resolves(self, fake_transport):
        outcomes = Outcomes()
        call = create_request(RequestConfig(url=URL), fake_transport, outcomes.resolve, outcomes.reject)

        response = call.respond(200, "ok")

        assert outcomes.resolved == [response]
        assert outcomes.rejected == []

    @pytest.mark.asyncio
    async def test_transport_error_rejects(self, fake_transport):
        outcomes = Outcomes()
        call = create_request(RequestConfig(url=URL), fake_transport, outcomes.resolve, outcomes.reject)

        call.fail("socket hang up", "ECONNRESET")

        assert len(outcomes.rejected) == 1
        assert outcomes.rejected[0].code == "ECONNRESET"

    @pytest.mark.asyncio
    async def test_config_checked_before_issue(self, fake_transport):
        outcomes = Outcomes()

        with pytest.raises(ConfigurationError):
            create_request(RequestConfig(), fake_transport, outcomes.resolve, outcomes.reject)

        assert fake_transport.calls == []


class TestConnectTimeout:

    @pytest.mark.asyncio
    async def test_fires_before_connect(self, fake_transport):
        outcomes = Outcomes()
        call = create_request(
            RequestConfig(url="http://www.google.com:81", connect_timeout=10),
            fake_transport, outcomes.resolve, outcomes.reject,
        )
        call.acquire_socket(connecting=True)

        await asyncio.sleep(0.05)

        assert call.aborted
        first = outcomes.rejected[0]
        assert isinstance(first, ConnectionError)
        assert first.message == "Connect timeout occurred when requesting url: http://www.google.com:81"
        assert first.code == "ESOCKETTIMEDOUT"
        assert first.connect is True

    @pytest.mark.asyncio
    async def test_abort_reports_secondary_error(self, fake_transport):
        outcomes = Outcomes()
        call = create_request(
            RequestConfig(url=URL, connect_timeout=10),
            fake_transport, outcomes.resolve, outcomes.reject,
        )

        await asyncio.sleep(0.05)

        assert [e.code for e in outcomes.rejected] == ["ESOCKETTIMEDOUT", "ECONNABORTED"]
        assert outcomes.rejected[1].message == "Request aborted"

    @pytest.mark.asyncio
    async def test_connect_cancels_timer(self, fake_transport):
        outcomes = Outcomes()
        call = create_request(
            RequestConfig(url=URL + "/slowBody", connect_timeout=1),
            fake_transport, outcomes.resolve, outcomes.reject,
        )
        socket = call.acquire_socket(connecting=True)
        socket.mark_connected()

        await asyncio.sleep(0.03)
        call.respond(200, "ok")

        assert not call.aborted
        assert outcomes.rejected == []
        assert len(outcomes.resolved) == 1

    @pytest.mark.asyncio
    async def test_not_materialized_skips_abort(self, unmaterialized_transport):
        transport = unmaterialized_transport
        outcomes = Outcomes()
        call = create_request(
            RequestConfig(url=URL, connect_timeout=5),
            transport, outcomes.resolve, outcomes.reject,
        )

        await asyncio.sleep(0.03)

        assert not call.aborted
        assert len(outcomes.rejected) == 1
        assert outcomes.rejected[0].connect is True

    @pytest.mark.asyncio
    async def test_pooled_socket_does_not_cancel_connect_timer(self, fake_transport):
        """
        Known edge case: an already-connected pooled socket never emits
        "connect", so the connect timer stays armed until the call completes.
        """
        outcomes = Outcomes()
        config = RequestConfig(url=URL, connect_timeout=50)
        call = fake_transport.issue_call(config)
        guard = TimeoutGuard(call, config).attach()
        call.on("error", lambda e: outcomes.reject(e))

        call.acquire_socket(connecting=False)

        assert guard.connect_timer.state is TimerState.ARMED

        call.respond(200, "ok")

        assert guard.connect_timer.state is TimerState.CANCELLED
        assert outcomes.rejected == []


class TestSocketTimeout:

    @pytest.mark.asyncio
    async def test_connected_socket_arms_immediately(self, fake_transport):
        outcomes = Outcomes()
        call = create_request(
            RequestConfig(url=URL + "/timeout", socket_timeout=10),
            fake_transport, outcomes.resolve, outcomes.reject,
        )
        call.acquire_socket(connecting=False)

        await asyncio.sleep(0.05)

        assert call.aborted
        first = outcomes.rejected[0]
        assert first.code == "ESOCKETTIMEDOUT"
        assert first.connect is False
        assert first.message == "Connect timeout occurred when requesting url: http://foo.com/timeout"

    @pytest.mark.asyncio
    async def test_connecting_socket_arms_on_connect(self, fake_transport):
        config = RequestConfig(url=URL, socket_timeout=10)
        call = fake_transport.issue_call(config)
        guard = TimeoutGuard(call, config).attach()

        socket = call.acquire_socket(connecting=True)
        await asyncio.sleep(0.03)

        assert guard.socket_timer is None
        assert not call.aborted

        socket.mark_connected()

        assert guard.socket_timer.state is TimerState.ARMED
        guard.cancel()

    @pytest.mark.asyncio
    async def test_response_cancels_socket_timer(self, fake_transport):
        outcomes = Outcomes()
        call = create_request(
            RequestConfig(url=URL, socket_timeout=20),
            fake_transport, outcomes.resolve, outcomes.reject,
        )
        call.acquire_socket(connecting=False)
        call.respond(200, "ok")

        await asyncio.sleep(0.05)

        assert not call.aborted
        assert outcomes.rejected == []
        assert len(outcomes.resolved) == 1

    @pytest.mark.asyncio
    async def test_no_timers_without_config(self, fake_transport):
        config = RequestConfig(url=URL)
        call = fake_transport.issue_call(config)
        guard = TimeoutGuard(call, config).attach()

        call.acquire_socket(connecting=False)

        assert guard.connect_timer is None
        assert guard.socket_timer is None
