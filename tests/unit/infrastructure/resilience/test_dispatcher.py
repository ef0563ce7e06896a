import asyncio
import json

import pytest

from campfin.domain.events.api_events import (
    ApiCallDeferred, ApiCallFailed, ApiCallSucceeded, RetryScheduled,
)
from campfin.domain.interfaces.transport import HttpTransport, TransportResponse
from campfin.domain.models.envelope import ResponseStatus
from campfin.domain.models.errors import ApiError, ClientClosedError, ErrorKind, ParseError
from campfin.domain.models.request import ClientRequest, ClientRequestBuilder
from campfin.infrastructure.resilience.concurrency_gate import ConcurrencyGate
from campfin.infrastructure.resilience.dispatcher import RequestDispatcher
from campfin.infrastructure.resilience.retry_policy import RetryPolicy

CANDIDATE_PATH = "2016/candidates/P60007168"


@pytest.fixture
def events():
    return []


@pytest.fixture
def make_dispatcher(events, recording_sleep):
    def _make(transport, gate=None, retry_policy=None, sleep=None):
        return RequestDispatcher(
            transport=transport,
            gate=gate or ConcurrencyGate(2),
            retry_policy=retry_policy,
            sleep=sleep or recording_sleep,
            event_sink=events.append,
        )
    return _make


@pytest.fixture
def request_():
    return ClientRequest(path=CANDIDATE_PATH)


@pytest.mark.asyncio
async def test_ok_response_returns_envelope_without_retry(make_dispatcher, scripted_transport, ok_response, recording_sleep, request_):
    transport = scripted_transport([ok_response([{"id": "P60007168"}])])
    dispatcher = make_dispatcher(transport)

    envelope = await dispatcher.execute(request_)

    assert envelope.status is ResponseStatus.OK
    assert envelope.one() == {"id": "P60007168"}
    assert len(transport.calls) == 1
    assert recording_sleep.delays == []
    assert dispatcher.gate.in_flight == 0


@pytest.mark.asyncio
async def test_query_parameters_are_sent_without_none_values(make_dispatcher, scripted_transport, ok_response):
    transport = scripted_transport([ok_response([])])
    request = ClientRequestBuilder("2016/candidates/search.json").with_params({"query": "Warren", "offset": None}).build()

    await make_dispatcher(transport).execute(request)

    assert transport.calls == [("2016/candidates/search.json", {"query": "Warren"})]


@pytest.mark.asyncio
async def test_rate_limited_calls_are_retried_while_holding_one_permit(
    make_dispatcher, scripted_transport, ok_response, status_response, recording_sleep, request_, events
):
    gate = ConcurrencyGate(2)
    transport = scripted_transport(
        [status_response(429), status_response(429), status_response(429), ok_response([{"id": "P60007168"}])],
        observer=lambda: gate.in_flight,
    )
    dispatcher = make_dispatcher(transport, gate=gate)

    envelope = await dispatcher.execute(request_)

    assert envelope.one() == {"id": "P60007168"}
    assert len(transport.calls) == 4
    assert recording_sleep.delays == [1.0, 1.0, 1.0]
    assert transport.observations == [1, 1, 1, 1]
    assert gate.in_flight == 0
    assert [e.status_code for e in events if isinstance(e, RetryScheduled)] == [429, 429, 429]
    succeeded = [e for e in events if isinstance(e, ApiCallSucceeded)]
    assert len(succeeded) == 1 and succeeded[0].attempts == 4


@pytest.mark.asyncio
async def test_server_errors_and_gateway_timeouts_are_retried(
    make_dispatcher, scripted_transport, ok_response, status_response, recording_sleep, request_
):
    transport = scripted_transport([status_response(500), status_response(504), ok_response([])])

    await make_dispatcher(transport).execute(request_)

    assert len(transport.calls) == 3
    assert recording_sleep.delays == [1.0, 1.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 403, 404, 406])
async def test_client_errors_fail_immediately(make_dispatcher, scripted_transport, status_response, recording_sleep, request_, status_code):
    transport = scripted_transport([status_response(status_code)])
    dispatcher = make_dispatcher(transport)

    with pytest.raises(ApiError) as exc_info:
        await dispatcher.execute(request_)

    assert exc_info.value.kind is ErrorKind.BAD_REQUEST
    assert exc_info.value.status_code == status_code
    assert str(status_code) in str(exc_info.value)
    assert len(transport.calls) == 1
    assert recording_sleep.delays == []
    assert dispatcher.gate.in_flight == 0


@pytest.mark.asyncio
async def test_service_unavailable_is_terminal(make_dispatcher, scripted_transport, status_response, recording_sleep, request_):
    transport = scripted_transport([status_response(503)])

    with pytest.raises(ApiError) as exc_info:
        await make_dispatcher(transport).execute(request_)

    assert exc_info.value.kind is ErrorKind.UNAVAILABLE
    assert recording_sleep.delays == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [201, 302, 401, 502])
async def test_unmapped_status_codes_are_unexpected(make_dispatcher, scripted_transport, status_response, request_, status_code):
    transport = scripted_transport([status_response(status_code)])

    with pytest.raises(ApiError) as exc_info:
        await make_dispatcher(transport).execute(request_)

    assert exc_info.value.kind is ErrorKind.UNEXPECTED
    assert exc_info.value.status_code == status_code
    assert str(status_code) in exc_info.value.detail


@pytest.mark.asyncio
async def test_envelope_error_status_reports_field_errors(make_dispatcher, scripted_transport, envelope_text, request_, events):
    body = envelope_text(status="ERROR", errors=[{"error": "bad fec id"}])
    transport = scripted_transport([TransportResponse(status_code=200, text=body)])

    with pytest.raises(ApiError) as exc_info:
        await make_dispatcher(transport).execute(request_)

    assert exc_info.value.kind is ErrorKind.LOGICAL
    assert "bad fec id" in str(exc_info.value)
    failed = [e for e in events if isinstance(e, ApiCallFailed)]
    assert failed[0].error_kind == "Logical"


@pytest.mark.asyncio
async def test_multiple_field_errors_are_joined_by_newline(make_dispatcher, scripted_transport, envelope_text, request_):
    body = envelope_text(status="ERROR", errors=["bad fec id", "bad cycle"])
    transport = scripted_transport([TransportResponse(status_code=200, text=body)])

    with pytest.raises(ApiError) as exc_info:
        await make_dispatcher(transport).execute(request_)

    assert exc_info.value.detail == "bad fec id\nbad cycle"


@pytest.mark.asyncio
async def test_top_level_message_fails_before_status_is_checked(make_dispatcher, scripted_transport, request_, recording_sleep):
    body = json.dumps({"status": "OK", "message": "Forbidden", "results": []})
    transport = scripted_transport([TransportResponse(status_code=200, text=body)])

    with pytest.raises(ApiError) as exc_info:
        await make_dispatcher(transport).execute(request_)

    assert exc_info.value.kind is ErrorKind.MESSAGE
    assert exc_info.value.detail == "Forbidden"
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_internal_server_error_status(make_dispatcher, scripted_transport, envelope_text, request_):
    transport = scripted_transport([TransportResponse(status_code=200, text=envelope_text(status="Internal Server Error"))])

    with pytest.raises(ApiError) as exc_info:
        await make_dispatcher(transport).execute(request_)

    assert exc_info.value.kind is ErrorKind.SERVER_ERROR


@pytest.mark.asyncio
async def test_unknown_envelope_status(make_dispatcher, scripted_transport, envelope_text, request_):
    transport = scripted_transport([TransportResponse(status_code=200, text=envelope_text(status="PENDING"))])

    with pytest.raises(ApiError) as exc_info:
        await make_dispatcher(transport).execute(request_)

    assert exc_info.value.kind is ErrorKind.UNEXPECTED
    assert "PENDING" in exc_info.value.detail


@pytest.mark.asyncio
async def test_malformed_body_raises_parse_error(make_dispatcher, scripted_transport, request_):
    dispatcher = make_dispatcher(scripted_transport([TransportResponse(status_code=200, text="<html>")]))

    with pytest.raises(ParseError):
        await dispatcher.execute(request_)
    assert dispatcher.gate.in_flight == 0


@pytest.mark.asyncio
async def test_capped_retries_surface_the_transient_kind(make_dispatcher, scripted_transport, status_response, recording_sleep, request_):
    transport = scripted_transport([status_response(429)] * 3)
    dispatcher = make_dispatcher(transport, retry_policy=RetryPolicy(delay_seconds=0.5, max_attempts=3))

    with pytest.raises(ApiError) as exc_info:
        await dispatcher.execute(request_)

    assert exc_info.value.kind is ErrorKind.RATE_LIMITED
    assert exc_info.value.status_code == 429
    assert len(transport.calls) == 3
    assert recording_sleep.delays == [0.5, 0.5]


@pytest.mark.asyncio
async def test_capped_retries_on_server_errors(make_dispatcher, scripted_transport, status_response, request_):
    transport = scripted_transport([status_response(500), status_response(504)])
    dispatcher = make_dispatcher(transport, retry_policy=RetryPolicy(max_attempts=2))

    with pytest.raises(ApiError) as exc_info:
        await dispatcher.execute(request_)

    assert exc_info.value.kind is ErrorKind.SERVER_TRANSIENT
    assert exc_info.value.status_code == 504


class SlowTransport(HttpTransport):
    """Holds each call open briefly and records the peak number of concurrent calls."""

    def __init__(self, body):
        self.body = body
        self.active = 0
        self.peak = 0
        self.calls = 0

    async def get(self, path, params):
        self.calls += 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0.01)
        finally:
            self.active -= 1
        return TransportResponse(status_code=200, text=self.body)

    async def aclose(self):
        pass


@pytest.mark.asyncio
async def test_at_most_two_calls_are_in_flight(make_dispatcher, envelope_text, events):
    transport = SlowTransport(envelope_text([]))
    dispatcher = make_dispatcher(transport, gate=ConcurrencyGate(2))

    results = await asyncio.gather(*(
        dispatcher.execute(ClientRequest(path=f"2016/candidates/P{i}")) for i in range(5)
    ))

    assert len(results) == 5
    assert transport.calls == 5
    assert transport.peak == 2
    assert len([e for e in events if isinstance(e, ApiCallDeferred)]) == 3
    assert dispatcher.gate.in_flight == 0


class BlockingTransport(HttpTransport):
    """Blocks every call until released."""

    def __init__(self, body):
        self.body = body
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def get(self, path, params):
        self.entered.set()
        await self.release.wait()
        return TransportResponse(status_code=200, text=self.body)

    async def aclose(self):
        pass


@pytest.mark.asyncio
async def test_cancellation_while_waiting_at_the_gate(make_dispatcher, envelope_text, request_):
    transport = BlockingTransport(envelope_text([]))
    dispatcher = make_dispatcher(transport, gate=ConcurrencyGate(1))

    holder = asyncio.ensure_future(dispatcher.execute(request_))
    await transport.entered.wait()
    waiter = asyncio.ensure_future(dispatcher.execute(request_))
    await asyncio.sleep(0)

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert dispatcher.gate.in_flight == 1

    transport.release.set()
    await holder
    assert dispatcher.gate.in_flight == 0

    # The permit is free again for a later call
    envelope = await asyncio.wait_for(dispatcher.execute(request_), timeout=1)
    assert envelope.status is ResponseStatus.OK


@pytest.mark.asyncio
async def test_cancellation_during_retry_wait_releases_permit(make_dispatcher, scripted_transport, status_response, ok_response, request_):
    sleeping = asyncio.Event()

    async def slow_sleep(delay):
        sleeping.set()
        await asyncio.sleep(60)

    gate = ConcurrencyGate(1)
    transport = scripted_transport([status_response(429), ok_response([])])
    dispatcher = make_dispatcher(transport, gate=gate, sleep=slow_sleep)

    task = asyncio.ensure_future(dispatcher.execute(request_))
    await asyncio.wait_for(sleeping.wait(), timeout=1)
    assert gate.in_flight == 1

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert gate.in_flight == 0
    assert len(transport.calls) == 1

    # A subsequent call can take the single permit
    fresh = RequestDispatcher(transport=scripted_transport([ok_response([])]), gate=gate)
    envelope = await asyncio.wait_for(fresh.execute(request_), timeout=1)
    assert envelope.status is ResponseStatus.OK


@pytest.mark.asyncio
async def test_closed_gate_stops_the_retry_loop(make_dispatcher, scripted_transport, status_response, ok_response, request_):
    gate = ConcurrencyGate(2)

    async def close_while_waiting(delay):
        gate.close()

    transport = scripted_transport([status_response(429), ok_response([])])
    dispatcher = make_dispatcher(transport, gate=gate, sleep=close_while_waiting)

    with pytest.raises(ClientClosedError):
        await dispatcher.execute(request_)

    assert len(transport.calls) == 1
    assert gate.in_flight == 0
