"""Request dispatcher: executes API calls with concurrency limiting and retries.

Each call holds one permit of the concurrency gate for its whole retry loop.
Status classification happens in two layers: the HTTP status code first, then
the status reported inside the response envelope.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from campfin.domain.events.api_events import (
    DomainEvent, ApiCallInitiated, ApiCallSucceeded, ApiCallFailed,
    ApiCallDeferred, RetryScheduled,
)
from campfin.domain.interfaces.transport import HttpTransport, TransportResponse
from campfin.domain.models.envelope import ResponseEnvelope, ResponseStatus
from campfin.domain.models.errors import ApiError, ClientClosedError, ErrorKind
from campfin.domain.models.request import ClientRequest
from campfin.infrastructure.parsing.envelope_parser import EnvelopeParser
from campfin.infrastructure.resilience.concurrency_gate import ConcurrencyGate
from campfin.infrastructure.resilience.retry_policy import (
    RetryPolicy, StatusClass, classify_status,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[DomainEvent], None]
Sleeper = Callable[[float], Awaitable[None]]

_TERMINAL_STATUS_KINDS = {
    StatusClass.BAD_REQUEST: ErrorKind.BAD_REQUEST,
    StatusClass.UNAVAILABLE: ErrorKind.UNAVAILABLE,
    StatusClass.UNEXPECTED: ErrorKind.UNEXPECTED,
}

_EXHAUSTED_STATUS_KINDS = {
    StatusClass.RATE_LIMITED: ErrorKind.RATE_LIMITED,
    StatusClass.SERVER_TRANSIENT: ErrorKind.SERVER_TRANSIENT,
}


def log_event(event: DomainEvent) -> None:
    """Default event sink."""
    logger.debug(f"EVENT: {event}")


class RequestDispatcher:
    """Runs one request to completion: gate, retry loop, envelope checks."""

    def __init__(
        self,
        transport: HttpTransport,
        gate: Optional[ConcurrencyGate] = None,
        retry_policy: Optional[RetryPolicy] = None,
        parser: Optional[EnvelopeParser] = None,
        sleep: Sleeper = asyncio.sleep,
        event_sink: EventSink = log_event,
    ):
        """Initializes the dispatcher.

        Args:
            transport: Transport used for every attempt.
            gate: Concurrency gate shared by all calls of one client.
            retry_policy: Delay and optional attempt cap for transient statuses.
            parser: Envelope parser for 200 responses.
            sleep: Awaitable used for retry waits.
            event_sink: Receives the API events of every call.
        """
        self.transport = transport
        self.gate = gate or ConcurrencyGate()
        self.retry_policy = retry_policy or RetryPolicy()
        self.parser = parser or EnvelopeParser()
        self._sleep = sleep
        self._emit = event_sink

        logger.info(
            f"RequestDispatcher initialized: permits={self.gate.limit}, "
            f"retry_delay={self.retry_policy.delay_seconds}s, "
            f"max_attempts={self.retry_policy.max_attempts or 'unbounded'}"
        )

    async def execute(self, request: ClientRequest) -> ResponseEnvelope:
        """Executes a request and returns its OK envelope.

        Raises:
            ApiError: On any terminal transport or envelope failure.
            ClientClosedError: If the gate has been closed.
            asyncio.CancelledError: If the calling task is cancelled while
                waiting for a permit, for a response, or between retries.
        """
        if self.gate.saturated:
            self._emit(ApiCallDeferred(path=request.path, in_flight=self.gate.in_flight))
            logger.debug(f"Concurrency gate saturated, {request.path} waits for a permit")

        async with self.gate:
            try:
                return await self._run_attempts(request)
            except ApiError as e:
                self._emit(ApiCallFailed(
                    path=request.path,
                    error_kind=e.kind.value,
                    error_message=e.detail,
                    status_code=e.status_code,
                ))
                raise

    async def _run_attempts(self, request: ClientRequest) -> ResponseEnvelope:
        params = request.params()
        start_time = time.perf_counter()
        attempt = 0

        while True:
            # The client may have been closed while this call waited between attempts
            if self.gate.closed:
                logger.debug(f"Abandoning {request.path}: client closed after {attempt} attempt(s)")
                raise ClientClosedError("Client was closed while the call was in progress")
            attempt += 1
            self._emit(ApiCallInitiated(path=request.path, attempt_number=attempt))
            response = await self.transport.get(request.path, params)
            status_class = classify_status(response.status_code)

            if status_class is StatusClass.OK:
                envelope = self._check_envelope(response)
                latency_ms = (time.perf_counter() - start_time) * 1000
                self._emit(ApiCallSucceeded(
                    path=request.path,
                    attempts=attempt,
                    latency_ms=latency_ms,
                    num_results=envelope.num_results,
                ))
                logger.debug(f"{request.path} succeeded after {attempt} attempt(s) in {latency_ms:.2f}ms")
                return envelope

            if not status_class.retryable:
                raise self._status_error(status_class, response)

            if not self.retry_policy.allows_another_attempt(attempt):
                logger.error(
                    f"Giving up on {request.path} after {attempt} attempt(s), last status {response.status_code}"
                )
                raise ApiError(
                    _EXHAUSTED_STATUS_KINDS[status_class],
                    f"Gave up after {attempt} attempts (last status {response.status_code})",
                    status_code=response.status_code,
                )

            delay = self.retry_policy.delay_seconds
            logger.warning(
                f"{request.path} returned {response.status_code} on attempt {attempt}. Waiting {delay:.2f}s..."
            )
            self._emit(RetryScheduled(
                path=request.path,
                attempt_number=attempt,
                status_code=response.status_code,
                delay_seconds=delay,
            ))
            await self._sleep(delay)

    def _status_error(self, status_class: StatusClass, response: TransportResponse) -> ApiError:
        kind = _TERMINAL_STATUS_KINDS[status_class]
        if status_class is StatusClass.UNAVAILABLE:
            detail = "Service is unavailable."
        elif status_class is StatusClass.BAD_REQUEST:
            detail = str(response.status_code)
        else:
            detail = f"Something unexpected happened. ({response.status_code})"
        logger.error(f"Non-retryable status {response.status_code} for {response.url or 'request'}: {detail}")
        return ApiError(kind, detail, status_code=response.status_code)

    def _check_envelope(self, response: TransportResponse) -> ResponseEnvelope:
        envelope = self.parser.parse(response.text)

        # A 200 can still carry a logical failure
        if envelope.has_message:
            logger.error(f"API reported a message for {response.url or 'request'}: {envelope.message}")
            raise ApiError(ErrorKind.MESSAGE, envelope.message, status_code=response.status_code)

        if envelope.status is ResponseStatus.OK:
            return envelope
        if envelope.status is ResponseStatus.ERROR:
            detail = "\n".join(envelope.errors)
            logger.error(f"API reported errors for {response.url or 'request'}: {detail!r}")
            raise ApiError(ErrorKind.LOGICAL, detail, status_code=response.status_code)
        if envelope.status is ResponseStatus.INTERNAL_SERVER_ERROR:
            logger.error(f"API reported an internal server error for {response.url or 'request'}")
            raise ApiError(ErrorKind.SERVER_ERROR, "Internal server error!", status_code=response.status_code)

        logger.error(f"Invalid response status {envelope.raw_status!r} for {response.url or 'request'}")
        raise ApiError(
            ErrorKind.UNEXPECTED,
            f"Invalid response status: {envelope.raw_status}",
            status_code=response.status_code,
        )
