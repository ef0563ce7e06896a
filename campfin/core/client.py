"""Caller-facing client for the ProPublica Campaign Finance API.

Maps every endpoint's URL template onto the request dispatcher and projects
the returned envelope into one record or a list of records. The client owns
its transport and concurrency gate and must be closed explicitly, either with
``await client.aclose()`` or by using it as an async context manager.
"""

import logging
from datetime import date
from typing import Mapping, Optional

from campfin.domain.interfaces.transport import HttpTransport
from campfin.domain.models.common import (
    DEFAULT_BASE_URL, DEFAULT_CONCURRENCY_LIMIT, Cycle, FecId, Record, Records, StateCode,
)
from campfin.domain.models.envelope import ResponseEnvelope
from campfin.domain.models.errors import ClientClosedError
from campfin.domain.models.request import ClientRequestBuilder
from campfin.infrastructure.config.settings import ClientSettings
from campfin.infrastructure.http.httpx_transport import DEFAULT_TIMEOUT_SECONDS, HttpxTransport
from campfin.infrastructure.resilience.concurrency_gate import ConcurrencyGate
from campfin.infrastructure.resilience.dispatcher import EventSink, RequestDispatcher, log_event
from campfin.infrastructure.resilience.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)


def _date_path(day: date) -> str:
    # The API takes unpadded components: 2016/3/7
    return f"{day.year}/{day.month}/{day.day}"


class CampaignFinanceClient:
    """Async client for the campaign-finance endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        transport: Optional[HttpTransport] = None,
        concurrency: int = DEFAULT_CONCURRENCY_LIMIT,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        event_sink: EventSink = log_event,
        dispatcher: Optional[RequestDispatcher] = None,
    ):
        """Initializes the client.

        Args:
            api_key: ProPublica API key, sent as the X-API-KEY header.
            base_url: API base URL.
            transport: Injected transport; replaces the httpx transport built
                from api_key and base_url. It is closed by aclose().
            concurrency: Number of requests allowed in flight at once.
            retry_policy: Retry delay and optional attempt cap.
            timeout_seconds: Per-request timeout of the httpx transport.
            event_sink: Receives the dispatcher's API events.
            dispatcher: Fully built dispatcher; overrides the arguments above.
        """
        if dispatcher is None:
            transport = transport or HttpxTransport(
                api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds,
            )
            dispatcher = RequestDispatcher(
                transport=transport,
                gate=ConcurrencyGate(concurrency),
                retry_policy=retry_policy,
                event_sink=event_sink,
            )
        self.dispatcher = dispatcher
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        """Closes the gate and the transport. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.dispatcher.gate.close()
        await self.dispatcher.transport.aclose()
        logger.debug("CampaignFinanceClient closed")

    async def __aenter__(self) -> "CampaignFinanceClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --- Generic access ---

    async def get(self, path: str, query: Optional[Mapping[str, Optional[object]]] = None) -> ResponseEnvelope:
        """Executes a GET for a path relative to the base URL and returns the OK envelope."""
        if self._closed:
            raise ClientClosedError("CampaignFinanceClient has been closed")
        request = ClientRequestBuilder(path).with_params(query).build()
        return await self.dispatcher.execute(request)

    async def _many(self, path: str, offset: Optional[int] = None, **query: Optional[object]) -> Records:
        envelope = await self.get(path, {**query, "offset": offset})
        return envelope.many()

    async def _one(self, path: str) -> Optional[Record]:
        envelope = await self.get(path)
        return envelope.one()

    # --- Lobbyist Bundlers ---

    async def get_lobbyist_bundlers_by_committee(self, cycle: Cycle, fec_id: FecId, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/committees/{fec_id}/lobbyist_bundlers.json", offset)

    # --- Candidates ---

    async def get_candidates(self, cycle: Cycle, query: Optional[str] = None, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/candidates/search.json", offset, query=query)

    async def get_candidates_from_state(
        self,
        cycle: Cycle,
        state: StateCode,
        chamber: Optional[str] = None,
        district: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Records:
        """Candidates running in a state, optionally narrowed to a chamber and district.

        The district applies to house races only; leave it out for states with a
        single representative (AL, DE, DC, MT, ND, SD, VT).
        """
        if chamber is None:
            if district is not None:
                raise ValueError("A district requires a chamber")
            path = f"{cycle}/races/{state}.json"
        elif district is None:
            path = f"{cycle}/races/{state}/{chamber}.json"
        else:
            path = f"{cycle}/races/{state}/{chamber}/{district}.json"
        return await self._many(path, offset)

    async def get_candidate(self, cycle: Cycle, fec_id: FecId) -> Optional[Record]:
        return await self._one(f"{cycle}/candidates/{fec_id}")

    async def get_recent_late_contributions(self, cycle: Cycle, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/contributions/48hour.json", offset)

    async def get_recent_late_contributions_to_candidate(self, cycle: Cycle, fec_id: FecId, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/candidates/{fec_id}/48hour.json", offset)

    async def get_recent_late_contributions_to_committee(self, cycle: Cycle, fec_id: FecId, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/committees/{fec_id}/48hour.json", offset)

    async def get_recent_late_contributions_by_date(self, cycle: Cycle, day: date, offset: Optional[int] = None) -> Records:
        """48-hour contributions reported on one day (``day`` as ``date(year, month, day)``)."""
        return await self._many(f"{cycle}/contributions/48hour/{_date_path(day)}.json", offset)

    # --- Committees ---

    async def get_committees(self, cycle: Cycle, query: str, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/committees/search.json", offset, query=query)

    async def get_committee(self, cycle: Cycle, fec_id: FecId) -> Optional[Record]:
        return await self._one(f"{cycle}/committees/{fec_id}.json")

    async def get_committee_filings(self, cycle: Cycle, fec_id: FecId, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/committees/{fec_id}/filings.json", offset)

    # --- Filings ---

    async def get_electronic_filing_form_types(self, cycle: Cycle) -> Records:
        return await self._many(f"{cycle}/filings/types.json")

    async def get_electronic_filings(self, cycle: Cycle, query: str, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/filings/search.json", offset, query=query)

    async def get_electronic_filings_by_date(self, cycle: Cycle, day: date, offset: Optional[int] = None) -> Records:
        """Electronic filings received on one day (``day`` as ``date(year, month, day)``)."""
        return await self._many(f"{cycle}/filings/{_date_path(day)}.json", offset)

    async def get_electronic_filings_by_type(self, cycle: Cycle, form_type: str, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/filings/types/{form_type}.json", offset)

    async def get_electronic_filing(self, cycle: Cycle, filing_id: str) -> Optional[Record]:
        """A single (presidential) electronic filing."""
        return await self._one(f"{cycle}/filings/{filing_id}.json")

    # --- Independent Spending ---

    async def get_independent_expenditures(self, cycle: Cycle, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/independent_expenditures.json", offset)

    async def get_independent_expenditures_by_date(self, cycle: Cycle, day: date, offset: Optional[int] = None) -> Records:
        """Independent expenditures reported on one day (``day`` as ``date(year, month, day)``)."""
        return await self._many(f"{cycle}/independent_expenditures/{_date_path(day)}.json", offset)

    async def get_independent_expenditures_by_committee(self, cycle: Cycle, fec_id: FecId, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/committees/{fec_id}/independent_expenditures.json", offset)

    async def get_independent_expenditures_for_candidate(self, cycle: Cycle, fec_id: FecId, offset: Optional[int] = None) -> Records:
        """Independent expenditures that support or oppose a candidate."""
        return await self._many(f"{cycle}/candidates/{fec_id}/independent_expenditures.json", offset)

    async def get_independent_expenditure_race_totals_for_office(self, cycle: Cycle, office: str, offset: Optional[int] = None) -> Records:
        """Race totals for an office: senate, house or president."""
        return await self._many(f"{cycle}/independent_expenditures/race_totals/{office}.json", offset)

    async def get_independent_expenditure_race_totals_for_committee(self, cycle: Cycle, fec_id: FecId, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/committees/{fec_id}/independent_expenditures/races.json", offset)

    # --- Electioneering Communications ---

    async def get_electioneering_communications(self, cycle: Cycle, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/electioneering_communications.json", offset)

    async def get_electioneering_communications_by_committee(self, cycle: Cycle, fec_id: FecId, offset: Optional[int] = None) -> Records:
        return await self._many(f"{cycle}/committees/{fec_id}/electioneering_communications.json", offset)

    async def get_electioneering_communications_by_date(self, cycle: Cycle, day: date, offset: Optional[int] = None) -> Records:
        """Electioneering communications filed on one day.

        Args:
            cycle: Election cycle.
            day: The calendar day; pass ``date(year, month, day)``. It is sent as
                unpadded path segments, e.g. 2016/3/7.
            offset: Number of results to skip.
        """
        return await self._many(f"{cycle}/electioneering_communications/{_date_path(day)}.json", offset)


def create_client(settings: ClientSettings) -> CampaignFinanceClient:
    """Builds a client from configuration-derived settings."""
    return CampaignFinanceClient(
        api_key=settings.api_key,
        base_url=settings.base_url,
        concurrency=settings.concurrency,
        retry_policy=RetryPolicy(
            delay_seconds=settings.retry_delay_seconds,
            max_attempts=settings.max_attempts,
        ),
        timeout_seconds=settings.timeout_seconds,
    )
