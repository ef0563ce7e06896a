"""Concrete implementation of the HttpTransport interface using httpx.

Carries the API base URL and the X-API-KEY header on an httpx.AsyncClient and
returns every response, whatever its status, for the dispatcher to classify.
"""

import logging
from typing import Mapping, Optional

import httpx

from campfin.domain.interfaces.transport import HttpTransport, TransportResponse
from campfin.domain.models.common import API_KEY_HEADER, DEFAULT_BASE_URL
from campfin.domain.models.errors import ApiError, ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpxTransport(HttpTransport):
    """httpx implementation of the HttpTransport interface."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initializes the transport.

        Args:
            api_key: Key sent in the X-API-KEY header. Required unless a
                preconfigured client is injected.
            base_url: API base URL; request paths are resolved against it.
            timeout_seconds: Timeout applied to each request.
            client: Preconfigured AsyncClient. It is not closed by aclose().
        """
        if client is not None:
            self._client = client
            self._owns_client = False
        else:
            if not api_key:
                raise ValueError("ProPublica API key not provided.")
            self._client = httpx.AsyncClient(
                base_url=_with_trailing_slash(base_url),
                headers={API_KEY_HEADER: api_key},
                timeout=timeout_seconds,
            )
            self._owns_client = True
        logger.info(f"HttpxTransport initialized for {self._client.base_url}")

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    async def get(self, path: str, params: Mapping[str, str]) -> TransportResponse:
        try:
            response = await self._client.get(path.lstrip("/"), params=dict(params))
        except httpx.HTTPError as e:
            logger.error(f"HTTP transport error for {path}: {type(e).__name__} - {e}")
            raise ApiError(ErrorKind.TRANSPORT, f"{type(e).__name__}: {e}") from e

        logger.debug(f"GET {response.request.url} -> {response.status_code}")
        return TransportResponse(
            status_code=response.status_code,
            text=response.text,
            url=str(response.request.url),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
            logger.debug("HttpxTransport client closed")


def _with_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"
