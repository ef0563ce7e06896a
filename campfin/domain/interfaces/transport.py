"""Interface for the HTTP transport used by the request dispatcher.

Defines the contract for issuing a single GET against the API base URL.
Implementations must not raise on non-2xx statuses: the status code is
returned for the dispatcher to classify.
"""

import abc
from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class TransportResponse:
    """Fully read HTTP response."""

    status_code: int
    text: str
    url: str = ""


class HttpTransport(abc.ABC):
    """Abstract Base Class for outbound HTTP GET calls."""

    @abc.abstractmethod
    async def get(self, path: str, params: Mapping[str, str]) -> TransportResponse:
        """Issues one GET request.

        Args:
            path: Path relative to the API base URL.
            params: Query parameters to append.

        Returns:
            The status code and body text of the response.

        Raises:
            ApiError: With kind TRANSPORT if no response could be obtained.
        """
        pass

    @abc.abstractmethod
    async def aclose(self) -> None:
        """Releases the underlying connection resources."""
        pass
