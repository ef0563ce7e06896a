"""Request value objects.

A ClientRequest is built once per call by the endpoint layer and consumed once
by the dispatcher.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from campfin.domain.models.common import ApiPath, QueryParams


@dataclass(frozen=True)
class ClientRequest:
    """Immutable GET request relative to the API base URL."""

    path: ApiPath
    query: QueryParams = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        # Freeze a private copy so later changes to the caller's dict are not seen
        object.__setattr__(self, "query", MappingProxyType(dict(self.query)))

    def params(self) -> Dict[str, str]:
        """Query parameters to transmit; None values are omitted."""
        return {key: value for key, value in self.query.items() if value is not None}


class ClientRequestBuilder:
    """Collects query parameters for a path, then freezes them into a ClientRequest."""

    def __init__(self, path: str):
        self.path = ApiPath(path)
        self.query: Dict[str, Optional[str]] = {}

    def with_param(self, name: str, value: Optional[object]) -> "ClientRequestBuilder":
        self.query[name] = None if value is None else str(value)
        return self

    def with_params(self, params: Optional[Mapping[str, Optional[object]]]) -> "ClientRequestBuilder":
        for name, value in (params or {}).items():
            self.with_param(name, value)
        return self

    def build(self) -> ClientRequest:
        return ClientRequest(path=self.path, query=self.query)
