"""Response envelope returned by the campaign-finance API.

The envelope is the top-level JSON document; the records live under its
``results`` field. Status, message and errors are located by the parser in
``campfin.infrastructure.parsing.envelope_parser``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from campfin.domain.models.common import Record, Records

RESULTS_FIELD = "results"


class ResponseStatus(Enum):
    """Logical status reported inside a 200 response."""

    OK = "OK"
    ERROR = "ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ResponseEnvelope:
    """Read-only view over a parsed response document."""

    raw: Dict[str, Any]
    status: ResponseStatus
    raw_status: Optional[str] = None
    message: Optional[str] = None
    errors: Tuple[str, ...] = ()

    @property
    def has_message(self) -> bool:
        return bool(self.message)

    @property
    def num_results(self) -> Optional[int]:
        return _as_int(self.raw.get("num_results"))

    @property
    def offset(self) -> Optional[int]:
        return _as_int(self.raw.get("offset"))

    def many(self) -> Records:
        """Records of a list endpoint."""
        results = self.raw.get(RESULTS_FIELD)
        if isinstance(results, list):
            return [Record(item) for item in results if isinstance(item, dict)]
        if isinstance(results, dict):
            return [Record(results)]
        return []

    def one(self) -> Optional[Record]:
        """Record of a single-entity endpoint.

        The API wraps single entities in a one-element ``results`` list; when
        there is no ``results`` field the whole document is the entity.
        """
        if RESULTS_FIELD not in self.raw:
            return Record(self.raw)
        results = self.raw[RESULTS_FIELD]
        if isinstance(results, list):
            first = next((item for item in results if isinstance(item, dict)), None)
            return Record(first) if first is not None else None
        if isinstance(results, dict):
            return Record(results)
        return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None
