"""Defines common Value Objects used across the campaign-finance client.

These objects represent simple values or concepts like election cycles,
FEC identifiers, API paths and records, ensuring consistency and type safety.
"""

from typing import NewType, Any, Dict, List, Mapping, Optional

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are plain values at runtime.
Cycle = NewType("Cycle", int)                  # Biennial election cycle, e.g. 2016
FecId = NewType("FecId", str)                  # FEC identifier of a candidate or committee
StateCode = NewType("StateCode", str)          # Two-letter postal code, e.g. 'MD'
ApiPath = NewType("ApiPath", str)              # Path relative to the API base URL

# === Request Context ===
QueryParams = Mapping[str, Optional[str]]      # Query parameters; None means "not sent"

# === Response Context ===
Record = NewType("Record", Dict[str, Any])    # One JSON object from the payload
Records = List[Record]

# === Constants ===
DEFAULT_BASE_URL = "https://api.propublica.org/campaign-finance/v1/"
API_KEY_HEADER = "X-API-KEY"
DEFAULT_CONCURRENCY_LIMIT = 2

CHAMBERS = ("house", "senate")
OFFICES = ("house", "senate", "president")
