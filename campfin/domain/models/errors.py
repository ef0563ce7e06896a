"""Error taxonomy for the campaign-finance client.

Every terminal failure reaches the caller as a single ApiError carrying an
ErrorKind and a detail text. Cancellation is not part of this taxonomy: it
propagates as asyncio.CancelledError.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification of a failed API call."""

    TRANSPORT = "Transport"              # Malformed body or connection-level failure
    BAD_REQUEST = "BadRequest"           # 400, 403, 404, 406
    RATE_LIMITED = "RateLimited"         # 429; only surfaced when retries are capped
    SERVER_TRANSIENT = "ServerTransient" # 500, 504; only surfaced when retries are capped
    UNAVAILABLE = "Unavailable"          # 503
    UNEXPECTED = "Unexpected"            # Unmapped status code or envelope status
    MESSAGE = "Message"                  # Top-level "message" in the envelope
    LOGICAL = "Logical"                  # Envelope status ERROR with field errors
    SERVER_ERROR = "ServerError"         # Envelope status INTERNAL_SERVER_ERROR


class ApiError(Exception):
    """Terminal failure of an API call."""

    def __init__(self, kind: ErrorKind, detail: str = "", status_code: Optional[int] = None):
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        message = f"{kind.value}: {detail}" if detail else kind.value
        super().__init__(message)


class ParseError(ApiError):
    """Raised when a response body is not a JSON object."""

    def __init__(self, detail: str):
        super().__init__(ErrorKind.TRANSPORT, detail)


class ClientClosedError(RuntimeError):
    """Raised when a client is used after it has been closed."""


class ConfigurationError(ValueError):
    """Raised when a configured value is missing its required form or range."""
