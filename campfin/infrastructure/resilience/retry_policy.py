"""HTTP status classification and retry policy.

Maps the transport status code onto a closed set of outcomes and decides
whether another attempt is allowed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_MAX_ATTEMPTS: Optional[int] = None  # Unbounded


class StatusClass(Enum):
    """Outcome class of an HTTP status code."""

    OK = "ok"
    BAD_REQUEST = "bad_request"
    RATE_LIMITED = "rate_limited"
    SERVER_TRANSIENT = "server_transient"
    UNAVAILABLE = "unavailable"
    UNEXPECTED = "unexpected"

    @property
    def retryable(self) -> bool:
        return self in (StatusClass.RATE_LIMITED, StatusClass.SERVER_TRANSIENT)


_STATUS_CLASSES = {
    200: StatusClass.OK,
    400: StatusClass.BAD_REQUEST,
    403: StatusClass.BAD_REQUEST,
    404: StatusClass.BAD_REQUEST,
    406: StatusClass.BAD_REQUEST,
    429: StatusClass.RATE_LIMITED,
    500: StatusClass.SERVER_TRANSIENT,
    504: StatusClass.SERVER_TRANSIENT,
    503: StatusClass.UNAVAILABLE,
}


def classify_status(status_code: int) -> StatusClass:
    """Classifies a status code; codes without a mapping are UNEXPECTED."""
    return _STATUS_CLASSES.get(status_code, StatusClass.UNEXPECTED)


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry policy.

    Attributes:
        delay_seconds: Wait before each new attempt. No jitter, no growth.
        max_attempts: Total attempts allowed per call, None for no cap.
    """

    delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    max_attempts: Optional[int] = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self):
        if self.delay_seconds < 0:
            raise ValueError(f"delay_seconds must be non-negative, got {self.delay_seconds}")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def allows_another_attempt(self, attempts_made: int) -> bool:
        return self.max_attempts is None or attempts_made < self.max_attempts
