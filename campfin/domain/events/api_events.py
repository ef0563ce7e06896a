"""Domain Events related to API calls and resilience.

Emitted by the request dispatcher when calls are deferred on the concurrency
gate, dispatched, retried, fail, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an HTTP attempt is about to be made."""
    path: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call returns an OK envelope."""
    path: str
    attempts: int
    latency_ms: float
    num_results: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call fails definitively."""
    path: str
    error_kind: str
    error_message: str
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when a call has to wait for a concurrency permit."""
    path: str
    in_flight: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a transient status schedules another attempt."""
    path: str
    attempt_number: int
    status_code: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)
