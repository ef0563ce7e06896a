"""Async client for the ProPublica Campaign Finance API."""

from campfin.core.client import CampaignFinanceClient
from campfin.domain.models.errors import (
    ApiError, ClientClosedError, ConfigurationError, ErrorKind, ParseError,
)

__version__ = "1.0.0"

__all__ = [
    "CampaignFinanceClient",
    "ApiError",
    "ClientClosedError",
    "ConfigurationError",
    "ErrorKind",
    "ParseError",
]
