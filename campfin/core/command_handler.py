"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), opens a client for the
duration of the command, awaits the endpoint call and hands the records to
the user interface. API failures are reported, not raised, and turned into a
non-zero exit status by the caller.
"""

import logging
from typing import Awaitable, Callable, Optional

from campfin.core.client import CampaignFinanceClient
from campfin.domain.interfaces.user_interface import UserInterface
from campfin.domain.models.common import Record, Records
from campfin.domain.models.errors import ApiError, ClientClosedError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], CampaignFinanceClient]
ManyCall = Callable[[CampaignFinanceClient], Awaitable[Records]]
OneCall = Callable[[CampaignFinanceClient], Awaitable[Optional[Record]]]


class CommandHandler:
    """Handles incoming commands and delegates to the API client."""

    def __init__(self, client_factory: ClientFactory, ui: UserInterface):
        """Initializes the CommandHandler.

        Args:
            client_factory: Builds a fresh client for each command.
            ui: Where results and errors are displayed.
        """
        self.client_factory = client_factory
        self.ui = ui

    async def handle_many(self, title: str, call: ManyCall) -> bool:
        """Runs a list endpoint and displays its records. Returns False on failure."""
        logger.info(f"Handling list command: {title}")
        try:
            async with self.client_factory() as client:
                records = await call(client)
        except (ApiError, ClientClosedError) as e:
            logger.error(f"{title} failed: {e}")
            self.ui.display_error(f"{title} failed: {e}")
            return False
        self.ui.display_records(records, title)
        return True

    async def handle_one(self, title: str, call: OneCall) -> bool:
        """Runs a single-entity endpoint and displays its record. Returns False on failure."""
        logger.info(f"Handling lookup command: {title}")
        try:
            async with self.client_factory() as client:
                record = await call(client)
        except (ApiError, ClientClosedError) as e:
            logger.error(f"{title} failed: {e}")
            self.ui.display_error(f"{title} failed: {e}")
            return False
        self.ui.display_record(record, title)
        return True
