import pytest
from unittest.mock import AsyncMock, MagicMock

from campfin.core.client import CampaignFinanceClient
from campfin.core.command_handler import CommandHandler
from campfin.domain.interfaces.user_interface import UserInterface
from campfin.domain.models.errors import ApiError, ErrorKind


@pytest.fixture
def mock_client():
    """A client double usable as an async context manager."""
    client = MagicMock(spec=CampaignFinanceClient)
    client.__aenter__.return_value = client
    client.__aexit__.return_value = None
    client.get_candidates = AsyncMock()
    client.get_candidate = AsyncMock()
    return client


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)


@pytest.fixture
def command_handler(mock_client, mock_ui):
    """Fixture to create CommandHandler with a mocked client factory."""
    return CommandHandler(client_factory=lambda: mock_client, ui=mock_ui)


@pytest.mark.asyncio
async def test_handle_many_displays_records(command_handler: CommandHandler, mock_client: MagicMock, mock_ui: MagicMock):
    """Test that records returned by the client reach the UI."""
    records = [{"id": "P60007168"}]
    mock_client.get_candidates.return_value = records

    ok = await command_handler.handle_many("Candidates", lambda client: client.get_candidates(2016, "Sanders"))

    assert ok
    mock_client.get_candidates.assert_awaited_once_with(2016, "Sanders")
    mock_ui.display_records.assert_called_once_with(records, "Candidates")
    mock_client.__aexit__.assert_awaited_once()


@pytest.mark.asyncio
async def test_handle_one_displays_record(command_handler: CommandHandler, mock_client: MagicMock, mock_ui: MagicMock):
    mock_client.get_candidate.return_value = None

    ok = await command_handler.handle_one("Candidate P0", lambda client: client.get_candidate(2016, "P0"))

    assert ok
    mock_ui.display_record.assert_called_once_with(None, "Candidate P0")


@pytest.mark.asyncio
async def test_api_errors_are_displayed(command_handler: CommandHandler, mock_client: MagicMock, mock_ui: MagicMock):
    """Test that API failures are reported instead of raised."""
    mock_client.get_candidate.side_effect = ApiError(ErrorKind.BAD_REQUEST, "404", status_code=404)

    ok = await command_handler.handle_one("Candidate P0", lambda client: client.get_candidate(2016, "P0"))

    assert not ok
    mock_ui.display_error.assert_called_once_with("Candidate P0 failed: BadRequest: 404")
    mock_ui.display_record.assert_not_called()
    mock_client.__aexit__.assert_awaited_once()


@pytest.mark.asyncio
async def test_other_exceptions_propagate(command_handler: CommandHandler, mock_client: MagicMock, mock_ui: MagicMock):
    mock_client.get_candidates.side_effect = ValueError("A district requires a chamber")

    with pytest.raises(ValueError):
        await command_handler.handle_many("Candidates", lambda client: client.get_candidates(2016))
    mock_ui.display_error.assert_not_called()
