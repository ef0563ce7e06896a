import asyncio
import json
import logging
from typing import Any, Callable, List, Optional

import httpx
import pytest
from typer.testing import CliRunner

from campfin.core.client import CampaignFinanceClient
from campfin.domain.interfaces.transport import HttpTransport, TransportResponse
from campfin.infrastructure.config.settings import clear_test_config
from campfin.infrastructure.http.httpx_transport import HttpxTransport
from campfin.infrastructure.resilience.retry_policy import RetryPolicy

TEST_BASE_URL = "https://api.propublica.org/campaign-finance/v1/"
TEST_API_KEY = "DUMMY_TEST_KEY"


def envelope(results: Any = None, status: str = "OK", **extra: Any) -> str:
    """JSON text of an API envelope."""
    document = {"status": status, "copyright": "Copyright (c) ProPublica Inc."}
    if results is not None:
        document["results"] = results
    document.update(extra)
    return json.dumps(document)


class ScriptedTransport(HttpTransport):
    """Returns prepared responses in order and records every call."""

    def __init__(self, responses: List[TransportResponse], observer: Optional[Callable[[], Any]] = None):
        self.responses = list(responses)
        self.calls: List[tuple] = []
        self.observations: List[Any] = []
        self.observer = observer
        self.closed = False

    async def get(self, path, params):
        self.calls.append((path, dict(params)))
        if self.observer is not None:
            self.observations.append(self.observer())
        await asyncio.sleep(0)
        return self.responses.pop(0)

    async def aclose(self):
        self.closed = True


class RecordingSleep:
    """Stands in for asyncio.sleep and records the requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def ok_response():
    """Factory for a 200 response carrying an OK envelope."""
    def _make(results: Any = None, **extra: Any) -> TransportResponse:
        return TransportResponse(status_code=200, text=envelope(results, **extra))
    return _make


@pytest.fixture
def status_response():
    """Factory for a bare response with the given status code."""
    def _make(status_code: int, text: str = "") -> TransportResponse:
        return TransportResponse(status_code=status_code, text=text)
    return _make


@pytest.fixture
def envelope_text():
    return envelope


@pytest.fixture
def scripted_transport():
    """Factory for a ScriptedTransport."""
    return ScriptedTransport


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def mock_api():
    """Builds a CampaignFinanceClient whose HTTP traffic goes to an httpx.MockTransport handler."""

    def _make(handler: Callable[[httpx.Request], Any], retry_policy: Optional[RetryPolicy] = None) -> CampaignFinanceClient:
        http_client = httpx.AsyncClient(
            base_url=TEST_BASE_URL,
            headers={"X-API-KEY": TEST_API_KEY},
            transport=httpx.MockTransport(handler),
        )
        return CampaignFinanceClient(
            transport=HttpxTransport(client=http_client),
            retry_policy=retry_policy or RetryPolicy(delay_seconds=0.0),
        )

    return _make


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests away from the user's config file, .env and API key."""
    from campfin.infrastructure.config import settings

    monkeypatch.setattr(settings, "DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
    monkeypatch.setattr(settings, "find_dotenv_path", lambda: None)
    monkeypatch.delenv("PROPUBLICA_API_KEY", raising=False)
    root_logger = logging.getLogger()
    saved_handlers, saved_level = root_logger.handlers[:], root_logger.level
    settings.reset_configuration()
    clear_test_config()
    yield
    settings.reset_configuration()
    clear_test_config()
    # CLI runs replace the root handlers with ones bound to CliRunner's streams
    root_logger.handlers[:] = saved_handlers
    root_logger.setLevel(saved_level)
