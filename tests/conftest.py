"""Shared pytest fixtures for MediaWiki client tests."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from mediawiki_bot.client import MediaWikiBot
from mediawiki_bot.config import ClientSettings
from mediawiki_bot.transport.mock import MockTransport
from mediawiki_bot.transport.scenarios import DemoWiki

TEST_ENDPOINT = "https://wiki.example.org/w/api.php"


@pytest.fixture(scope="function")
def test_settings() -> ClientSettings:
    """Create settings suited to tests (no throttling)."""
    return ClientSettings(
        endpoint=TEST_ENDPOINT,
        min_interval_millis=0,
        user_agent="mediawiki-bot-tests",
        byeline="(test bot)",
        timeout_seconds=5.0,
    )


@pytest.fixture(scope="function")
def mock_transport() -> MockTransport:
    """Create an empty scripted transport; tests add their own responses."""
    return MockTransport()


@pytest.fixture(scope="function")
def demo_wiki() -> DemoWiki:
    """Create the seeded demo wiki."""
    return DemoWiki.default()


@pytest_asyncio.fixture
async def bot(
    test_settings: ClientSettings,
    mock_transport: MockTransport,
) -> AsyncGenerator[MediaWikiBot, None]:
    """Create a client over the scripted transport."""
    client = MediaWikiBot(test_settings, transport=mock_transport)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def demo_bot(
    test_settings: ClientSettings,
    demo_wiki: DemoWiki,
) -> AsyncGenerator[MediaWikiBot, None]:
    """Create a client answered by the demo wiki."""
    client = MediaWikiBot(test_settings, transport=MockTransport(responder=demo_wiki))
    yield client
    await client.close()
