from unittest.mock import AsyncMock, MagicMock

import pytest

from services.guide.guide_service import GuideService
from services.guide.session_store import SessionStore


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def service(openai_client, store):
    return GuideService(openai_client, store, model="gpt-4o-mini")
