from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.core.config import Settings, get_settings
from app.core.dependencies import get_board_client, get_image_cache
from app.core.images.cache import MemoryCache
from tests.factories import json_handler, mock_board_client


@pytest.fixture
def test_settings():
    return Settings(
        MONDAY_TOKEN="test-token",
        MONDAY_BOARD_ID="1234",
        _env_file=None,
    )


# Client
@pytest_asyncio.fixture(scope="function")
async def client(test_settings):
    app.dependency_overrides[get_settings] = lambda: test_settings
    # Fresh image cache per test
    app.dependency_overrides[get_image_cache] = lambda: MemoryCache()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# Point the refresh route at a fake board API
@pytest.fixture
def use_board():
    def install(payload: Any, status_code: int = 200):
        board_client = mock_board_client(json_handler(payload, status_code))
        app.dependency_overrides[get_board_client] = lambda: board_client
        return board_client

    return install
