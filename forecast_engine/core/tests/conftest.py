"""Test fixtures for core HTTP behaviour."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from forecast_engine.main import app


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the application."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
