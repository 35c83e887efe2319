"""Shared pytest fixtures for back-office tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from backoffice.main import app


@pytest.fixture
async def client():
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture(autouse=True)
def reset_dependency_overrides():
    """Keep dependency overrides from leaking between tests."""
    yield
    app.dependency_overrides.clear()
