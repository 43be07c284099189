"""API-specific test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from mealplanner.core.auth import create_access_token


@pytest.fixture
async def api_client(engine, fake_redis):
    """In-process client sharing the test loop, so routes use the test database.

    ASGITransport does not run the lifespan; the engine fixture has already
    created the schema and set the global session factory.
    """
    from mealplanner.main import create_app

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def auth_headers(user_id: str, role: str = "trainer") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def headers_for():
    """``headers_for(user)`` -> bearer headers for a User row."""

    def _headers(user) -> dict[str, str]:
        return auth_headers(user.id, user.role)

    return _headers
