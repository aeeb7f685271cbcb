"""Integration tests for the storefront and back-office rate limit tiers."""

import pytest
from libs.common.config import get_settings
from libs.common.rate_limit import limiter


@pytest.fixture
def tight_limits(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_API", "2/minute")
    monkeypatch.setenv("RATE_LIMIT_ADMIN", "2/minute")
    get_settings.cache_clear()
    monkeypatch.setattr(limiter, "enabled", True)
    yield
    limiter.reset()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_routes_use_admin_tier(client, admin_headers, tight_limits):
    codes = [
        (await client.get("/api/admin/users", headers=admin_headers)).status_code
        for _ in range(3)
    ]

    assert codes == [200, 200, 429]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_storefront_limits_are_per_user(
    client, customer_headers, distributor_headers, tight_limits
):
    codes = [
        (await client.get("/api/cart", headers=customer_headers)).status_code
        for _ in range(3)
    ]
    assert codes == [200, 200, 429]

    response = await client.get("/api/cart", headers=customer_headers)
    assert response.status_code == 429
    assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
    assert "Retry-After" in response.headers

    response = await client.get("/api/cart", headers=distributor_headers)
    assert response.status_code == 200
