"""Login brute-force throttling."""

import pytest
from httpx import AsyncClient

from conftest import LOGIN_URL
from app.core.rate_limit import limiter


@pytest.fixture
def enabled_limiter():
    limiter.reset()
    limiter.enabled = True
    yield limiter
    limiter.enabled = False
    limiter.reset()


async def test_login_is_rate_limited_per_ip(async_client: AsyncClient, enabled_limiter):
    body = {"username": "mallory", "password": "guess"}
    for _ in range(5):
        resp = await async_client.post(LOGIN_URL, json=body)
        assert resp.status_code == 401

    resp = await async_client.post(LOGIN_URL, json=body)
    assert resp.status_code == 429
    assert resp.json()["code"] == "rate_limited"
