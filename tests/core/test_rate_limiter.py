import pytest
from httpx import ASGITransport, AsyncClient

from admin_auth.core.config import Settings
from admin_auth.core.database import get_db
from admin_auth.core.rate_limit import RateLimiter
from admin_auth.main import create_app


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_allows_up_to_limit_then_blocks():
    clock = FakeClock()
    limiter = RateLimiter("login", 3, 60, clock=clock)
    assert [limiter.hit("1.2.3.4") for _ in range(3)] == [None, None, None]

    clock.now += 10
    assert limiter.hit("1.2.3.4") == pytest.approx(50.0)


def test_window_slides():
    clock = FakeClock()
    limiter = RateLimiter("login", 2, 60, clock=clock)
    limiter.hit("k")
    clock.now += 30
    limiter.hit("k")
    assert limiter.hit("k") is not None

    clock.now += 31  # first hit has left the window
    assert limiter.hit("k") is None
    assert limiter.hit("k") is not None


def test_keys_are_independent():
    limiter = RateLimiter("login", 1, 60, clock=FakeClock())
    assert limiter.hit("a") is None
    assert limiter.hit("b") is None
    assert limiter.hit("a") is not None


def test_idle_addresses_are_forgotten():
    clock = FakeClock()
    limiter = RateLimiter("login", 5, 60, clock=clock)
    for i in range(1000):
        limiter.hit(f"10.0.{i // 256}.{i % 256}")

    clock.now += 61
    limiter.hit("203.0.113.7")

    assert list(limiter._hits) == ["203.0.113.7"]


def test_rejected_hits_do_not_extend_the_window():
    clock = FakeClock()
    limiter = RateLimiter("login", 1, 60, clock=clock)
    limiter.hit("k")
    for _ in range(5):
        clock.now += 10
        limiter.hit("k")
    clock.now += 11
    assert limiter.hit("k") is None


def test_disabled_limiter_always_allows():
    limiter = RateLimiter("login", 1, 60, enabled=False)
    assert all(limiter.hit("k") is None for _ in range(10))


def test_reset():
    limiter = RateLimiter("login", 1, 60, clock=FakeClock())
    limiter.hit("a")
    limiter.hit("b")
    limiter.reset("a")
    assert limiter.hit("a") is None
    assert limiter.hit("b") is not None
    limiter.reset()
    assert limiter.hit("b") is None


@pytest.mark.asyncio
async def test_login_route_returns_429_with_retry_after(session_factory):
    app = create_app(Settings(LOGIN_RATE_LIMIT=2, LOGIN_RATE_WINDOW_SECONDS=120))

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    body = {"email": "nobody@example.com", "password": "whatever-123"}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        first = await client.post("/api/admin/login", json=body)
        second = await client.post("/api/admin/login", json=body)
        third = await client.post("/api/admin/login", json=body)

    assert first.status_code == second.status_code == 401
    assert third.status_code == 429
    assert third.json()["detail"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert 1 <= int(third.headers["Retry-After"]) <= 120
